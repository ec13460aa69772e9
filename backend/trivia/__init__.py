from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config
from trivia.store import MemoryRoomStore

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
allowed_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)
# Shared room documents; lives as long as the server process
room_store = MemoryRoomStore()

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from trivia.main import main
    flask_app.register_blueprint(main)

    from trivia.api.history import history
    flask_app.register_blueprint(history, url_prefix='/api/game-history')

    from trivia.api.questions import questions
    flask_app.register_blueprint(questions, url_prefix='/api/questions')

    from trivia.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Socket.IO exposes the room store to remote participants
    from trivia.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from trivia.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Unauthorized'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from trivia.models import User, FilmQuote, GameQuote
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            for u in ['testuser1', 'testuser2', 'testuser3']:
                user = User(username=u)
                user.set_password('password')
                db.session.add(user)

            for row in SEED_FILM_QUOTES:
                db.session.add(FilmQuote(**row))
            for row in SEED_GAME_QUOTES:
                db.session.add(GameQuote(**row))

            db.session.commit()
            print('Database has been reset and seeded!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


SEED_FILM_QUOTES = [
    {'quote': "I'll be back.", 'character': 'The Terminator', 'to': 'Desk Sergeant', 'title': 'The Terminator', 'image': '/media/film/terminator.jpg'},
    {'quote': "Here's looking at you, kid.", 'character': 'Rick Blaine', 'to': 'Ilsa Lund', 'title': 'Casablanca', 'image': '/media/film/casablanca.jpg'},
    {'quote': 'May the Force be with you.', 'character': 'Han Solo', 'to': 'Luke Skywalker', 'title': 'Star Wars'},
    {'quote': "You can't handle the truth!", 'character': 'Col. Nathan R. Jessup', 'to': 'Lt. Daniel Kaffee', 'title': 'A Few Good Men'},
]

SEED_GAME_QUOTES = [
    {'quote': 'The cake is a lie.', 'character': 'Doug Rattmann', 'to': 'Chell', 'title': 'Portal', 'image': '/media/game/portal.jpg', 'voice_record': '/media/game/portal.mp3'},
    {'quote': 'Would you kindly?', 'character': 'Atlas', 'to': 'Jack', 'title': 'BioShock', 'image': '/media/game/bioshock.jpg'},
    {'quote': 'War. War never changes.', 'character': 'Narrator', 'to': 'Player', 'title': 'Fallout'},
    {'quote': "It's dangerous to go alone! Take this.", 'character': 'Old Man', 'to': 'Link', 'title': 'The Legend of Zelda'},
]
