from datetime import datetime, timezone

from trivia import db, bcrypt
from flask_login import UserMixin


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    games = db.relationship('GameHistory', back_populates='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class GameHistory(db.Model):
    __tablename__ = 'game_history'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False)
    mode = db.Column(db.String(64), nullable=True)  # singleplayer, multiplayer-normal, multiplayer-rush
    played_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    user = db.relationship('User', back_populates='games')

    def to_dict(self):
        return {
            'id': self.id,
            'score': self.score,
            'mode': self.mode,
            'played_at': self.played_at.isoformat() if self.played_at else None,
        }


class QuoteMixin:
    id = db.Column(db.Integer, primary_key=True)
    quote = db.Column(db.Text, nullable=False)
    character = db.Column(db.String(128), nullable=False)
    to = db.Column(db.String(128), nullable=True)  # who the line is said to
    title = db.Column(db.String(256), nullable=False)
    image = db.Column(db.String(512), nullable=True)
    voice_record = db.Column(db.String(512), nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'quote': self.quote,
            'character': self.character,
            'to': self.to,
            'title': self.title,
            'image': self.image,
            'voice_record': self.voice_record,
        }


class FilmQuote(QuoteMixin, db.Model):
    __tablename__ = 'film_quote'


class GameQuote(QuoteMixin, db.Model):
    __tablename__ = 'game_quote'
