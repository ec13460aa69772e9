from flask import Blueprint, jsonify, request, current_app
from flask_login import login_required, current_user
from trivia import room_store
from trivia.multiplayer import (
    GameError,
    create_room,
    join_room,
    leave_room,
    reset_to_lobby,
    room_path,
    set_ready,
    start_game,
    submit_answer,
    update_settings,
)
from trivia.multiplayer.room import time_limits_from_config
from trivia.multiplayer.clock import ClockSync
from trivia.services.questions import BankQuestionSource

rooms = Blueprint('rooms', __name__)

# Thin HTTP entry points for browser clients. They run the same lobby and
# answer operations a GameClient would, as the logged-in user. Question
# advancement is never done here; it stays on the creator's client.


@rooms.errorhandler(GameError)
def handle_game_error(err):
    current_app.logger.info(f"[room-rejected] {err.code}: {err.message}")
    return jsonify(err.to_dict()), err.status_code


def _identity():
    return str(current_user.id)


def _payload():
    return request.get_json(silent=True) or {}


@rooms.route('', methods=['POST'])
@login_required
def create():
    code = create_room(
        room_store,
        _identity(),
        current_user.username,
        attempts=int(current_app.config.get('ROOM_CODE_ATTEMPTS', 10)),
        code_length=int(current_app.config.get('ROOM_CODE_LENGTH', 6)),
        question_count=int(current_app.config.get('DEFAULT_QUESTION_COUNT', 5)),
    )
    return jsonify({'room_code': code}), 201


@rooms.route('/<string:code>', methods=['GET'])
def get_room(code):
    doc = room_store.get(room_path(code.upper()))
    if not doc:
        return jsonify({'error': 'room_not_found'}), 404
    return jsonify(doc)


@rooms.route('/<string:code>/join', methods=['POST'])
@login_required
def join(code):
    joined = join_room(room_store, code.upper(), _identity(), current_user.username)
    return jsonify({'joined': joined})


@rooms.route('/<string:code>/leave', methods=['POST'])
@login_required
def leave(code):
    leave_room(room_store, code.upper(), _identity())
    return jsonify({'ok': True})


@rooms.route('/<string:code>/ready', methods=['POST'])
@login_required
def ready(code):
    set_ready(room_store, code.upper(), _identity(), bool(_payload().get('ready', True)))
    return jsonify({'ok': True})


@rooms.route('/<string:code>/settings', methods=['POST'])
@login_required
def settings(code):
    update_settings(room_store, code.upper(), _identity(), _payload())
    return jsonify(room_store.get(room_path(code.upper())))


@rooms.route('/<string:code>/start', methods=['POST'])
@login_required
def start(code):
    source = BankQuestionSource()
    questions = start_game(
        room_store,
        code.upper(),
        _identity(),
        source,
        media_base_url=current_app.config.get('MEDIA_BASE_URL', ''),
    )
    return jsonify({'questions': len(questions)})


@rooms.route('/<string:code>/reset', methods=['POST'])
@login_required
def reset(code):
    reset_to_lobby(room_store, code.upper(), _identity())
    return jsonify({'ok': True})


@rooms.route('/<string:code>/answers', methods=['POST'])
@login_required
def answer(code):
    data = _payload()
    question_index = data.get('question_index')
    option = data.get('answer')
    if not isinstance(question_index, int) or not isinstance(option, str):
        return jsonify({'error': 'question_index and answer are required'}), 400
    submit_answer(
        room_store,
        code.upper(),
        _identity(),
        question_index,
        option,
        clock=ClockSync(room_store),
        time_limits=time_limits_from_config(current_app.config),
    )
    return jsonify({'ok': True})
