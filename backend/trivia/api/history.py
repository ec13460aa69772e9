from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user
from trivia.models import GameHistory
from trivia.services.history import record_game_result

history = Blueprint('history', __name__)


@history.route('', methods=['GET'])
@login_required
def list_history():
    entries = (
        GameHistory.query.filter_by(user_id=current_user.id)
        .order_by(GameHistory.played_at.desc(), GameHistory.id.desc())
        .all()
    )
    return jsonify([e.to_dict() for e in entries])


@history.route('', methods=['POST'])
@login_required
def add_history():
    data = request.get_json(silent=True) or {}
    score = data.get('score')
    mode = data.get('mode')
    if not isinstance(score, int) or isinstance(score, bool):
        return jsonify({'error': 'Invalid score'}), 400
    entry = record_game_result(current_user.id, score, mode)
    return jsonify(entry.to_dict()), 201
