from flask import current_app

from trivia import db
from trivia.models import GameHistory


def record_game_result(user_id: int, score: int, mode: str) -> GameHistory:
    if not isinstance(score, int) or isinstance(score, bool):
        raise ValueError('score must be an integer')
    entry = GameHistory(user_id=user_id, score=score, mode=mode)
    db.session.add(entry)
    try:
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info(f"[history] user={user_id} score={score} mode={mode}")
    return entry


class HistoryRecorder:
    """Score-persistence interface for one logged-in player."""

    def __init__(self, user_id: int, app=None):
        self.user_id = user_id
        self.app = app

    def record_game_result(self, score: int, mode: str) -> GameHistory:
        if self.app is not None:
            with self.app.app_context():
                return record_game_result(self.user_id, score, mode)
        return record_game_result(self.user_id, score, mode)
