class GameError(Exception):
    """Rejected room operation. ``code`` is stable and safe to show clients."""

    code = 'game_error'
    status_code = 400

    def __init__(self, message=None):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class RoomNotFound(GameError):
    code = 'room_not_found'
    status_code = 404


class RoomClosed(GameError):
    code = 'room_closed'
    status_code = 409


class CodeCollision(GameError):
    code = 'code_collision'
    status_code = 409


class NotAuthorized(GameError):
    code = 'not_authorized'
    status_code = 403


class InvalidPhase(GameError):
    code = 'invalid_phase'
    status_code = 409


class InvalidSetting(GameError):
    code = 'invalid_setting'


class QuestionFetchFailed(GameError):
    code = 'question_fetch_failed'
    status_code = 502


class QuestionAlreadyWon(GameError):
    code = 'question_already_won'
    status_code = 409


class AlreadyAnswered(GameError):
    code = 'already_answered'
    status_code = 409


class PlayerLockedOut(GameError):
    code = 'player_locked_out'
    status_code = 409
