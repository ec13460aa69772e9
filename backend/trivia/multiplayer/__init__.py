"""Client-side multiplayer core: everything a participant needs to play a
room through the shared store."""

from .answers import submit_answer
from .clock import ClockSync
from .errors import (
    AlreadyAnswered,
    CodeCollision,
    GameError,
    InvalidPhase,
    InvalidSetting,
    NotAuthorized,
    PlayerLockedOut,
    QuestionAlreadyWon,
    QuestionFetchFailed,
    RoomClosed,
    RoomNotFound,
)
from .lifecycle import create_room, join_room, leave_room, prune_empty_rooms
from .lobby import reset_to_lobby, set_ready, start_game, update_setting, update_settings
from .room import Room, room_path
from .session import GameClient, build_advance_update, is_question_closed

__all__ = [
    'AlreadyAnswered', 'ClockSync', 'CodeCollision', 'GameClient', 'GameError',
    'InvalidPhase', 'InvalidSetting', 'NotAuthorized', 'PlayerLockedOut',
    'QuestionAlreadyWon', 'QuestionFetchFailed', 'Room', 'RoomClosed',
    'RoomNotFound', 'build_advance_update', 'create_room', 'is_question_closed',
    'join_room', 'leave_room', 'prune_empty_rooms', 'reset_to_lobby', 'room_path',
    'set_ready', 'start_game', 'submit_answer', 'update_setting', 'update_settings',
]
