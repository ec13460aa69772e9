import logging
from typing import Optional

from ..store import SERVER_TIMESTAMP, RoomStore
from .clock import ClockSync
from .errors import (
    AlreadyAnswered,
    InvalidPhase,
    NotAuthorized,
    PlayerLockedOut,
    QuestionAlreadyWon,
)
from .lobby import load_room
from .room import MODE_RUSH, STATUS_IN_GAME, Room, room_path

logger = logging.getLogger(__name__)


def has_correct_answer(room: Room, question_index: int) -> bool:
    if not 0 <= question_index < len(room.questions):
        return False
    correct = room.questions[question_index].correct_answer
    return any(a.answer == correct for a in room.answers_for(question_index).values())


def submit_answer(
    store: RoomStore,
    code: str,
    identity: str,
    question_index: int,
    option: str,
    clock: Optional[ClockSync] = None,
    time_limits: Optional[dict] = None,
) -> None:
    """Record ``identity``'s single answer for ``question_index``.

    Scoring happens later, on the creator's client. With a ``clock`` the
    submission is also refused once the local countdown has run out.
    """
    room = load_room(store, code)
    if room.status != STATUS_IN_GAME:
        raise InvalidPhase('answers are only accepted during a game')
    if identity not in room.players:
        raise NotAuthorized(f"{identity} is not in room {code}")

    rush = room.game_mode == MODE_RUSH
    if rush and has_correct_answer(room, question_index):
        raise QuestionAlreadyWon(f"question {question_index} was already answered correctly")
    if question_index != room.current_question_index:
        raise InvalidPhase(f"question {question_index} is not the current question")
    if rush and identity in room.locked_for(question_index):
        raise PlayerLockedOut(f"{identity} is locked out of question {question_index}")
    if identity in room.answers_for(question_index):
        raise AlreadyAnswered(f"{identity} already answered question {question_index}")
    if clock is not None:
        remaining = clock.seconds_remaining(room.current_question_start_time, room.time_limit(time_limits))
        if remaining <= 0:
            raise InvalidPhase("time is up for this question")

    written = store.set_if_absent(
        room_path(code, 'answers', question_index, identity),
        {'answer': option, 'timestamp': SERVER_TIMESTAMP},
    )
    if not written:
        raise AlreadyAnswered(f"{identity} already answered question {question_index}")
    logger.info(f"[answer] room={code} player={identity} index={question_index}")

    question = room.questions[question_index]
    if rush and option != question.correct_answer:
        # Read-modify-write: a concurrent lockout from another player can be lost
        locked_path = room_path(code, 'lockedPlayers', question_index)
        locked = store.get(locked_path) or []
        if isinstance(locked, dict):
            locked = [pid for pid, flag in locked.items() if flag]
        if identity not in locked:
            store.set(locked_path, list(locked) + [identity])
