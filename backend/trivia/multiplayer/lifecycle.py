import logging
import random
import string
from typing import Iterable, List, Optional

from ..store import SERVER_TIMESTAMP, RoomStore, split_path
from .errors import CodeCollision, RoomClosed, RoomNotFound
from .room import (
    DEFAULT_QUESTION_COUNT,
    MODE_NORMAL,
    ROOMS_ROOT,
    STATUS_WAITING,
    room_path,
)

logger = logging.getLogger(__name__)

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6
ROOM_CODE_ATTEMPTS = 10


def generate_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def new_player_document(display_name: str) -> dict:
    return {'name': display_name, 'score': 0, 'isReady': False}


def create_room(
    store: RoomStore,
    host_id: str,
    host_name: str,
    connection_id: Optional[str] = None,
    code: Optional[str] = None,
    attempts: int = ROOM_CODE_ATTEMPTS,
    code_length: int = ROOM_CODE_LENGTH,
    question_count: int = DEFAULT_QUESTION_COUNT,
) -> str:
    """Create a waiting room with the host as its only player.

    A supplied ``code`` is tried once. Generated codes are retried on
    collision; an occupied code is never overwritten.
    """
    document = {
        'status': STATUS_WAITING,
        'creatorId': host_id,
        'createdAt': SERVER_TIMESTAMP,
        'players': {host_id: new_player_document(host_name)},
        'difficulty': 'easy',
        'questionCount': question_count,
        'gameMode': MODE_NORMAL,
    }
    tries = 1 if code else max(1, attempts)
    for attempt in range(tries):
        candidate = code or generate_room_code(code_length)
        if store.set_if_absent(room_path(candidate), document):
            logger.info(f"[room-create] room={candidate} host={host_id} attempt={attempt + 1}")
            if connection_id:
                store.on_disconnect_remove(connection_id, room_path(candidate, 'players', host_id))
            return candidate
        logger.info(f"[room-create] room={candidate} collision attempt={attempt + 1}")
    raise CodeCollision(f"no free room code after {tries} attempt(s)")


def join_room(
    store: RoomStore,
    code: str,
    identity: str,
    display_name: str,
    connection_id: Optional[str] = None,
) -> bool:
    """Add a player to a waiting room. Returns False if they were already in it."""
    room = store.get(room_path(code))
    if not room:
        raise RoomNotFound(f"room {code} does not exist")
    players = room.get('players') or {}
    if identity in players:
        joined = False
    elif room.get('status') != STATUS_WAITING:
        raise RoomClosed(f"room {code} is not accepting players")
    else:
        joined = store.set_if_absent(room_path(code, 'players', identity), new_player_document(display_name))
        current = store.get(room_path(code)) if joined else None
        if joined and not (current and current.get('creatorId') and current.get('status')):
            # The room was deleted between the read and the write
            store.remove(room_path(code, 'players', identity))
            raise RoomNotFound(f"room {code} does not exist")
        if joined:
            logger.info(f"[room-join] room={code} player={identity}")
    if connection_id:
        store.on_disconnect_remove(connection_id, room_path(code, 'players', identity))
    return joined


def leave_room(store: RoomStore, code: str, identity: str, connection_id: Optional[str] = None) -> None:
    player_path = room_path(code, 'players', identity)
    if connection_id:
        store.cancel_on_disconnect(connection_id, player_path)
    if store.get(room_path(code)) is None:
        return
    store.remove(player_path)
    logger.info(f"[room-leave] room={code} player={identity}")
    if not store.get(room_path(code, 'players')):
        store.remove(room_path(code))
        logger.info(f"[room-delete] room={code} last player left")


def rooms_touched(paths: Iterable[str]) -> List[str]:
    codes = []
    for path in paths:
        parts = split_path(path)
        if len(parts) >= 2 and parts[0] == ROOMS_ROOT and parts[1] not in codes:
            codes.append(parts[1])
    return codes


def prune_empty_rooms(store: RoomStore, codes: Iterable[str]) -> List[str]:
    """Delete rooms whose last player vanished through a disconnect hook."""
    removed = []
    for code in codes:
        room = store.get(room_path(code))
        if room is not None and not room.get('players'):
            store.remove(room_path(code))
            removed.append(code)
            logger.info(f"[room-delete] room={code} no players after disconnect")
    return removed
