"""Shared room document store.

The store plays the part of a hosted realtime database: every participant
reads and writes the same JSON-like tree and receives pushes when the part
it subscribed to changes. There is no game loop behind it.
"""

from .base import SERVER_TIMESTAMP, RoomStore, is_server_timestamp, join_path, split_path
from .memory import MemoryRoomStore

__all__ = [
    'SERVER_TIMESTAMP',
    'RoomStore',
    'MemoryRoomStore',
    'is_server_timestamp',
    'join_path',
    'split_path',
]
