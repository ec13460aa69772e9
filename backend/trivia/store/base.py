from typing import Any, Callable, Dict, List, Optional

# Placeholder resolved by the store to its own clock at write time.
SERVER_TIMESTAMP = {'.sv': 'timestamp'}

Listener = Callable[[Any], None]


def is_server_timestamp(value: Any) -> bool:
    return isinstance(value, dict) and value.get('.sv') == 'timestamp' and len(value) == 1


def split_path(path: str) -> List[str]:
    return [part for part in (path or '').split('/') if part]


def join_path(*parts: str) -> str:
    segments: List[str] = []
    for part in parts:
        segments.extend(split_path(str(part)))
    return '/'.join(segments)


class RoomStore:
    """Interface shared by the in-process and the remote store.

    Single-path writes are atomic. ``update`` applies several relative
    paths as one visible unit. Nothing spans two calls.
    """

    def get(self, path: str) -> Any:
        raise NotImplementedError

    def set(self, path: str, value: Any) -> None:
        raise NotImplementedError

    def set_if_absent(self, path: str, value: Any) -> bool:
        raise NotImplementedError

    def update(self, path: str, values: Dict[str, Any]) -> None:
        raise NotImplementedError

    def remove(self, path: str) -> None:
        self.set(path, None)

    def subscribe(self, path: str, callback: Listener) -> Callable[[], None]:
        raise NotImplementedError

    def server_time(self) -> int:
        raise NotImplementedError

    # Presence
    def connect(self) -> str:
        raise NotImplementedError

    def on_disconnect_remove(self, connection_id: str, path: str) -> None:
        raise NotImplementedError

    def cancel_on_disconnect(self, connection_id: str, path: Optional[str] = None) -> None:
        raise NotImplementedError

    def disconnect(self, connection_id: str) -> List[str]:
        raise NotImplementedError
