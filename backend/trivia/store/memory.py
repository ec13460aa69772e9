import copy
import logging
import threading
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from .base import Listener, RoomStore, is_server_timestamp, split_path

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class _Subscription:
    __slots__ = ('path', 'callback', 'last', 'active')

    def __init__(self, path: str, callback: Listener):
        self.path = path
        self.callback = callback
        self.last: Any = None
        self.active = True


class MemoryRoomStore(RoomStore):
    """Thread-safe in-process document store.

    Listeners are called outside the lock, in write order. A write made from
    inside a listener is delivered on the next dispatch pass rather than
    recursively.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or _now_ms
        self._lock = threading.RLock()
        self._root: Dict[str, Any] = {}
        self._subscriptions: List[_Subscription] = []
        self._disconnect_hooks: Dict[str, List[str]] = {}
        self._last_timestamp = 0
        self._dispatching = False
        self._dirty = False

    def clear(self) -> None:
        with self._lock:
            self._root = {}
            for sub in self._subscriptions:
                sub.active = False
            self._subscriptions = []
            self._disconnect_hooks = {}

    # ---- reads ----

    def server_time(self) -> int:
        with self._lock:
            # Never hand out a timestamp older than one already issued
            now = max(int(self._clock()), self._last_timestamp)
            self._last_timestamp = now
            return now

    def get(self, path: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._node(split_path(path)))

    def _node(self, segments: List[str]) -> Any:
        node: Any = self._root
        for seg in segments:
            if isinstance(node, dict):
                node = node.get(seg)
            elif isinstance(node, list) and seg.isdigit() and int(seg) < len(node):
                node = node[int(seg)]
            else:
                return None
            if node is None:
                return None
        return node

    # ---- writes ----

    def set(self, path: str, value: Any) -> None:
        with self._lock:
            stamp = self.server_time()
            self._write(split_path(path), self._prepare(value, stamp))
        self._notify()

    def set_if_absent(self, path: str, value: Any) -> bool:
        segments = split_path(path)
        with self._lock:
            if self._node(segments) is not None:
                return False
            stamp = self.server_time()
            self._write(segments, self._prepare(value, stamp))
        self._notify()
        return True

    def update(self, path: str, values: Dict[str, Any]) -> None:
        base = split_path(path)
        with self._lock:
            stamp = self.server_time()
            for rel_path, value in values.items():
                self._write(base + split_path(rel_path), self._prepare(value, stamp))
        self._notify()

    def _prepare(self, value: Any, stamp: int) -> Any:
        """Resolve timestamps, drop null members and empty maps."""
        if is_server_timestamp(value):
            return stamp
        if isinstance(value, dict):
            out = {}
            for key, child in value.items():
                prepared = self._prepare(child, stamp)
                if prepared is not None:
                    out[str(key)] = prepared
            return out or None
        if isinstance(value, (list, tuple)):
            return [self._prepare(child, stamp) for child in value]
        return copy.deepcopy(value)

    def _write(self, segments: List[str], value: Any) -> None:
        if not segments:
            self._root = value if isinstance(value, dict) else {}
            return
        node = self._root
        for seg in segments[:-1]:
            child = node.get(seg)
            if child is None:
                if value is None:
                    return
                child = {}
                node[seg] = child
            elif not isinstance(child, dict):
                raise TypeError(f"cannot write below non-map node '{seg}'")
            node = child
        if value is None:
            node.pop(segments[-1], None)
        else:
            node[segments[-1]] = value
        self._prune(segments)

    def _prune(self, segments: List[str]) -> None:
        for depth in range(len(segments) - 1, 0, -1):
            node = self._node(segments[:depth])
            if isinstance(node, dict) and not node:
                parent = self._node(segments[:depth - 1]) if depth > 1 else self._root
                parent.pop(segments[depth - 1], None)
            else:
                break

    # ---- notifications ----

    def subscribe(self, path: str, callback: Listener) -> Callable[[], None]:
        sub = _Subscription(path, callback)
        with self._lock:
            sub.last = copy.deepcopy(self._node(split_path(path)))
            self._subscriptions.append(sub)
            initial = copy.deepcopy(sub.last)
        callback(initial)

        def unsubscribe() -> None:
            with self._lock:
                sub.active = False
                if sub in self._subscriptions:
                    self._subscriptions.remove(sub)

        return unsubscribe

    def _notify(self) -> None:
        with self._lock:
            self._dirty = True
            if self._dispatching:
                return
            self._dispatching = True
        try:
            while True:
                with self._lock:
                    if not self._dirty:
                        self._dispatching = False
                        return
                    self._dirty = False
                    pending = []
                    for sub in list(self._subscriptions):
                        value = self._node(split_path(sub.path))
                        if value != sub.last:
                            sub.last = copy.deepcopy(value)
                            pending.append((sub, copy.deepcopy(value)))
                for sub, value in pending:
                    if not sub.active:
                        continue
                    try:
                        sub.callback(value)
                    except Exception:
                        logger.exception(f"[store-listener] path={sub.path} listener failed")
        except BaseException:
            with self._lock:
                self._dispatching = False
            raise

    # ---- presence ----

    def connect(self) -> str:
        connection_id = uuid.uuid4().hex
        with self._lock:
            self._disconnect_hooks[connection_id] = []
        return connection_id

    def on_disconnect_remove(self, connection_id: str, path: str) -> None:
        with self._lock:
            hooks = self._disconnect_hooks.setdefault(connection_id, [])
            if path not in hooks:
                hooks.append(path)

    def cancel_on_disconnect(self, connection_id: str, path: Optional[str] = None) -> None:
        with self._lock:
            hooks = self._disconnect_hooks.get(connection_id)
            if hooks is None:
                return
            if path is None:
                hooks.clear()
            elif path in hooks:
                hooks.remove(path)

    def disconnect(self, connection_id: str) -> List[str]:
        with self._lock:
            paths = self._disconnect_hooks.pop(connection_id, [])
            for path in paths:
                self._write(split_path(path), None)
        if paths:
            logger.info(f"[presence] connection={connection_id} removed={paths}")
            self._notify()
        return paths
