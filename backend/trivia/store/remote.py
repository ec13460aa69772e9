import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

import socketio

from .base import Listener, RoomStore, join_path

logger = logging.getLogger(__name__)

NAMESPACE = '/ws'


class StoreRequestFailed(RuntimeError):
    pass


class RemoteRoomStore(RoomStore):
    """Room store spoken over Socket.IO to a running trivia server.

    Every write is acknowledged by the server. Pushed ``value`` events are
    fanned out to the local listeners registered for that path. The
    connection id is the Socket.IO session id, so disconnect hooks fire when
    this socket drops.
    """

    def __init__(self, url: str, client: Optional[socketio.Client] = None, timeout: float = 5.0):
        self.url = url
        self.timeout = timeout
        self._sio = client or socketio.Client(reconnection=True)
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._hooks: List[str] = []
        self._sio.on('value', self._on_value, namespace=NAMESPACE)
        self._sio.on('connect', self._on_connect, namespace=NAMESPACE)

    def open(self) -> None:
        self._sio.connect(self.url, namespaces=[NAMESPACE])

    def close(self) -> None:
        self._sio.disconnect()

    def start_background_task(self, target, *args):
        return self._sio.start_background_task(target, *args)

    def sleep(self, seconds: float) -> None:
        self._sio.sleep(seconds)

    def _on_connect(self):
        # A new socket has no subscriptions or disconnect hooks on the server
        for path in list(self._listeners):
            self._sio.emit('subscribe', {'path': path}, namespace=NAMESPACE)
        for path in list(self._hooks):
            self._sio.emit('on_disconnect_remove', {'path': path}, namespace=NAMESPACE)

    def _on_value(self, data):
        path = join_path((data or {}).get('path', ''))
        for listener in list(self._listeners.get(path, [])):
            try:
                listener((data or {}).get('value'))
            except Exception:
                logger.exception(f"[store-listener] path={path} listener failed")

    def _call(self, event: str, payload: Dict[str, Any]) -> Any:
        reply = self._sio.call(event, payload, namespace=NAMESPACE, timeout=self.timeout)
        if not isinstance(reply, dict) or not reply.get('ok'):
            error = reply.get('error') if isinstance(reply, dict) else 'no_reply'
            raise StoreRequestFailed(f"{event} failed: {error}")
        return reply.get('value')

    def get(self, path: str) -> Any:
        return self._call('get', {'path': path})

    def set(self, path: str, value: Any) -> None:
        self._call('set', {'path': path, 'value': value})

    def set_if_absent(self, path: str, value: Any) -> bool:
        return bool(self._call('set_if_absent', {'path': path, 'value': value}))

    def update(self, path: str, values: Dict[str, Any]) -> None:
        self._call('update', {'path': path, 'values': values})

    def remove(self, path: str) -> None:
        self._call('remove', {'path': path})

    def subscribe(self, path: str, callback: Listener) -> Callable[[], None]:
        key = join_path(path)
        first = key not in self._listeners
        self._listeners[key].append(callback)
        if first:
            # The server answers with an initial value push
            self._call('subscribe', {'path': key})
        else:
            callback(self.get(key))

        def unsubscribe() -> None:
            listeners = self._listeners.get(key, [])
            if callback in listeners:
                listeners.remove(callback)
            if not listeners and key in self._listeners:
                del self._listeners[key]
                self._call('unsubscribe', {'path': key})

        return unsubscribe

    def server_time(self) -> int:
        return int(self._call('server_time', {}))

    def connect(self) -> str:
        return self._sio.get_sid(namespace=NAMESPACE)

    def on_disconnect_remove(self, connection_id: str, path: str) -> None:
        self._call('on_disconnect_remove', {'path': path})
        if path not in self._hooks:
            self._hooks.append(path)

    def cancel_on_disconnect(self, connection_id: str, path: Optional[str] = None) -> None:
        self._call('cancel_on_disconnect', {'path': path})
        if path is None:
            self._hooks.clear()
        elif path in self._hooks:
            self._hooks.remove(path)

    def disconnect(self, connection_id: str) -> List[str]:
        self._hooks.clear()
        self.close()
        return []
