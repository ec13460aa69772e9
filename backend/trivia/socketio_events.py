from flask import request, current_app
from flask_socketio import emit
from trivia import socketio, room_store
from trivia.multiplayer.lifecycle import prune_empty_rooms, rooms_touched
from trivia.store import join_path
from typing import Callable, Dict

NAMESPACE = '/ws'

# sid -> path -> unsubscribe
_subscriptions: Dict[str, Dict[str, Callable[[], None]]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _ok(value=None):
    return {'ok': True, 'value': value}


def _fail(error: str):
    return {'ok': False, 'error': error}


def _path(data) -> str:
    return join_path((data or {}).get('path') or '')


def handle_connect():
    sid = _get_sid()
    _subscriptions[sid] = {}
    emit('connected', {'sid': sid, 'server_time': room_store.server_time()})


def handle_disconnect(reason=None):
    sid = _get_sid()
    for unsubscribe in (_subscriptions.pop(sid, None) or {}).values():
        unsubscribe()
    removed = room_store.disconnect(sid)
    if removed:
        emptied = prune_empty_rooms(room_store, rooms_touched(removed))
        current_app.logger.info(f"[disconnect] sid={sid} removed={removed} rooms_deleted={emptied}")


def handle_subscribe(data):
    sid = _get_sid()
    path = _path(data)
    if not path:
        return _fail('path is required')
    subs = _subscriptions.setdefault(sid, {})
    if path in subs:
        emit('value', {'path': path, 'value': room_store.get(path)})
        return _ok()

    def push(value, sid=sid, path=path):
        socketio.emit('value', {'path': path, 'value': value}, to=sid, namespace=NAMESPACE)

    subs[path] = room_store.subscribe(path, push)
    return _ok()


def handle_unsubscribe(data):
    unsubscribe = _subscriptions.get(_get_sid(), {}).pop(_path(data), None)
    if unsubscribe:
        unsubscribe()
    return _ok()


def handle_get(data):
    return _ok(room_store.get(_path(data)))


def handle_set(data):
    path = _path(data)
    if not path:
        return _fail('path is required')
    room_store.set(path, (data or {}).get('value'))
    return _ok()


def handle_set_if_absent(data):
    path = _path(data)
    if not path:
        return _fail('path is required')
    return _ok(room_store.set_if_absent(path, (data or {}).get('value')))


def handle_update(data):
    values = (data or {}).get('values')
    if not isinstance(values, dict):
        return _fail('values must be an object')
    room_store.update(_path(data), values)
    return _ok()


def handle_remove(data):
    path = _path(data)
    if not path:
        return _fail('path is required')
    room_store.remove(path)
    return _ok()


def handle_on_disconnect_remove(data):
    path = _path(data)
    if not path:
        return _fail('path is required')
    room_store.on_disconnect_remove(_get_sid(), path)
    return _ok()


def handle_cancel_on_disconnect(data):
    path = _path(data) or None
    room_store.cancel_on_disconnect(_get_sid(), path)
    return _ok()


def handle_server_time(data=None):
    return _ok(room_store.server_time())


def register_socketio_handlers() -> None:
    """Register the room store protocol on namespace '/ws'.

    Handlers reply through Socket.IO acks ({'ok': ..., 'value'|'error': ...});
    subscriptions receive 'value' events with the full value at their path.
    """
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('subscribe', handle_subscribe, namespace=NAMESPACE)
    socketio.on_event('unsubscribe', handle_unsubscribe, namespace=NAMESPACE)
    socketio.on_event('get', handle_get, namespace=NAMESPACE)
    socketio.on_event('set', handle_set, namespace=NAMESPACE)
    socketio.on_event('set_if_absent', handle_set_if_absent, namespace=NAMESPACE)
    socketio.on_event('update', handle_update, namespace=NAMESPACE)
    socketio.on_event('remove', handle_remove, namespace=NAMESPACE)
    socketio.on_event('on_disconnect_remove', handle_on_disconnect_remove, namespace=NAMESPACE)
    socketio.on_event('cancel_on_disconnect', handle_cancel_on_disconnect, namespace=NAMESPACE)
    socketio.on_event('server_time', handle_server_time, namespace=NAMESPACE)
