from trivia import socketio, room_store
from trivia.multiplayer import create_room, join_room, room_path


def _values(sio_client, path=None):
    events = sio_client.get_received('/ws')
    return [e['args'][0]['value'] for e in events
            if e['name'] == 'value' and (path is None or e['args'][0]['path'] == path)]


def test_socket_connect_announces_sid(sio_client):
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    received = sio_client.get_received('/ws')
    connected = [pkt for pkt in received if pkt['name'] == 'connected']
    assert connected and 'server_time' in connected[0]['args'][0]


def test_subscribe_pushes_initial_and_changed_values(sio_client):
    sio_client.get_received('/ws')  # flush
    ack = sio_client.emit('subscribe', {'path': 'rooms/ABC123/status'}, namespace='/ws', callback=True)
    assert ack == {'ok': True, 'value': None}
    assert _values(sio_client, 'rooms/ABC123/status') == [None]

    room_store.set(room_path('ABC123', 'status'), 'waiting')
    assert _values(sio_client, 'rooms/ABC123/status') == ['waiting']

    sio_client.emit('unsubscribe', {'path': 'rooms/ABC123/status'}, namespace='/ws', callback=True)
    room_store.set(room_path('ABC123', 'status'), 'in-game')
    assert _values(sio_client) == []


def test_writes_are_acknowledged(sio_client):
    ack = sio_client.emit('set', {'path': 'rooms/R1/status', 'value': 'waiting'}, namespace='/ws', callback=True)
    assert ack['ok'] is True
    ack = sio_client.emit('set_if_absent', {'path': 'rooms/R1/status', 'value': 'x'}, namespace='/ws', callback=True)
    assert ack == {'ok': True, 'value': False}
    ack = sio_client.emit('update', {'path': 'rooms/R1', 'values': {'difficulty': 'hard', 'status': 'in-game'}},
                          namespace='/ws', callback=True)
    assert ack['ok'] is True
    ack = sio_client.emit('get', {'path': 'rooms/R1'}, namespace='/ws', callback=True)
    assert ack['value'] == {'status': 'in-game', 'difficulty': 'hard'}
    sio_client.emit('remove', {'path': 'rooms/R1'}, namespace='/ws', callback=True)
    assert room_store.get('rooms/R1') is None


def test_bad_requests_are_refused(sio_client):
    assert sio_client.emit('set', {'value': 1}, namespace='/ws', callback=True)['ok'] is False
    assert sio_client.emit('update', {'path': 'x', 'values': [1]}, namespace='/ws', callback=True)['ok'] is False


def test_server_time_is_monotonic(sio_client):
    first = sio_client.emit('server_time', {}, namespace='/ws', callback=True)['value']
    second = sio_client.emit('server_time', {}, namespace='/ws', callback=True)['value']
    assert second >= first


def test_disconnect_removes_players_and_prunes_empty_rooms(flask_app, sio_client):
    code = create_room(room_store, 'host', 'Ann', code='ROOM01')
    guest = socketio.test_client(flask_app, namespace='/ws')

    join_room(room_store, code, 'guest', 'Bob')
    guest.emit('on_disconnect_remove', {'path': room_path(code, 'players', 'guest')}, namespace='/ws', callback=True)
    sio_client.emit('on_disconnect_remove', {'path': room_path(code, 'players', 'host')}, namespace='/ws', callback=True)
    sio_client.emit('subscribe', {'path': room_path(code, 'players')}, namespace='/ws', callback=True)
    sio_client.get_received('/ws')  # flush

    guest.disconnect(namespace='/ws')
    assert _values(sio_client, room_path(code, 'players'))[-1] == {
        'host': {'name': 'Ann', 'score': 0, 'isReady': False},
    }

    sio_client.disconnect(namespace='/ws')
    assert room_store.get(room_path(code)) is None


def test_cancelled_hook_survives_disconnect(flask_app):
    code = create_room(room_store, 'host', 'Ann', code='ROOM02')
    host = socketio.test_client(flask_app, namespace='/ws')
    path = room_path(code, 'players', 'host')
    host.emit('on_disconnect_remove', {'path': path}, namespace='/ws', callback=True)
    host.emit('cancel_on_disconnect', {'path': path}, namespace='/ws', callback=True)
    host.disconnect(namespace='/ws')
    assert room_store.get(path) == {'name': 'Ann', 'score': 0, 'isReady': False}
