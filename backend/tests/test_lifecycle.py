import re

import pytest

from trivia.multiplayer import (
    CodeCollision,
    RoomClosed,
    RoomNotFound,
    create_room,
    join_room,
    leave_room,
    prune_empty_rooms,
    room_path,
)
from trivia.multiplayer import lifecycle
from trivia.multiplayer.lifecycle import generate_room_code, rooms_touched
from trivia.store import MemoryRoomStore


class RoomVanishesDuringJoin(MemoryRoomStore):
    """Lets the last player leave right before a join writes its entry."""

    def __init__(self, clock, code, leaver):
        super().__init__(clock=clock)
        self.code = code
        self.leaver = leaver
        self.raced = False

    def set_if_absent(self, path, value):
        if not self.raced and path.startswith(room_path(self.code, 'players')):
            self.raced = True
            leave_room(self, self.code, self.leaver)
        return super().set_if_absent(path, value)


def test_generated_codes_are_six_uppercase_alphanumerics():
    for _ in range(50):
        assert re.fullmatch(r'[A-Z0-9]{6}', generate_room_code())


def test_create_room_defaults(store, clock):
    code = create_room(store, 'u1', 'Ann')
    doc = store.get(room_path(code))
    assert doc == {
        'status': 'waiting',
        'creatorId': 'u1',
        'createdAt': clock.now,
        'players': {'u1': {'name': 'Ann', 'score': 0, 'isReady': False}},
        'difficulty': 'easy',
        'questionCount': 5,
        'gameMode': 'normal',
    }


def test_create_room_retries_on_collision(store, monkeypatch):
    store.set(room_path('TAKEN1'), {'status': 'waiting', 'creatorId': 'x'})
    codes = iter(['TAKEN1', 'FRESH1'])
    monkeypatch.setattr(lifecycle, 'generate_room_code', lambda length=6: next(codes))
    assert create_room(store, 'u1', 'Ann') == 'FRESH1'
    assert store.get(room_path('TAKEN1', 'creatorId')) == 'x'


def test_create_room_gives_up(store, monkeypatch):
    store.set(room_path('TAKEN1'), {'status': 'waiting'})
    monkeypatch.setattr(lifecycle, 'generate_room_code', lambda length=6: 'TAKEN1')
    with pytest.raises(CodeCollision):
        create_room(store, 'u1', 'Ann', attempts=3)


def test_explicit_code_is_tried_once(store):
    assert create_room(store, 'u1', 'Ann', code='ROOM42') == 'ROOM42'
    with pytest.raises(CodeCollision):
        create_room(store, 'u2', 'Bob', code='ROOM42')


def test_join_adds_player_and_is_idempotent(store):
    code = create_room(store, 'u1', 'Ann')
    assert join_room(store, code, 'u2', 'Bob') is True
    store.set(room_path(code, 'players', 'u2', 'score'), 7)
    assert join_room(store, code, 'u2', 'Bob again') is False
    assert store.get(room_path(code, 'players', 'u2')) == {'name': 'Bob', 'score': 7, 'isReady': False}


def test_join_missing_room(store):
    with pytest.raises(RoomNotFound):
        join_room(store, 'NOPE00', 'u2', 'Bob')


def test_join_refused_once_game_started(store):
    code = create_room(store, 'u1', 'Ann')
    store.set(room_path(code, 'status'), 'in-game')
    with pytest.raises(RoomClosed):
        join_room(store, code, 'u2', 'Bob')
    # Existing members can still reconnect
    assert join_room(store, code, 'u1', 'Ann') is False


def test_leave_removes_player_and_last_one_deletes_room(store):
    code = create_room(store, 'u1', 'Ann')
    join_room(store, code, 'u2', 'Bob')
    leave_room(store, code, 'u2')
    assert list(store.get(room_path(code, 'players'))) == ['u1']
    leave_room(store, code, 'u1')
    assert store.get(room_path(code)) is None
    # Leaving twice is harmless
    leave_room(store, code, 'u1')
    with pytest.raises(RoomNotFound):
        join_room(store, code, 'u3', 'Cy')


def test_join_racing_room_deletion_leaves_nothing_behind(clock):
    store = RoomVanishesDuringJoin(clock, 'RACE01', 'u1')
    create_room(store, 'u1', 'Ann', code='RACE01')
    with pytest.raises(RoomNotFound):
        join_room(store, 'RACE01', 'u2', 'Bob')
    assert store.get(room_path('RACE01')) is None


def test_disconnect_removes_player_and_empty_room_is_pruned(store):
    host_conn = store.connect()
    guest_conn = store.connect()
    code = create_room(store, 'u1', 'Ann', connection_id=host_conn)
    join_room(store, code, 'u2', 'Bob', connection_id=guest_conn)

    removed = store.disconnect(guest_conn)
    assert prune_empty_rooms(store, rooms_touched(removed)) == []
    assert list(store.get(room_path(code, 'players'))) == ['u1']

    removed = store.disconnect(host_conn)
    # The document outlives its last player until pruned
    assert store.get(room_path(code, 'status')) == 'waiting'
    assert prune_empty_rooms(store, rooms_touched(removed)) == [code]
    assert store.get(room_path(code)) is None


def test_leave_cancels_disconnect_hook(store):
    conn = store.connect()
    code = create_room(store, 'u1', 'Ann', connection_id=conn)
    join_room(store, code, 'u2', 'Bob', connection_id=conn)
    leave_room(store, code, 'u2', connection_id=conn)
    assert store.disconnect(conn) == [room_path(code, 'players', 'u1')]


def test_prune_keeps_rooms_with_players(store):
    store.set(room_path('KEEP01', 'status'), 'waiting')
    store.set(room_path('KEEP02', 'players', 'u1', 'name'), 'Ann')
    assert prune_empty_rooms(store, ['KEEP01', 'KEEP02', 'GONE00']) == ['KEEP01']
    assert store.get(room_path('KEEP02')) is not None


def test_rooms_touched():
    paths = ['rooms/AAA111/players/u1', 'rooms/AAA111/players/u2', 'rooms/BBB222/players/u3', 'other/x']
    assert rooms_touched(paths) == ['AAA111', 'BBB222']
