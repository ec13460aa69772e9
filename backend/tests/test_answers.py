import pytest

from trivia.multiplayer import (
    AlreadyAnswered,
    InvalidPhase,
    NotAuthorized,
    PlayerLockedOut,
    QuestionAlreadyWon,
    create_room,
    join_room,
    room_path,
    set_ready,
    start_game,
    submit_answer,
    update_setting,
)


def _running_game(store, questions, mode='normal', players=('u1', 'u2', 'u3'), count=2):
    code = create_room(store, players[0], players[0].upper())
    for pid in players[1:]:
        join_room(store, code, pid, pid.upper())
    update_setting(store, code, players[0], 'gameMode', mode)
    update_setting(store, code, players[0], 'questionCount', count)
    for pid in players:
        set_ready(store, code, pid, True)
    start_game(store, code, players[0], questions)
    return code


def test_answer_is_recorded_with_server_timestamp(store, clock, questions):
    code = _running_game(store, questions)
    clock.advance(3)
    submit_answer(store, code, 'u2', 0, 'B')
    assert store.get(room_path(code, 'answers', 0, 'u2')) == {'answer': 'B', 'timestamp': clock.now}


def test_second_answer_is_rejected(store, questions):
    code = _running_game(store, questions)
    submit_answer(store, code, 'u2', 0, 'B')
    with pytest.raises(AlreadyAnswered):
        submit_answer(store, code, 'u2', 0, 'A')
    assert store.get(room_path(code, 'answers', 0, 'u2', 'answer')) == 'B'


def test_answers_only_during_game(store):
    code = create_room(store, 'u1', 'Ann')
    with pytest.raises(InvalidPhase):
        submit_answer(store, code, 'u1', 0, 'A')


def test_outsiders_cannot_answer(store, questions):
    code = _running_game(store, questions)
    with pytest.raises(NotAuthorized):
        submit_answer(store, code, 'intruder', 0, 'A')


def test_stale_question_index_is_rejected(store, questions):
    code = _running_game(store, questions)
    store.set(room_path(code, 'currentQuestionIndex'), 1)
    with pytest.raises(InvalidPhase):
        submit_answer(store, code, 'u2', 0, 'A')


def test_expired_countdown_is_rejected_when_clock_given(store, clock, clock_sync, questions):
    code = _running_game(store, questions)
    clock.advance(31)
    with pytest.raises(InvalidPhase):
        submit_answer(store, code, 'u2', 0, 'A', clock=clock_sync)
    # Without a clock the write is still accepted; scoring floors it
    submit_answer(store, code, 'u2', 0, 'A')


def test_rush_wrong_answer_locks_player_out(store, questions):
    code = _running_game(store, questions, mode='rush')
    submit_answer(store, code, 'u2', 0, 'B')
    submit_answer(store, code, 'u3', 0, 'C')
    assert store.get(room_path(code, 'lockedPlayers', 0)) == ['u2', 'u3']
    with pytest.raises(PlayerLockedOut):
        submit_answer(store, code, 'u2', 0, 'A')


def test_rush_question_closes_after_correct_answer(store, questions):
    code = _running_game(store, questions, mode='rush')
    submit_answer(store, code, 'u2', 0, 'A')
    with pytest.raises(QuestionAlreadyWon):
        submit_answer(store, code, 'u3', 0, 'A')
    assert store.get(room_path(code, 'lockedPlayers')) is None


def test_normal_mode_wrong_answer_does_not_lock(store, questions):
    code = _running_game(store, questions)
    submit_answer(store, code, 'u2', 0, 'B')
    assert store.get(room_path(code, 'lockedPlayers')) is None
