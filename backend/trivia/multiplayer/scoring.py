from typing import Dict, Iterable, Optional

from .room import MIN_CORRECT_POINTS, MISS_PENALTY, MODE_RUSH, Answer, Room


def seconds_remaining_at(answered_at: Optional[int], started_at: Optional[int], time_limit: int) -> int:
    """Whole seconds left on the question clock when an answer was written."""
    if answered_at is None or started_at is None:
        return 0
    elapsed = max(0, (answered_at - started_at) // 1000)
    return time_limit - elapsed


def normal_mode_deltas(
    player_ids: Iterable[str],
    answers: Dict[str, Answer],
    correct_answer: str,
    started_at: Optional[int],
    time_limit: int,
) -> Dict[str, int]:
    """Score every current player independently.

    Correct answers earn the seconds left when they were written, never
    less than 5. A wrong answer and no answer both cost 5.
    """
    deltas = {}
    for pid in player_ids:
        answer = answers.get(pid)
        if answer is not None and answer.answer == correct_answer:
            remaining = seconds_remaining_at(answer.timestamp, started_at, time_limit)
            deltas[pid] = max(remaining, MIN_CORRECT_POINTS)
        else:
            deltas[pid] = MISS_PENALTY
    return deltas


def rush_mode_deltas(
    player_ids: Iterable[str],
    answers: Dict[str, Answer],
    correct_answer: str,
    started_at: Optional[int],
    time_limit: int,
) -> Dict[str, int]:
    """Only the earliest correct answer scores; nobody loses points."""
    present = set(player_ids)
    winner = None
    for pid, answer in answers.items():
        if pid not in present or answer.answer != correct_answer:
            continue
        key = (answer.timestamp if answer.timestamp is not None else float('inf'), pid)
        if winner is None or key < winner[0]:
            winner = (key, pid, answer)
    if winner is None:
        return {}
    _, pid, answer = winner
    remaining = seconds_remaining_at(answer.timestamp, started_at, time_limit)
    return {pid: max(remaining, MIN_CORRECT_POINTS)}


def score_current_question(room: Room, time_limit: int) -> Dict[str, int]:
    question = room.current_question
    if question is None:
        return {}
    policy = rush_mode_deltas if room.game_mode == MODE_RUSH else normal_mode_deltas
    return policy(
        list(room.players),
        room.answers_for(room.current_question_index),
        question.correct_answer,
        room.current_question_start_time,
        time_limit,
    )
