"""Read model for the shared room document.

Documents are parsed leniently: a client may observe a room halfway through
someone else's multi-path write, so missing or half-written members fall back
to empty values instead of raising.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..store import join_path

STATUS_WAITING = 'waiting'
STATUS_IN_GAME = 'in-game'
STATUS_FINISHED = 'finished'

MODE_NORMAL = 'normal'
MODE_RUSH = 'rush'
GAME_MODES = (MODE_NORMAL, MODE_RUSH)

DIFFICULTIES = ('easy', 'medium', 'hard')
DEFAULT_TIME_LIMITS = {'easy': 30, 'medium': 20, 'hard': 15}

DEFAULT_QUESTION_COUNT = 5
MAX_QUESTION_COUNT = 20
QUESTION_TYPES = (1, 2, 3, 4)
QUESTION_SOURCES = ('film', 'game')

# Floor and penalty used by both scoring modes
MIN_CORRECT_POINTS = 5
MISS_PENALTY = -5

ROOMS_ROOT = 'rooms'


def room_path(code: str, *parts: Any) -> str:
    return join_path(ROOMS_ROOT, code, *[str(p) for p in parts])


def time_limits_from_config(config) -> dict[str, int]:
    return {
        'easy': int(config.get('QUESTION_TIME_EASY_SEC', DEFAULT_TIME_LIMITS['easy'])),
        'medium': int(config.get('QUESTION_TIME_MEDIUM_SEC', DEFAULT_TIME_LIMITS['medium'])),
        'hard': int(config.get('QUESTION_TIME_HARD_SEC', DEFAULT_TIME_LIMITS['hard'])),
    }


def as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


@dataclass
class Player:
    name: str
    score: int = 0
    is_ready: bool = False

    @classmethod
    def from_document(cls, data: Any) -> Player:
        data = data if isinstance(data, dict) else {}
        return cls(
            name=str(data.get('name') or ''),
            score=as_int(data.get('score')) or 0,
            is_ready=bool(data.get('isReady', False)),
        )

    def to_document(self) -> dict:
        return {'name': self.name, 'score': self.score, 'isReady': self.is_ready}


@dataclass
class Media:
    image: Optional[str] = None
    voice_record: Optional[str] = None
    quote: Optional[str] = None

    def to_document(self) -> dict:
        return {'image': self.image, 'voice_record': self.voice_record, 'quote': self.quote}


@dataclass
class Question:
    question_text: str
    options: list[str]
    correct_answer: str
    source: str
    type: int
    media: Optional[Media] = None

    @classmethod
    def from_document(cls, data: Any) -> Question:
        data = data if isinstance(data, dict) else {}
        media = data.get('media')
        return cls(
            question_text=str(data.get('questionText') or ''),
            options=[str(o) for o in (data.get('options') or [])],
            correct_answer=str(data.get('correctAnswer') or ''),
            source=str(data.get('source') or ''),
            type=as_int(data.get('type')) or 0,
            media=Media(
                image=media.get('image'),
                voice_record=media.get('voice_record'),
                quote=media.get('quote'),
            ) if isinstance(media, dict) else None,
        )

    def to_document(self) -> dict:
        doc = {
            'questionText': self.question_text,
            'options': list(self.options),
            'correctAnswer': self.correct_answer,
            'source': self.source,
            'type': self.type,
        }
        if self.media is not None:
            doc['media'] = self.media.to_document()
        return doc


@dataclass
class Answer:
    answer: str
    timestamp: Optional[int] = None


@dataclass
class Room:
    code: str
    status: str = STATUS_WAITING
    creator_id: Optional[str] = None
    created_at: Optional[int] = None
    players: dict[str, Player] = field(default_factory=dict)
    questions: list[Question] = field(default_factory=list)
    current_question_index: Optional[int] = None
    current_question_start_time: Optional[int] = None
    answers: dict[int, dict[str, Answer]] = field(default_factory=dict)
    locked_players: dict[int, list[str]] = field(default_factory=dict)
    difficulty: str = 'easy'
    question_count: int = DEFAULT_QUESTION_COUNT
    game_mode: str = MODE_NORMAL
    preload_media_url: Optional[str] = None

    @classmethod
    def from_document(cls, code: str, doc: Any) -> Room:
        doc = doc if isinstance(doc, dict) else {}
        players = {
            str(pid): Player.from_document(p)
            for pid, p in (doc.get('players') or {}).items()
        }
        questions = [Question.from_document(q) for q in (doc.get('questions') or [])]

        answers: dict[int, dict[str, Answer]] = {}
        for idx, by_player in _indexed(doc.get('answers')):
            if not isinstance(by_player, dict):
                continue
            answers[idx] = {
                str(pid): Answer(answer=str(a.get('answer', '')), timestamp=as_int(a.get('timestamp')))
                for pid, a in by_player.items()
                if isinstance(a, dict)
            }

        locked: dict[int, list[str]] = {}
        for idx, ids in _indexed(doc.get('lockedPlayers')):
            if isinstance(ids, dict):
                ids = [pid for pid, flag in ids.items() if flag]
            locked[idx] = [str(pid) for pid in (ids or [])]

        return cls(
            code=code,
            status=str(doc.get('status') or STATUS_WAITING),
            creator_id=doc.get('creatorId'),
            created_at=as_int(doc.get('createdAt')),
            players=players,
            questions=questions,
            current_question_index=as_int(doc.get('currentQuestionIndex')),
            current_question_start_time=as_int(doc.get('currentQuestionStartTime')),
            answers=answers,
            locked_players=locked,
            difficulty=str(doc.get('difficulty') or 'easy'),
            question_count=as_int(doc.get('questionCount')) or DEFAULT_QUESTION_COUNT,
            game_mode=str(doc.get('gameMode') or MODE_NORMAL),
            preload_media_url=doc.get('preloadMediaUrl'),
        )

    @property
    def current_question(self) -> Optional[Question]:
        idx = self.current_question_index
        if idx is None or not 0 <= idx < len(self.questions):
            return None
        return self.questions[idx]

    @property
    def is_last_question(self) -> bool:
        return self.current_question_index is not None and self.current_question_index >= len(self.questions) - 1

    def is_creator(self, identity: str) -> bool:
        return self.creator_id is not None and self.creator_id == identity

    def answers_for(self, index: int) -> dict[str, Answer]:
        return self.answers.get(index, {})

    def locked_for(self, index: int) -> list[str]:
        return self.locked_players.get(index, [])

    def time_limit(self, time_limits: Optional[dict[str, int]] = None) -> int:
        limits = time_limits or DEFAULT_TIME_LIMITS
        return int(limits.get(self.difficulty, limits.get('easy', DEFAULT_TIME_LIMITS['easy'])))


def _indexed(value: Any):
    """Yield (int index, item) pairs from a map keyed by index or a list."""
    if isinstance(value, list):
        for idx, item in enumerate(value):
            if item is not None:
                yield idx, item
    elif isinstance(value, dict):
        for key, item in value.items():
            idx = as_int(key) if not isinstance(key, str) else (int(key) if key.isdigit() else None)
            if idx is not None:
                yield idx, item
