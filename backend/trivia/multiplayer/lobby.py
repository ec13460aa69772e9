import logging
import random
from typing import Any, Dict, List, Optional

from ..store import SERVER_TIMESTAMP, RoomStore
from .errors import (
    InvalidPhase,
    InvalidSetting,
    NotAuthorized,
    QuestionFetchFailed,
    RoomNotFound,
)
from .room import (
    DIFFICULTIES,
    GAME_MODES,
    MAX_QUESTION_COUNT,
    QUESTION_SOURCES,
    QUESTION_TYPES,
    STATUS_FINISHED,
    STATUS_IN_GAME,
    STATUS_WAITING,
    Question,
    Room,
    as_int,
    room_path,
)

logger = logging.getLogger(__name__)

# Fields cleared whenever the room (re)enters the lobby or a game starts
GAME_FIELDS = ('questions', 'currentQuestionIndex', 'currentQuestionStartTime',
               'answers', 'lockedPlayers', 'preloadMediaUrl')


def load_room(store: RoomStore, code: str) -> Room:
    doc = store.get(room_path(code))
    if not doc:
        raise RoomNotFound(f"room {code} does not exist")
    return Room.from_document(code, doc)


def set_ready(store: RoomStore, code: str, identity: str, ready: bool) -> None:
    room = load_room(store, code)
    if room.status != STATUS_WAITING:
        raise InvalidPhase('ready flags can only change in the lobby')
    if identity not in room.players:
        raise NotAuthorized(f"{identity} is not in room {code}")
    store.set(room_path(code, 'players', identity, 'isReady'), bool(ready))


def validate_setting(key: str, value: Any) -> Any:
    if key == 'difficulty':
        if value not in DIFFICULTIES:
            raise InvalidSetting(f"difficulty must be one of {', '.join(DIFFICULTIES)}")
        return value
    if key == 'gameMode':
        if value not in GAME_MODES:
            raise InvalidSetting(f"gameMode must be one of {', '.join(GAME_MODES)}")
        return value
    if key == 'questionCount':
        count = as_int(value)
        if count is None or not 1 <= count <= MAX_QUESTION_COUNT:
            raise InvalidSetting(f"questionCount must be between 1 and {MAX_QUESTION_COUNT}")
        return count
    raise InvalidSetting(f"unknown setting '{key}'")


def update_setting(store: RoomStore, code: str, identity: str, key: str, value: Any) -> None:
    update_settings(store, code, identity, {key: value})


def update_settings(store: RoomStore, code: str, identity: str, values: Dict[str, Any]) -> Dict[str, Any]:
    """Validate every setting first, then write them together or not at all."""
    room = load_room(store, code)
    if not room.is_creator(identity):
        raise NotAuthorized('only the room creator can change settings')
    if room.status != STATUS_WAITING:
        raise InvalidPhase('settings are locked once the game starts')
    if not values:
        raise InvalidSetting('no settings given')
    validated = {key: validate_setting(key, value) for key, value in values.items()}
    store.update(room_path(code), validated)
    return validated


def absolute_media_url(url: Optional[str], media_base_url: str) -> Optional[str]:
    if url and media_base_url and url.startswith('/'):
        return media_base_url.rstrip('/') + url
    return url


def validate_question(raw: Any, media_base_url: str = '') -> dict:
    """Normalise one generated question or raise QuestionFetchFailed."""
    if isinstance(raw, Question):
        raw = raw.to_document()
    if not isinstance(raw, dict):
        raise QuestionFetchFailed('question source returned no question')
    options = raw.get('options')
    if not raw.get('questionText'):
        raise QuestionFetchFailed('question has no text')
    if not isinstance(options, list) or not options:
        raise QuestionFetchFailed('question has no options')
    if raw.get('correctAnswer') not in options:
        raise QuestionFetchFailed('correct answer is not among the options')
    if raw.get('source') not in QUESTION_SOURCES:
        raise QuestionFetchFailed(f"unknown question source {raw.get('source')!r}")
    if as_int(raw.get('type')) not in QUESTION_TYPES:
        raise QuestionFetchFailed(f"unknown question type {raw.get('type')!r}")

    question = Question.from_document(raw)
    if question.media is not None:
        question.media.image = absolute_media_url(question.media.image, media_base_url)
        question.media.voice_record = absolute_media_url(question.media.voice_record, media_base_url)
    return question.to_document()


def fetch_questions(source, count: int, difficulty: str, media_base_url: str = '', rng=random) -> List[dict]:
    """Fetch ``count`` questions of random types; any failure aborts the batch."""
    questions = []
    for i in range(count):
        question_type = rng.choice(QUESTION_TYPES)
        try:
            raw = source.fetch_question(question_type, difficulty)
        except QuestionFetchFailed:
            raise
        except Exception as exc:
            logger.warning(f"[question-fetch] n={i + 1}/{count} type={question_type} failed: {exc}")
            raise QuestionFetchFailed(f"question {i + 1} (type {question_type}) could not be fetched") from exc
        questions.append(validate_question(raw, media_base_url))
    return questions


def start_game(
    store: RoomStore,
    code: str,
    identity: str,
    source,
    media_base_url: str = '',
    rng=random,
) -> List[dict]:
    room = load_room(store, code)
    if not room.is_creator(identity):
        raise NotAuthorized('only the room creator can start the game')
    if room.status != STATUS_WAITING:
        raise InvalidPhase('the game has already started')
    if not room.players or not all(p.is_ready for p in room.players.values()):
        raise InvalidPhase('every player must be ready')

    questions = fetch_questions(source, room.question_count, room.difficulty, media_base_url, rng)

    # Settings changed while questions were loading are not re-read here
    store.update(room_path(code), {
        'status': STATUS_IN_GAME,
        'questions': questions,
        'currentQuestionIndex': 0,
        'currentQuestionStartTime': SERVER_TIMESTAMP,
        'answers': None,
        'lockedPlayers': None,
        'preloadMediaUrl': None,
    })
    logger.info(f"[start] room={code} questions={len(questions)} mode={room.game_mode} difficulty={room.difficulty}")
    return questions


def reset_to_lobby(store: RoomStore, code: str, identity: str) -> None:
    room = load_room(store, code)
    if not room.is_creator(identity):
        raise NotAuthorized('only the room creator can reset the room')
    if room.status != STATUS_FINISHED:
        raise InvalidPhase('the room can only be reset after the game finished')

    updates = {name: None for name in GAME_FIELDS}
    for pid in room.players:
        updates[f'players/{pid}/score'] = 0
        updates[f'players/{pid}/isReady'] = False
    updates['status'] = STATUS_WAITING
    store.update(room_path(code), updates)
    logger.info(f"[reset] room={code} players={len(room.players)}")
