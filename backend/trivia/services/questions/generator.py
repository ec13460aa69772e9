import logging
import random
from typing import Optional

from trivia import db
from trivia.models import FilmQuote, GameQuote

logger = logging.getLogger(__name__)

INCORRECT_OPTIONS = 3
PADDING_OPTION = 'Insufficient Data'


def _random_distinct(model, field: str, count: int, exclude_id: int, exclude_value, rng=random) -> list:
    column = getattr(model, field)
    rows = db.session.query(column).filter(model.id != exclude_id).distinct().all()
    values = [value for (value,) in rows if value and value != exclude_value]
    rng.shuffle(values)
    return values[:count]


def create_question(question_type: int, rng=random) -> Optional[dict]:
    """Build one multiple-choice question from a random film or game quote.

    Types:
      1 - which line is said in this scene (image)
      2 - who is the line said to (image)
      3 - which character says it (voice or quote)
      4 - which film/game is it from (voice or quote)

    Returns None when the picked quote cannot support the requested type.
    """
    model = FilmQuote if rng.random() < 0.5 else GameQuote
    total = model.query.count()
    if total == 0:
        logger.warning(f"[question] no rows in {model.__tablename__}")
        return None
    if total < INCORRECT_OPTIONS + 1 and question_type in (1, 2):
        logger.warning(f"[question] only {total} quotes; type {question_type} options will be padded")

    row = model.query.order_by(model.id).offset(rng.randrange(total)).first()
    if row is None:
        return None

    media = {}
    character = row.character or 'the character'
    if question_type == 1:
        if not row.image:
            return None
        correct = row.quote
        field = 'quote'
        addressee = f"'{row.to}'" if row.to else 'the other character'
        text = f"In this scene, what does {character} say to {addressee}?"
        media['image'] = row.image
    elif question_type == 2:
        if not row.image or not row.to:
            return None
        correct = row.to
        field = 'to'
        text = f'In this scene, who does {character} say "{row.quote}" to?'
        media['image'] = row.image
    elif question_type in (3, 4):
        if not row.voice_record and not row.quote:
            return None
        clip = 'this voice recording' if row.voice_record else 'this quote'
        if question_type == 3:
            correct = row.character
            field = 'character'
            text = f"Who says {clip}?"
        else:
            correct = row.title
            field = 'title'
            kind = 'movie' if model is FilmQuote else 'game'
            text = f"Which {kind} is {clip} from?"
        media['voice_record'] = row.voice_record
        media['quote'] = row.quote
    else:
        logger.error(f"[question] invalid type {question_type}")
        return None

    options = [correct] + _random_distinct(model, field, INCORRECT_OPTIONS, row.id, correct, rng)
    while len(options) < INCORRECT_OPTIONS + 1:
        options.append(PADDING_OPTION)
    rng.shuffle(options)

    return {
        'questionText': text,
        'options': options,
        'correctAnswer': correct,
        'media': media,
        'type': question_type,
        'source': 'film' if model is FilmQuote else 'game',
    }


class BankQuestionSource:
    """Question-fetch interface backed by the quote tables.

    Difficulty changes only what clients show (media), not which quote is
    picked. Needs an app context; pass the app when used off-request.
    """

    def __init__(self, app=None, rng=random, attempts: int = 5):
        self.app = app
        self.rng = rng
        self.attempts = max(1, attempts)

    def fetch_question(self, question_type: int, difficulty: str) -> Optional[dict]:
        if self.app is not None:
            with self.app.app_context():
                return self._pick(question_type)
        return self._pick(question_type)

    def _pick(self, question_type: int) -> Optional[dict]:
        # A random quote may lack the media this type needs; draw again
        for _ in range(self.attempts):
            question = create_question(question_type, self.rng)
            if question is not None:
                return question
        return None
