import os
import sys
import pytest

# Ensure the backend root (containing the `trivia` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from trivia import create_app, db, socketio, room_store
from trivia.store import MemoryRoomStore
from trivia.multiplayer.clock import ClockSync


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    QUESTION_TIME_EASY_SEC = 30
    QUESTION_TIME_MEDIUM_SEC = 20
    QUESTION_TIME_HARD_SEC = 15
    ROOM_CODE_LENGTH = 6
    ROOM_CODE_ATTEMPTS = 10
    MEDIA_BASE_URL = 'https://cdn.example.test'


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start_ms=1_700_000_000_000):
        self.now = start_ms

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += int(seconds * 1000)


class StaticQuestionSource:
    """Hands out canned questions; the correct answer is always 'A'."""

    def __init__(self, fail_on=None):
        self.calls = []
        self.fail_on = fail_on

    def fetch_question(self, question_type, difficulty):
        self.calls.append((question_type, difficulty))
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise RuntimeError('quote bank unavailable')
        n = len(self.calls)
        return {
            'questionText': f'Question {n}?',
            'options': ['A', 'B', 'C', 'D'],
            'correctAnswer': 'A',
            'source': 'film',
            'type': question_type,
            'media': {'image': f'/media/q{n}.jpg', 'voice_record': None, 'quote': None},
        }


class RecordingScoreRecorder:
    def __init__(self, fail=False):
        self.results = []
        self.fail = fail

    def record_game_result(self, score, mode):
        if self.fail:
            raise RuntimeError('history service down')
        self.results.append((score, mode))


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    room_store.clear()
    with application.app_context():
        # Ensure models are imported so tables are created
        import trivia.models  # noqa: F401
        db.create_all()
    # Requests push their own app context, keeping Flask-Login users per client
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()
    room_store.clear()


@pytest.fixture()
def app_context(flask_app):
    with flask_app.app_context():
        yield flask_app


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def store(clock):
    return MemoryRoomStore(clock=clock)


@pytest.fixture()
def clock_sync(store, clock):
    return ClockSync(store, local_clock=clock)


@pytest.fixture()
def questions():
    return StaticQuestionSource()


@pytest.fixture()
def recorder():
    return RecordingScoreRecorder()


@pytest.fixture()
def failing_questions():
    return StaticQuestionSource(fail_on=2)
