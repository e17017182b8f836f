import os
import sys
import pytest

# Ensure the backend root (containing the `arena` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from arena import create_app, db, socketio
from arena.services.matches import Arena, Match


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    OPENAI_API_KEY = ''
    BCRYPT_LOG_ROUNDS = 4


class ScriptedOracle:
    """Oracle double: fixed delta and reply, optional failures, call log."""

    def __init__(self, delta=0, reply='Your premise collapses under scrutiny.'):
        self.delta = delta
        self.reply = reply
        self.fail_scoring = False
        self.fail_generation = False
        self.score_calls = []
        self.generate_calls = []

    def score_impact(self, text, phase, speaker_side):
        self.score_calls.append((text, phase, speaker_side))
        if self.fail_scoring:
            raise TimeoutError('judge did not answer')
        return self.delta

    def generate_response(self, topic, recent_history, difficulty, phase):
        self.generate_calls.append((topic, list(recent_history), difficulty, phase))
        if self.fail_generation:
            raise ConnectionError('model offline')
        return self.reply


class MemoryStore:
    def __init__(self):
        self.results = []
        self.messages = []
        self.ratings = {}
        self.fail_messages = False
        self.fail_results = False
        self.result_attempts = 0

    def save_match_result(self, **result):
        self.result_attempts += 1
        if self.fail_results:
            raise RuntimeError('database unavailable')
        self.results.append(result)
        return True

    def save_match_message(self, match_id, user_id, text, phase, delta):
        if self.fail_messages:
            raise RuntimeError('database unavailable')
        self.messages.append((match_id, user_id, text, phase, delta))
        return True

    def rating_for(self, user_id):
        return self.ratings.get(str(user_id))


class StaticTopics:
    def get_random_topic(self):
        return {'title': 'COLONIZING MARS', 'description': 'Is spending billions on Mars better than fixing Earth?'}


class RecordingBroadcaster:
    def __init__(self):
        self.match_events = []
        self.connection_events = []

    def emit_to_match(self, match_id, event, payload):
        self.match_events.append((match_id, event, payload))

    def emit_to_connection(self, sid, event, payload):
        self.connection_events.append((sid, event, payload))

    def events(self, name, match_id=None):
        return [p for (m, e, p) in self.match_events if e == name and (match_id is None or m == match_id)]

    def sent_to(self, sid, name=None):
        return [(e, p) for (s, e, p) in self.connection_events if s == sid and (name is None or e == name)]


# ---- Match core fixtures (no Flask) ----

@pytest.fixture()
def oracle():
    return ScriptedOracle()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def core(oracle, store, broadcaster):
    return Arena(oracle=oracle, store=store, topics=StaticTopics(), broadcaster=broadcaster)


@pytest.fixture()
def make_match(core):
    """Register a match directly, optionally fast-forwarded to a phase."""
    def _make(match_id='m1', mode='casual', difficulty=None, phase=None, time_left=None, momentum=None):
        match = core.registry.create(Match.create(match_id, StaticTopics().get_random_topic(), mode, difficulty))
        if phase is not None:
            from arena.services.matches.phases import duration_of
            match.phase = phase
            match.time_left = duration_of(phase)
        if time_left is not None:
            match.time_left = time_left
        if momentum is not None:
            match.momentum = momentum
        return match
    return _make


# ---- Application fixtures ----

@pytest.fixture()
def flask_app(oracle):
    class _Config(TestConfig):
        ARENA_ORACLE = oracle

    application = create_app(_Config)
    with application.app_context():
        # Ensure models are imported so tables are created
        import arena.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def app_arena(flask_app):
    return flask_app.extensions['arena']


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
