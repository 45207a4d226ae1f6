import os
import sys
import pytest

# Ensure the backend root (containing the `basecontrol` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from basecontrol import create_app, db, socketio
from basecontrol.services.match.store import merge_fields


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MATCH_STORE = 'sql'
    BASE_COUNT = 4
    DEFAULT_MATCH_MINUTES = 15


class MemoryTestConfig(TestConfig):
    MATCH_STORE = 'memory'


class FakeClock:
    """Manually advanced epoch-ms clock."""

    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms
        return self.now


class DeferredStore:
    """Store whose writes only land (and get pushed) on ``deliver()``.

    Stands in for a remote store with round-trip latency.
    """

    def __init__(self, initial=None):
        self.state = initial
        self.pending = []
        self.observers = []
        self.writes = 0

    def snapshot(self):
        return self.state

    def subscribe(self, on_change):
        self.observers.append(on_change)
        return lambda: self.observers.remove(on_change)

    def write(self, fields):
        self.writes += 1
        self.pending.append(('write', fields))

    def replace(self, state):
        self.writes += 1
        self.pending.append(('replace', state))

    def deliver(self):
        for kind, payload in self.pending:
            self.state = payload if kind == 'replace' else merge_fields(self.state, payload)
        self.pending = []
        self.push(self.state)

    def push(self, payload):
        for on_change in list(self.observers):
            on_change(payload)

    def close(self):
        self.observers = []


class FailingStore(DeferredStore):
    def write(self, fields):
        self.writes += 1
        raise ConnectionError('store unreachable')


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        db.create_all()
        yield application
        application.extensions['match_session'].close()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def memory_app():
    application = create_app(MemoryTestConfig)
    with application.app_context():
        yield application
        application.extensions['match_session'].close()


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
