import os
import sys
import time
import pytest

# Ensure the backend root (containing the `arksync` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from arksync import create_app, db, socketio
from arksync.services.broadcast import NAMESPACE
from arksync.services.timer import stop_poller


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = []
    TEAM_IDS = ['A', 'B']
    TEAM_PASSWORDS = {'A': 'a71b', 'B': 'a2b8'}
    OBSERVER_ID = 'Referee'
    OBSERVER_PASSWORD = 'ref-secret'
    PROGRESS_LENGTH = 5
    GAME_DURATION_SEC = 75
    TIMER_POLL_INTERVAL_SEC = 5
    CLAIM_CONTRACTS = [
        {'field_id': 'first', 'win_value': '60', 'lose_value': '0', 'opponent_field_id': 'first'},
        {'field_id': 'firstFinish', 'win_value': '80', 'lose_value': '50', 'opponent_field_id': 'firstFinish'},
    ]


class RecordingBroadcaster:
    """Stands in for the Socket.IO broadcaster in service-level tests."""

    def __init__(self):
        self.state_broadcasts = 0
        self.global_broadcasts = 0

    def broadcast_state(self):
        self.state_broadcasts += 1

    def broadcast_global(self):
        self.global_broadcasts += 1


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
        db.session.remove()
        db.drop_all()


POLL_INTERVAL_SEC = 0.05


def _file_backed_app(tmp_path, **overrides):
    """App on a SQLite file, so threads each get their own connection."""
    overrides['SQLALCHEMY_DATABASE_URI'] = f"sqlite:///{tmp_path / 'ark.db'}"
    config_class = type('FileBackedConfig', (TestConfig,), overrides)
    return create_app(config_class)


def _teardown_file_backed_app(application):
    stop_poller(application)
    # let a sleeping poll loop observe the stop flag before tables go away
    time.sleep(POLL_INTERVAL_SEC * 4)
    db.session.remove()
    db.drop_all()
    db.engine.dispose()


@pytest.fixture()
def file_app(tmp_path):
    application = _file_backed_app(tmp_path)
    with application.app_context():
        yield application
        _teardown_file_backed_app(application)


@pytest.fixture()
def polling_app(tmp_path):
    application = _file_backed_app(
        tmp_path,
        ENABLE_POLLER_IN_TESTS=True,
        TIMER_POLL_INTERVAL_SEC=POLL_INTERVAL_SEC,
        GAME_DURATION_SEC=0.2,
    )
    with application.app_context():
        yield application
        _teardown_file_backed_app(application)


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def services(flask_app):
    return flask_app.extensions['arksync']


@pytest.fixture()
def recorder():
    return RecordingBroadcaster()


@pytest.fixture()
def make_sio(flask_app):
    """Factory for Socket.IO test clients; all are disconnected on teardown."""
    created = []

    def _make():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace=NAMESPACE,
        )
        test_client.get_received(NAMESPACE)  # flush 'connected'
        created.append(test_client)
        return test_client

    yield _make
    for test_client in created:
        try:
            if test_client.is_connected(NAMESPACE):
                test_client.disconnect(namespace=NAMESPACE)
        except Exception:
            pass


def login(sio_client, team_id, password):
    sio_client.emit('login', {'teamId': team_id, 'password': password}, namespace=NAMESPACE)
    return sio_client.get_received(NAMESPACE)


def events_named(received, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]
