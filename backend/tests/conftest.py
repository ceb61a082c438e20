import os
import sys
import random

import pytest

# Ensure the backend root (containing the `puzzlemaster` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from puzzlemaster.config import Config
from puzzlemaster.game.store import RoomStore
from puzzlemaster.server import create_app
from puzzlemaster.storage.backends import MemoryBackend


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    TRUST_PROXY_HEADERS = False
    ROOM_STORE = 'memory'
    ROOM_CAPACITY = 4
    POLLING_ENABLED = False
    PUBLIC_BASE_URL = 'http://play.test'


@pytest.fixture()
def store():
    return RoomStore(MemoryBackend(), config=TestConfig)


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def app_and_socketio():
    return create_app(TestConfig)


@pytest.fixture()
def flask_app(app_and_socketio):
    application, _ = app_and_socketio
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def socketio(app_and_socketio):
    return app_and_socketio[1]


@pytest.fixture()
def sio_factory(flask_app, socketio):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(test_client)
        return test_client

    yield _make
    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except Exception:
            pass


@pytest.fixture()
def sio_client(sio_factory):
    return sio_factory()
