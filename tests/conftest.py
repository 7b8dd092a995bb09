import pytest
from livecode import create_app
from livecode.config import TestConfig
from livecode.models.db import db
from livecode.queue.dead_letters import DeadLetterQueue
from livecode.services.code_session_service import Session_Service


class FakeRedis:
    """Just enough of the redis list API for the dead-letter queue."""

    def __init__(self):
        self.lists = {}

    def rpush(self, key, value):
        self.lists.setdefault(key, []).append(value)
        return len(self.lists[key])

    def llen(self, key):
        return len(self.lists.get(key, []))

    def lrange(self, key, start, end):
        items = self.lists.get(key, [])
        return items[start:] if end == -1 else items[start:end + 1]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def app(tmp_path, fake_redis):
    class _Config(TestConfig):
        EXECUTION_TEMP_DIR = str(tmp_path / "exec")
        EXECUTION_TIMEOUT_MS = 1000

    app = create_app(_Config)
    app.extensions['dead_letters'] = DeadLetterQueue(fake_redis, _Config.DEAD_LETTER_KEY)

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['execution_store']


@pytest.fixture
def temp_dir(app):
    from pathlib import Path
    return Path(app.config['EXECUTION_TEMP_DIR'])


@pytest.fixture
def make_session(app):
    def _make(language="python", source_code="print('hi')"):
        return Session_Service.create_session(language=language, source_code=source_code)["session_id"]
    return _make
