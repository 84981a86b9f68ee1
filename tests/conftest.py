import os
import sys
import pytest
import fakeredis
import importlib.util
from pathlib import Path

# Ensure repo root is on sys.path so tests can import top-level modules (e.g., session_flow.py)
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Ensure env for create_app; never talk to a real provider from tests
os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('REDIS_URL', 'redis://localhost:6379/0')
os.environ['GEMINI_API_KEY'] = ''

TEST_CONFIG = {
    'TESTING': True,
    'DATABASE_URL': 'sqlite:///:memory:',
    'DATABASE_AUTH_TOKEN': None,
    'GEMINI_API_KEY': None,
    'LOG_LEVEL': 'WARNING',
}


def _load_module_from_path(name: str, file_path: Path):
    spec = importlib.util.spec_from_file_location(name, str(file_path))
    module = importlib.util.module_from_spec(spec)
    assert spec and spec.loader, f"Unable to load module spec for {file_path}"
    spec.loader.exec_module(module)
    return module


_create_app = None


def _load_create_app_from_file():
    """Load create_app from the project root app.py avoiding tests/app shadowing."""
    global _create_app
    if _create_app is None:
        app_path = Path(__file__).resolve().parents[1] / "app.py"
        _create_app = _load_module_from_path("app_root_module", app_path).create_app
    return _create_app


@pytest.fixture(scope='session')
def fake_redis_server():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture(autouse=True)
def patch_redis(monkeypatch, fake_redis_server):
    import redis
    fake_redis_server.flushall()
    monkeypatch.setattr(redis, 'from_url', lambda *args, **kwargs: fake_redis_server)
    yield


@pytest.fixture()
def make_app():
    def _make(**overrides):
        config = dict(TEST_CONFIG)
        config.update(overrides)
        return _load_create_app_from_file()(config)
    return _make


@pytest.fixture()
def app(make_app):
    application = make_app()
    yield application
    # Drop the per-app in-memory engine state
    from extensions import db
    with application.app_context():
        db.session.remove()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def frozen_clock(monkeypatch):
    """Controls `session_flow.now()`; advance it with `frozen_clock.tick(seconds)`."""
    import session_flow

    class Clock:
        def __init__(self):
            self.value = 1_700_000_000.0

        def tick(self, seconds):
            self.value += seconds

    clock = Clock()
    monkeypatch.setattr(session_flow, 'now', lambda: clock.value)
    return clock


@pytest.fixture()
def user(client):
    rv = client.post('/api/users', json={'email': 'alice@example.com', 'fullName': 'Alice Doe'})
    assert rv.status_code == 201
    return rv.get_json()


@pytest.fixture()
def interview(client, user):
    rv = client.post('/api/interviews', json={
        'userId': user['id'],
        'role': 'Software Engineer',
        'timePerQuestion': 180,
        'totalDuration': 900,
    })
    assert rv.status_code == 201
    return rv.get_json()
