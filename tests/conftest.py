import pytest
from fastapi.testclient import TestClient

from habit_tracker.config import Settings
from habit_tracker.main import create_app


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a fresh SQLite database for each test."""
    return Settings(DATABASE_URL=f"sqlite:///{tmp_path / 'test.db'}", ALLOW_DEV_CORS=False)


@pytest.fixture
def app(settings):
    app = create_app(settings)
    yield app
    app.state.engine.dispose()


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def fixed_today(monkeypatch):
    """Pin the server's "today" so mark dates are predictable."""
    def _set(day: str):
        monkeypatch.setattr("habit_tracker.services.today", lambda: day)
        return day
    return _set
