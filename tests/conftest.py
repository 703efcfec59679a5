# tests/conftest.py
import pytest
from fastapi.testclient import TestClient
import os

from crisp.application.interview_session import Difficulty, Question
from crisp.managers.session import InterviewSessionMachine
from crisp.managers.storage import InMemoryActiveMarker, InMemorySessionStore

class FakeClock:
    """Wall clock the tests move by hand."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

@pytest.fixture
def test_env_vars():
    """Set up test environment variables."""
    os.environ["ENVIRONMENT"] = "testing"
    os.environ["DEBUG"] = "true"
    os.environ["APP_NAME"] = "Crisp Test"
    os.environ["TIMER_AUTOSTART"] = "false"
    yield
    # Clean up
    for name in ("ENVIRONMENT", "DEBUG", "APP_NAME", "TIMER_AUTOSTART"):
        os.environ.pop(name, None)
    from crisp.core.config import get_settings
    get_settings.cache_clear()

@pytest.fixture
def settings(test_env_vars):
    """Get test settings."""
    from crisp.core.config import get_settings
    get_settings.cache_clear()
    return get_settings()

@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def questions():
    return [
        Question(id="q1", text="Explain state and props in React.", difficulty=Difficulty.EASY,
                 time_limit=20, category="React"),
        Question(id="q2", text="How does useEffect cleanup work?", difficulty=Difficulty.MEDIUM,
                 time_limit=20, category="React"),
        Question(id="q3", text="Design a rate limited REST API.", difficulty=Difficulty.HARD,
                 time_limit=120, category="System Design"),
    ]

@pytest.fixture
def store():
    return InMemorySessionStore()

@pytest.fixture
def marker():
    return InMemoryActiveMarker()

@pytest.fixture
def session(store, marker, clock):
    return InterviewSessionMachine(store, marker=marker, clock=clock)

@pytest.fixture
def app(settings):
    """Create test app instance."""
    from crisp.interface.api.main import create_app
    return create_app()

@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)
