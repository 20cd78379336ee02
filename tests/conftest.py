"""Pytest configuration and fixtures."""
import json
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LITELLM_API_KEY", "test-key")
os.environ.setdefault("LOG_FILE", "")

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from xlsmart.config import Settings  # noqa: E402
from xlsmart.database import Base, get_db  # noqa: E402
from xlsmart.main import app  # noqa: E402
from xlsmart.models import Employee, StandardRole  # noqa: E402
from xlsmart.services.llm_client import LLMClient, LLMConfig  # noqa: E402


def chat_response(content: str) -> httpx.Response:
    """An OpenAI-style chat completion carrying ``content``."""
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def make_llm(handler) -> LLMClient:
    """LLM client whose requests are answered by ``handler(request) -> Response``."""
    config = LLMConfig(base_url="http://llm.test/v1", api_key="test-key")
    return LLMClient(config, transport=httpx.MockTransport(handler))


def prompt_of(request: httpx.Request) -> str:
    return json.loads(request.content)["messages"][1]["content"]


class FakeTask:
    """Stands in for a Celery task; records ``delay`` calls."""

    def __init__(self):
        self.calls = []

    def delay(self, *args, **kwargs):
        self.calls.append((args, kwargs))


class BrokenTask:
    """A Celery task whose broker is unreachable."""

    def delay(self, *args, **kwargs):
        raise ConnectionError("Error 111 connecting to localhost:6379. Connection refused.")


class FakePubSub:
    """Redis pub/sub stand-in; ``get_message`` replays a script of messages or callables."""

    def __init__(self, script):
        self.script = list(script)
        self.subscribed = []
        self.unsubscribed = []
        self.closed = False

    def subscribe(self, channel):
        self.subscribed.append(channel)

    def unsubscribe(self, channel):
        self.unsubscribed.append(channel)

    def close(self):
        self.closed = True

    def get_message(self, timeout=0.0):
        if not self.script:
            return None
        step = self.script.pop(0)
        return step() if callable(step) else step


class FakeRedis:
    def __init__(self):
        self.script = []
        self.pubsubs = []
        self.published = []

    def pubsub(self):
        pubsub = FakePubSub(self.script)
        self.pubsubs.append(pubsub)
        return pubsub

    def publish(self, channel, message):
        self.published.append((channel, message))
        return 1


def published_message(snapshot):
    return {
        "type": "message",
        "channel": f"session:{snapshot['session_id']}",
        "data": json.dumps(snapshot),
    }


@pytest.fixture
def test_db():
    """Create a test database for testing."""
    # One shared in-memory connection so every session sees the same tables
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(test_db):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    """Settings with no inter-batch delay."""
    return Settings(
        database_url="sqlite://",
        litellm_api_key="test-key",
        batch_size=10,
        batch_delay_seconds=0.0,
    )


@pytest.fixture
def queued(monkeypatch):
    """Replace every Celery task the API queues with a recorder."""
    tasks = {
        "run_role_assignment": FakeTask(),
        "run_role_standardization": FakeTask(),
        "run_skills_assessment": FakeTask(),
    }
    monkeypatch.setattr("xlsmart.api.employees.run_role_assignment", tasks["run_role_assignment"])
    monkeypatch.setattr("xlsmart.api.roles.run_role_standardization", tasks["run_role_standardization"])
    monkeypatch.setattr("xlsmart.api.assessments.run_skills_assessment", tasks["run_skills_assessment"])
    return tasks


@pytest.fixture
def client(test_db, queued):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_db)

    def override_get_db():
        try:
            db = TestingSessionLocal()
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def standard_roles(db):
    roles = [
        StandardRole(
            role_title="Network Engineer",
            department="Network Operations",
            job_family="Engineering",
            role_level="Mid",
            required_skills=["LTE", "IP networking"],
        ),
        StandardRole(
            role_title="Data Analyst",
            department="Business Intelligence",
            job_family="Analytics",
            role_level="Mid",
            required_skills=["SQL", "Python"],
        ),
    ]
    db.add_all(roles)
    db.commit()
    return roles


def add_employees(db, positions, upload_session_id=None, **fields):
    """Insert one employee per position."""
    employees = [
        Employee(
            employee_number=f"EMP{i:04d}",
            first_name=f"Employee{i}",
            last_name="Test",
            current_position=position,
            upload_session_id=upload_session_id,
            **fields,
        )
        for i, position in enumerate(positions, start=1)
    ]
    db.add_all(employees)
    db.commit()
    return employees


@pytest.fixture
def fake_redis(monkeypatch):
    """Route the SSE stream's Redis client to an in-memory fake."""
    fake = FakeRedis()
    monkeypatch.setattr("xlsmart.api.sessions.get_redis", lambda: fake)
    return fake
