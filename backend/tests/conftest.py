"""
Pytest configuration and fixtures
"""
import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))

# Never touch a real database or a real LLM from unit tests
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["OPENROUTER_API_KEY"] = ""

from hidrazy.catalog import load_catalog  # noqa: E402
from hidrazy.db import Base, get_db  # noqa: E402
from hidrazy.deps import get_llm_client  # noqa: E402
from hidrazy.main import app  # noqa: E402
from hidrazy.routers.auth import User, get_current_user  # noqa: E402

TEST_USER = User(id="user-1", email="learner@example.com")


class FakeLLM:
    """Scripted stand-in for ChatCompletionClient.

    Replies are consumed in order; an exception instance in the queue is raised
    instead of returned. With an empty queue every call answers ``default``.
    """

    def __init__(self, default: str = "ok"):
        self.default = default
        self.replies = []
        self.calls = []

    def queue(self, *replies):
        self.replies.extend(replies)

    def _next(self):
        if not self.replies:
            return self.default
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    async def generate(self, prompt, *, system=None, **kwargs):
        self.calls.append({"prompt": prompt, "system": system, **kwargs})
        return self._next()

    async def chat(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        return self._next()

    async def aclose(self):
        pass


@pytest.fixture(scope="function")
def db() -> Session:
    """Fresh in-memory database per test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def client(db, fake_llm, catalog):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_current_user] = lambda: TEST_USER
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    app.state.catalog = catalog
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def no_llm_client(client):
    """Same client, but the LLM dependency reports that no key is configured."""
    app.dependency_overrides[get_llm_client] = lambda: None
    return client
