"""Pytest fixtures and shared test configuration.

Fixtures:
    - engine: per-test SQLite database with the schema created
    - session: SQLModel session bound to that engine
    - upload_dir: the UPLOAD_DIR served at /uploads, emptied around each test
    - fake_llm: in-process stand-in for the chat completion API
    - client: HTTPX client for the FastAPI app, wired to all of the above
"""

import os
import tempfile
from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from types import SimpleNamespace

# Must be set before foodchat is imported: the engine and upload dir are built at import
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["UPLOAD_DIR"] = tempfile.mkdtemp(prefix="foodchat-uploads-")
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import pytest
from httpx import ASGITransport, AsyncClient
from openai import OpenAIError
from sqlalchemy.engine import Engine
from sqlmodel import Session, create_engine

from foodchat import ai_engine, uploads
from foodchat.database import get_session, init_db
from foodchat.main import app


class FakeCompletions:
    """Records every create() call and answers with a canned reply."""

    def __init__(self) -> None:
        self.calls: list[dict] = []
        self.reply = "Salom! Qanday yordam bera olaman?"
        self.error: Exception | None = None
        self.no_choices = False

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.no_choices:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    def fail_with(self, message: str = "upstream unavailable") -> None:
        self.error = OpenAIError(message)


class FakeClient:
    def __init__(self) -> None:
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def engine(tmp_path: Path) -> Generator[Engine]:
    """Fresh SQLite file database with all tables created."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session]:
    with Session(engine) as session:
        yield session


@pytest.fixture
def upload_dir() -> Generator[Path]:
    """The directory both save_upload and the /uploads static mount use."""
    directory = uploads.UPLOAD_DIR
    _empty(directory)
    yield directory
    _empty(directory)


def _empty(directory: Path) -> None:
    for path in directory.iterdir():
        path.unlink()


@pytest.fixture
def fake_llm(monkeypatch: pytest.MonkeyPatch) -> FakeCompletions:
    """Replace the OpenAI client; returns the recorder for assertions."""
    client = FakeClient()
    monkeypatch.setattr(ai_engine, "get_client", lambda: client)
    return client.completions


@pytest.fixture
async def client(
    engine: Engine, upload_dir: Path, fake_llm: FakeCompletions
) -> AsyncGenerator[AsyncClient]:
    """Async HTTP client for the app, backed by the test database.

    Yields:
        Configured AsyncClient for making test requests.
    """

    def override_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
