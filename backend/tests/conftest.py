"""
MarkNotes Backend - Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    test_settings    Settings bound to a private in-memory SQLite database
    database         connected Database with the schema created
    store            NoteStore over `database`
    app              FastAPI app from create_app(test_settings), database connected
    test_client      HTTPX AsyncClient talking to `app` through ASGITransport
    mock_store       NoteStore stand-in with AsyncMock methods (no database)
    make_note        factory for transient Note rows
"""

import os

# Set before any marknotes import so the module-level settings never point
# at a real database
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import uuid  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from marknotes.config import Settings  # noqa: E402
from marknotes.database import Database  # noqa: E402
from marknotes.main import create_app  # noqa: E402
from marknotes.models.note import Note  # noqa: E402
from marknotes.services.note_store import NoteStore  # noqa: E402


@pytest.fixture
def test_settings() -> Settings:
    """
    Every Database built from these settings gets its own empty in-memory
    SQLite database (aiosqlite keeps one shared connection per engine).
    """
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        environment="test",
        log_level="WARNING",
        rate_limit_enabled=False,
    )


@pytest_asyncio.fixture
async def database(test_settings):
    db = Database(test_settings)
    await db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def store(database) -> NoteStore:
    return NoteStore(database)


@pytest_asyncio.fixture
async def app(test_settings):
    """
    Application wired to an isolated database.

    ASGITransport does not run the lifespan, so the database is connected
    and the schema created here.
    """
    application = create_app(test_settings)
    await application.state.database.connect()
    await application.state.database.create_all()
    yield application
    await application.state.database.dispose()


@pytest_asyncio.fixture
async def test_client(app):
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def mock_store():
    """NoteStore stand-in; each method is an AsyncMock to configure per test."""
    store = MagicMock(spec=NoteStore)
    store.find = AsyncMock(return_value=([], 0))
    store.find_by_id = AsyncMock(return_value=None)
    store.create = AsyncMock()
    store.update_by_id = AsyncMock(return_value=None)
    store.delete_by_id = AsyncMock(return_value=False)
    store.delete_all = AsyncMock(return_value=0)
    store.count = AsyncMock(return_value=0)
    return store


@pytest.fixture
def make_note():
    """Build a transient Note row; timestamps default to now (UTC)."""

    def _make(title="A note", content="Some *markdown*", age=timedelta(0), **overrides):
        now = datetime.now(timezone.utc) - age
        fields = {
            "id": uuid.uuid4(),
            "title": title,
            "content": content,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return Note(**fields)

    return _make
