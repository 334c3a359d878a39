"""Service test fixtures: in-memory storage fakes, async DB and FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - db_manager patched for the readiness probe, which bypasses dependency injection
    - The chat service dependency is overridden per test with a mock model client
    - Tool tests run against a tmp_path working directory, never the repo

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (ADR: PostgreSQL-specific features not exercised here)
    - InMemoryStorage implements the SessionStorage Protocol structurally: runner
      tests need no database at all
"""

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from httpx import ASGITransport, AsyncClient

from agentweb.config import Settings
from agentweb.db.base import Base
from agentweb.infrastructure.database import DatabaseSessionManager
from agentweb.infrastructure.session_storage import SqlProjectService, SqlSessionStorage
from agentweb.services.chat_service import ChatService
from agentweb.services.session_registry import SessionRegistry
from agentweb.services.todo_store import TodoStore
import agentweb.infrastructure.database as db_module
from agentweb.main import app

from tests.services.fakes import InMemoryStorage, NoProjects, StaticClientCache, StaticModelConfig


# -- Database ------------------------------------------------------------------


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def sql_storage(test_session_factory):
    return SqlSessionStorage(test_session_factory)


@pytest.fixture
def memory_storage():
    return InMemoryStorage()


@pytest.fixture
def working_dir(tmp_path):
    return str(tmp_path)


# -- Chat service --------------------------------------------------------------


@pytest.fixture
def make_chat_service(tmp_path):
    """Build a ChatService around a mock model client.

    Keyword overrides: storage, projects, settings fields (e.g. tools_bash=False).
    """
    def build(client, storage=None, projects=None, **settings_fields):
        settings_fields.setdefault("default_working_dir", str(tmp_path))
        settings_fields.setdefault("title_timeout_seconds", 1.0)
        return ChatService(
            storage=storage or InMemoryStorage(),
            projects=projects or NoProjects(),
            model_config=StaticModelConfig(),
            registry=SessionRegistry(),
            client_cache=StaticClientCache(client),
            settings=Settings(**settings_fields),
            todo_store=TodoStore(),
        )
    return build


@pytest.fixture
def sql_chat_service(make_chat_service, test_session_factory):
    def build(client, **settings_fields):
        return make_chat_service(
            client,
            storage=SqlSessionStorage(test_session_factory),
            projects=SqlProjectService(test_session_factory),
            **settings_fields,
        )
    return build


@pytest.fixture
async def client(test_engine, test_session_factory):
    """FastAPI test client; tests install their ChatService via dependency_overrides."""
    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
