"""Shared fixtures: a fresh SQLite database per test, the HTTP client, and
in-memory collaborators (user directory, notifier, job runner).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leave_engine.db import get_session
from leave_engine.main import app
from leave_engine.models import SQLModel
from leave_engine.services.directory import InMemoryUserDirectory, set_user_directory
from leave_engine.services.jobs import build_default_runner, set_job_runner
from leave_engine.services.notifier import RegistryNotifier, set_notifier

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

    from leave_engine.models.enums import NotificationEvent

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """In-memory SQLite engine with every table created, one per test."""
    _engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def async_client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the session dependency and the job runner pointed at the test database."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _override_get_session
    set_job_runner(build_default_runner(session_factory=session_factory))
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    set_job_runner(None)


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def directory() -> Iterator[InMemoryUserDirectory]:
    """A fresh, empty user directory for every test."""
    _directory = InMemoryUserDirectory()
    set_user_directory(_directory)
    yield _directory
    set_user_directory(InMemoryUserDirectory())


@dataclass
class RecordingNotifier:
    """Notifier that remembers every call."""

    calls: list[tuple[list[str], NotificationEvent, dict[str, Any]]] = field(default_factory=list)

    async def notify(
        self,
        recipients: Iterable[str],
        event: NotificationEvent,
        payload: dict[str, Any],
    ) -> None:
        self.calls.append((list(recipients), event, payload))

    def events(self) -> list[NotificationEvent]:
        return [event for _, event, _ in self.calls]


@pytest.fixture(autouse=True)
def notifications() -> Iterator[RecordingNotifier]:
    notifier = RecordingNotifier()
    set_notifier(notifier)
    yield notifier
    set_notifier(RegistryNotifier())
