"""
Pytest fixtures for the attendance engine, HTTP client and authentication.

Each test gets its own file-backed SQLite database under tmp_path. A file
(rather than :memory:) lets concurrent tests open several connections that
contend for the same write lock, the way PostgreSQL sessions would.
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ["REDIS_ENABLED"] = "false"
os.environ["CRON_API_KEY"] = "test-cron-key"

from datetime import datetime, timezone, timedelta
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from attendance.main import app
from attendance.core.security import create_access_token
from attendance.db.base import Base
from attendance.db.session import build_engine, build_session_factory, get_session_factory
from attendance.models.event import Event
from attendance.schemas.event import EventCreate
from attendance.services.attendance_engine import AttendanceEngine
from attendance.services.attendance_log import AttendanceNotice
from attendance.services.interfaces.notifier import Notifier
from attendance.services.notification_service import get_notifier

ORGANIZER_ID = 1
CO_ORGANIZER_ID = 2
CRON_API_KEY = "test-cron-key"


class RecordingNotifier(Notifier):
    """Keeps every notice in memory so tests can assert on what was sent."""

    def __init__(self):
        self.notices: list[AttendanceNotice] = []

    async def notify(self, notice: AttendanceNotice) -> None:
        self.notices.append(notice)

    def for_user(self, user_id: int) -> list[AttendanceNotice]:
        return [notice for notice in self.notices if notice.user_id == user_id]


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create tables in a fresh database, dispose the engine afterwards."""
    db_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'attendance.db'}")
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield db_engine

    await db_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(engine)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def attendance(session_factory, notifier) -> AttendanceEngine:
    """The engine under test, wired to the test database and recording notifier."""
    return AttendanceEngine(session_factory, notifier, feedback_requires_attendance=False)


@pytest_asyncio.fixture
async def client(session_factory, notifier) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the store handle and notifier dependencies."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_notifier] = lambda: notifier

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers_for(user_id: int) -> dict:
    """Authorization headers with a Bearer token for `user_id`."""
    token = create_access_token(data={"sub": str(user_id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def organizer_headers() -> dict:
    return auth_headers_for(ORGANIZER_ID)


@pytest.fixture
def make_event(attendance: AttendanceEngine):
    """Factory for events owned by ORGANIZER_ID."""

    async def _make_event(
        max_attendees: Optional[int] = 2,
        waitlist_enabled: bool = True,
        co_organizer_ids: Optional[list[int]] = None,
        starts_in: timedelta = timedelta(days=7),
        title: str = "Community Meetup",
    ) -> Event:
        return await attendance.create_event(
            EventCreate(
                title=title,
                start_time=datetime.now(timezone.utc) + starts_in,
                max_attendees=max_attendees,
                waitlist_enabled=waitlist_enabled,
                co_organizer_ids=co_organizer_ids or [],
            ),
            ORGANIZER_ID,
        )

    return _make_event
