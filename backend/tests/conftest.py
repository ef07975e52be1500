"""
Pytest fixtures for test database, client, authentication and notification fakes.

Each test gets its own SQLite file database (aiosqlite) so concurrent sessions
behave like separate connections. Point TEST_DATABASE_URL at PostgreSQL to run
the same suite against the production driver.
"""

import asyncio
import os
from datetime import datetime, time, timedelta, timezone
from typing import AsyncGenerator, Callable, Optional

# Settings are read once at import time
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.main import app
from app.core.security import create_access_token
from app.db.base import Base
from app.db.session import get_db
from app.models.event import Event, EventStatus
from app.models.participant import EventParticipant, ParticipantStatus
from app.models.user import User
from app.schemas.notifications import EventUpdated, ParticipationEvent
from app.services.dispatch_factory import get_live_update_channel, get_notification_dispatcher
from app.services.event_store import EventStore
from app.services.interfaces.notification import (
    LiveUpdateChannel,
    NotificationDeliveryError,
    NotificationDispatcher,
)
from app.services.participation_engine import ParticipationEngine


class RecordingDispatcher(NotificationDispatcher):
    def __init__(self):
        self.events: list[ParticipationEvent] = []

    async def dispatch(self, event: ParticipationEvent) -> None:
        self.events.append(event)


class FailingDispatcher(NotificationDispatcher):
    async def dispatch(self, event: ParticipationEvent) -> None:
        raise NotificationDeliveryError("mail relay down")


class SlowDispatcher(NotificationDispatcher):
    async def dispatch(self, event: ParticipationEvent) -> None:
        await asyncio.sleep(5)


class RecordingLiveUpdates(LiveUpdateChannel):
    def __init__(self):
        self.updates: list[EventUpdated] = []

    async def publish(self, update: EventUpdated) -> None:
        self.updates.append(update)


class FailingLiveUpdates(LiveUpdateChannel):
    async def publish(self, update: EventUpdated) -> None:
        raise NotificationDeliveryError("pub/sub down")


class SerializationFailure(Exception):
    """Driver error carrying PostgreSQL's serialization_failure SQLSTATE."""

    sqlstate = "40001"


def failing_participation_lookup(orig: Exception, failures: Optional[int] = None) -> tuple[Callable, list]:
    """
    Stand-in for EventStore.find_participation that raises OperationalError
    wrapping `orig` for the first `failures` calls (every call when None),
    then delegates to the real lookup. Returns the function and its call log.
    """
    calls: list[int] = []
    real_lookup = EventStore.find_participation

    async def lookup(self, event_id: int, user_id: int):
        calls.append(event_id)
        if failures is None or len(calls) <= failures:
            raise OperationalError("SELECT event_participants", {}, orig)
        return await real_lookup(self, event_id, user_id)

    return lookup, calls


@pytest_asyncio.fixture(scope="function")
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables in a fresh database, yield a session factory, then drop them."""
    url = os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"
    connect_args = {"timeout": 30} if url.startswith("sqlite") else {}
    test_engine = create_async_engine(url, echo=False, connect_args=connect_args)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def live_updates() -> RecordingLiveUpdates:
    return RecordingLiveUpdates()


@pytest_asyncio.fixture
async def make_engine(session_factory, dispatcher, live_updates):
    """
    Build a ParticipationEngine on its own session, the way each request gets one.
    Sessions are closed at teardown.
    """
    sessions: list[AsyncSession] = []

    def _make(
        dispatcher_override: Optional[NotificationDispatcher] = None,
        live_updates_override: Optional[LiveUpdateChannel] = None,
        **kwargs,
    ) -> ParticipationEngine:
        session = session_factory()
        sessions.append(session)
        return ParticipationEngine(
            EventStore(session),
            dispatcher_override or dispatcher,
            live_updates_override or live_updates,
            **kwargs,
        )

    yield _make

    for session in sessions:
        await session.close()


@pytest_asyncio.fixture
async def fetch_event(session_factory) -> Callable:
    """Read an event's committed state through a fresh session."""

    async def _fetch(event_id: int) -> Event:
        async with session_factory() as session:
            return (await session.execute(select(Event).where(Event.id == event_id))).scalar_one()

    return _fetch


@pytest_asyncio.fixture
async def fetch_participation(session_factory) -> Callable:
    async def _fetch(event_id: int, user_id: int) -> Optional[EventParticipant]:
        async with session_factory() as session:
            result = await session.execute(
                select(EventParticipant).where(
                    EventParticipant.event_id == event_id,
                    EventParticipant.user_id == user_id,
                )
            )
            return result.scalar_one_or_none()

    return _fetch


@pytest_asyncio.fixture(scope="function")
async def client(session_factory, dispatcher, live_updates) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with a fresh session per request and recording notification backends."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_live_update_channel] = lambda: live_updates

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_user(session: AsyncSession, name: str) -> User:
    user = User(email=f"{name}@example.com", username=name)
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def organizer(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "organizer")


@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "alice")


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "bob")


@pytest_asyncio.fixture
async def carol(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "carol")


def auth_headers_for(user: User) -> dict:
    """Authorization headers with a Bearer token for `user`."""
    return {"Authorization": f"Bearer {create_access_token(data={'sub': str(user.id)})}"}


@pytest.fixture
def organizer_headers(organizer: User) -> dict:
    return auth_headers_for(organizer)


@pytest.fixture
def alice_headers(alice: User) -> dict:
    return auth_headers_for(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict:
    return auth_headers_for(bob)


@pytest_asyncio.fixture
async def make_event(db_session: AsyncSession, organizer: User) -> Callable:
    """Create an event owned by `organizer`."""

    async def _make(
        max_participants: int = 10,
        status: EventStatus = EventStatus.PUBLISHED,
        current_participants: int = 0,
        days_ahead: int = 30,
    ) -> Event:
        event = Event(
            title="Community Meetup",
            description="Monthly meetup",
            location="Main Hall",
            date=datetime.now(timezone.utc) + timedelta(days=days_ahead),
            start_time=time(18, 0),
            end_time=time(20, 0),
            max_participants=max_participants,
            current_participants=current_participants,
            organizer_id=organizer.id,
            status=status.value,
        )
        db_session.add(event)
        await db_session.commit()
        return event

    return _make


@pytest_asyncio.fixture
async def test_event(make_event) -> Event:
    """A published event with 10 seats."""
    return await make_event()


@pytest_asyncio.fixture
async def add_participant(db_session: AsyncSession) -> Callable:
    """
    Insert a participation row directly. Does not touch the event counter;
    callers keep current_participants consistent themselves when needed.
    """

    async def _add(event: Event, user: User, status: ParticipantStatus = ParticipantStatus.PENDING) -> EventParticipant:
        participant = EventParticipant(event_id=event.id, user_id=user.id, status=status.value)
        db_session.add(participant)
        await db_session.commit()
        return participant

    return _add
