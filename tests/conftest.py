import os

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["LOG_JSON"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_tickets.core.database import build_engine, drop_db, get_db, init_db
from campus_tickets.core.security import hash_password
from campus_tickets.core.timeutils import utcnow
from campus_tickets.models import Event, Ticket, User, UserRole, Venue


async def _persist(session_factory, obj):
    """Insert in a short-lived session and hand back the detached object"""
    async with session_factory() as session:
        async with session.begin():
            session.add(obj)
    return obj


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so concurrent sessions get separate connections"""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'tickets.db'}")
    await init_db(engine)

    yield engine

    await drop_db(engine)
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(session_factory):
    """Factory for users; usernames are derived from a counter"""
    counter = {"n": 0}

    async def _make_user(role: UserRole = UserRole.STUDENT, username: str = None) -> User:
        counter["n"] += 1
        username = username or f"{role.value}{counter['n']}"
        user = User(
            username=username,
            email=f"{username}@campus.edu",
            role=role,
            password_hash=hash_password("password123"),
        )
        return await _persist(session_factory, user)

    return _make_user


@pytest_asyncio.fixture
async def admin(make_user):
    return await make_user(UserRole.ADMIN, "admin")


@pytest_asyncio.fixture
async def other_admin(make_user):
    return await make_user(UserRole.ADMIN, "other_admin")


@pytest_asyncio.fixture
async def student(make_user):
    return await make_user(UserRole.STUDENT, "alice")


@pytest_asyncio.fixture
async def other_student(make_user):
    return await make_user(UserRole.STUDENT, "bob")


@pytest_asyncio.fixture
async def venue(session_factory, admin):
    return await _persist(session_factory, Venue(name="Main Auditorium", location="Student Union", admin_id=admin.id))


@pytest_asyncio.fixture
async def other_venue(session_factory, admin):
    return await _persist(session_factory, Venue(name="Science Hall 101", location="Science Building", admin_id=admin.id))


@pytest.fixture
def make_event(session_factory, admin, venue):
    """
    Insert an event directly, bypassing window validation so tests can
    place events in the past.
    """

    async def _make_event(
        start=None,
        duration=timedelta(hours=1),
        capacity=10,
        price="10.00",
        title="Test Event",
        organizer=None,
        venue_id=None,
        seats_left=None,
    ) -> Event:
        start = start or utcnow() + timedelta(days=1)
        event = Event(
            title=title,
            start_time=start,
            end_time=start + duration,
            capacity=capacity,
            seats_left=capacity if seats_left is None else seats_left,
            price=Decimal(price),
            organizer_id=(organizer or admin).id,
            venue_id=venue_id or venue.id,
        )
        return await _persist(session_factory, event)

    return _make_event


@pytest.fixture
def seat_state(session_factory):
    """Read (seats_left, capacity, ticket count) for an event from a fresh session"""

    async def _seat_state(event_id: int):
        async with session_factory() as session:
            event = await session.get(Event, event_id)
            count = await session.scalar(
                select(func.count(Ticket.id)).where(Ticket.event_id == event_id)
            )
            return event.seats_left, event.capacity, count

    return _seat_state


@pytest_asyncio.fixture
async def client(session_factory):
    """HTTP client against the app with the test database wired in"""
    from campus_tickets.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
