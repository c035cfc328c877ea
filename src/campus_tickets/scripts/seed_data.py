"""
Seed script to populate database with sample data for testing

Usage:
    python -m campus_tickets.scripts.seed_data
"""
import asyncio
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campus_tickets.core.database import AsyncSessionLocal, init_db
from campus_tickets.core.logging_config import setup_logging
from campus_tickets.core.security import hash_password
from campus_tickets.core.timeutils import utcnow
from campus_tickets.models import Event, User, UserRole, Venue

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

USERS = [
    {"username": "admin", "email": "admin@campus.edu", "role": UserRole.ADMIN},
    {"username": "alice", "email": "alice@campus.edu", "role": UserRole.STUDENT},
    {"username": "bob", "email": "bob@campus.edu", "role": UserRole.STUDENT},
    {"username": "carol", "email": "carol@campus.edu", "role": UserRole.STUDENT},
]

VENUES = [
    {"name": "Main Auditorium", "location": "Student Union, Level 1"},
    {"name": "Science Hall 101", "location": "Science Building"},
    {"name": "Open Air Theatre", "location": "North Lawn"},
]

# Offsets keep every pair at one venue far apart, so no buffer conflicts
EVENTS = [
    {"title": "Welcome Week Concert", "venue": "Main Auditorium", "days": 7, "hours": 2, "capacity": 300, "price": "15.00"},
    {"title": "Career Fair Keynote", "venue": "Main Auditorium", "days": 14, "hours": 1, "capacity": 250, "price": "0.00"},
    {"title": "Intro to Robotics Talk", "venue": "Science Hall 101", "days": 3, "hours": 1, "capacity": 80, "price": "5.00"},
    {"title": "Hackathon Kickoff", "venue": "Science Hall 101", "days": 10, "hours": 3, "capacity": 60, "price": "10.00"},
    {"title": "Outdoor Movie Night", "venue": "Open Air Theatre", "days": 5, "hours": 2, "capacity": 150, "price": "8.50"},
]


async def create_sample_users(db: AsyncSession) -> Dict[str, User]:
    """Create sample users"""
    users = {}
    for user_data in USERS:
        result = await db.execute(select(User).where(User.username == user_data["username"]))
        existing_user = result.scalar_one_or_none()

        if existing_user:
            logger.info(f"User {user_data['username']} already exists, skipping...")
            users[existing_user.username] = existing_user
            continue

        user = User(password_hash=hash_password(DEMO_PASSWORD), **user_data)
        db.add(user)
        users[user.username] = user
        logger.info(f"Created user: {user.username} ({user.role.value})")

    await db.flush()
    return users


async def create_sample_venues(db: AsyncSession, admin: User) -> Dict[str, Venue]:
    """Create sample venues"""
    venues = {}
    for venue_data in VENUES:
        result = await db.execute(select(Venue).where(Venue.name == venue_data["name"]))
        venue = result.scalar_one_or_none()

        if venue is None:
            venue = Venue(admin_id=admin.id, **venue_data)
            db.add(venue)
            logger.info(f"Created venue: {venue.name}")

        venues[venue.name] = venue

    await db.flush()
    return venues


async def create_sample_events(db: AsyncSession, admin: User, venues: Dict[str, Venue]) -> List[Event]:
    """Create sample events starting at 18:00 UTC on future days"""
    today = utcnow().replace(hour=18, minute=0, second=0, microsecond=0)

    events = []
    for event_data in EVENTS:
        result = await db.execute(select(Event).where(Event.title == event_data["title"]))
        existing_event = result.scalar_one_or_none()

        if existing_event:
            logger.info(f"Event '{event_data['title']}' already exists, skipping...")
            events.append(existing_event)
            continue

        start = today + timedelta(days=event_data["days"])
        event = Event(
            title=event_data["title"],
            start_time=start,
            end_time=start + timedelta(hours=event_data["hours"]),
            venue_id=venues[event_data["venue"]].id,
            capacity=event_data["capacity"],
            seats_left=event_data["capacity"],
            price=Decimal(event_data["price"]),
            organizer_id=admin.id,
        )
        db.add(event)
        events.append(event)
        logger.info(f"Created event: {event.title} with {event.capacity} seats")

    await db.flush()
    return events


async def seed(session_factory: Optional[async_sessionmaker] = None) -> List[Event]:
    """Insert demo users, venues and events; safe to run repeatedly"""
    session_factory = session_factory or AsyncSessionLocal

    async with session_factory() as db:
        async with db.begin():
            users = await create_sample_users(db)
            venues = await create_sample_venues(db, users["admin"])
            events = await create_sample_events(db, users["admin"], venues)

    logger.info(f"Seeding complete: {len(users)} users, {len(venues)} venues, {len(events)} events")
    return events


async def seed_database():
    """Main seeding function"""
    setup_logging()
    await init_db()
    await seed()


if __name__ == "__main__":
    asyncio.run(seed_database())
