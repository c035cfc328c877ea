"""
Event service - creation, editing, deletion and listings

Create and edit hold the per-venue lock and lock the venue row while the
conflict scan and the write share one transaction.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.core.database import atomic
from campus_tickets.core.exceptions import (
    CapacityTooLowError,
    NotFoundError,
    NotOwnerError,
    ValidationError,
)
from campus_tickets.core.locks import event_locks, venue_locks
from campus_tickets.core.metrics import events_created_total
from campus_tickets.core.timeutils import utcnow
from campus_tickets.models import Event, Ticket, User, Venue
from campus_tickets.schemas.event import EventCreate, EventUpdate
from campus_tickets.services.schedule import ScheduleConflictChecker, validate_event_window

logger = logging.getLogger(__name__)


async def _lock_venue(db: AsyncSession, venue_id: int) -> Venue:
    query = select(Venue).where(Venue.id == venue_id).with_for_update()
    venue = (await db.execute(query)).scalar_one_or_none()
    if venue is None:
        raise NotFoundError(f"Venue {venue_id} not found")
    return venue


async def _owned_event(
    db: AsyncSession,
    event_id: int,
    organizer_id: int,
    for_update: bool = False,
) -> Event:
    """Missing -> NotFoundError, someone else's -> NotOwnerError"""
    query = select(Event).where(Event.id == event_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)

    event = (await db.execute(query)).scalar_one_or_none()
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")
    if event.organizer_id != organizer_id:
        raise NotOwnerError("You can only manage events you created.")
    return event


class EventService:
    """Service for event management"""

    @staticmethod
    async def create_event(
        db: AsyncSession,
        organizer_id: int,
        data: EventCreate,
        now: Optional[datetime] = None,
    ) -> Event:
        """
        Create an event with seats_left == capacity.

        Raises:
            NotFoundError: venue does not exist
            ValidationError: bad window
            ScheduleConflictError: overlaps another event at the venue
        """
        now = now or utcnow()
        if data.capacity < 0:
            raise ValidationError("Capacity cannot be negative.")

        async with venue_locks.lock(data.venue_id):
            async with atomic(db, "create event"):
                await _lock_venue(db, data.venue_id)
                validate_event_window(data.start_time, data.end_time, now)
                await ScheduleConflictChecker.ensure_no_conflict(
                    db, data.venue_id, data.start_time, data.end_time
                )

                event = Event(
                    title=data.title,
                    start_time=data.start_time,
                    end_time=data.end_time,
                    venue_id=data.venue_id,
                    capacity=data.capacity,
                    seats_left=data.capacity,
                    price=data.price,
                    organizer_id=organizer_id,
                    created_at=now,
                    updated_at=now,
                )
                db.add(event)
                await db.flush()

        events_created_total.inc()
        logger.info(
            f"Created event '{event.title}' at venue {event.venue_id}",
            extra={'event_id': event.id, 'venue_id': event.venue_id, 'user_id': organizer_id},
        )
        return event

    @staticmethod
    async def update_event(
        db: AsyncSession,
        event_id: int,
        organizer_id: int,
        changes: EventUpdate,
        now: Optional[datetime] = None,
    ) -> Event:
        """
        Apply a partial edit. Omitted fields keep their stored value; the
        merged window is validated and conflict-checked as on create, with
        the event itself excluded from the scan.

        Raises:
            NotFoundError, NotOwnerError, ValidationError,
            ScheduleConflictError, CapacityTooLowError
        """
        now = now or utcnow()
        fields = changes.model_dump(exclude_unset=True)

        async with event_locks.lock(event_id):
            # Resolve the venue first so the right venue lock is taken
            async with atomic(db, "load event"):
                current = await _owned_event(db, event_id, organizer_id)
                venue_id = fields.get("venue_id") or current.venue_id

            async with venue_locks.lock(venue_id):
                async with atomic(db, "update event"):
                    event = await _owned_event(db, event_id, organizer_id, for_update=True)
                    await _lock_venue(db, venue_id)

                    start = fields.get("start_time") or event.start_time
                    end = fields.get("end_time") or event.end_time
                    capacity = fields["capacity"] if fields.get("capacity") is not None else event.capacity

                    validate_event_window(start, end, now)
                    await ScheduleConflictChecker.ensure_no_conflict(
                        db, venue_id, start, end, exclude_event_id=event_id
                    )

                    booked = event.seats_booked
                    if capacity < booked:
                        raise CapacityTooLowError(
                            f"Cannot reduce capacity to {capacity}. "
                            f"{booked} tickets have already been sold."
                        )

                    if fields.get("title") is not None:
                        event.title = fields["title"]
                    if fields.get("price") is not None:
                        event.price = fields["price"]
                    event.start_time = start
                    event.end_time = end
                    event.venue_id = venue_id
                    event.capacity = capacity
                    event.seats_left = capacity - booked
                    event.updated_at = now
                    await db.flush()

        logger.info(
            f"Updated event {event_id}: {sorted(fields)}",
            extra={'event_id': event_id, 'user_id': organizer_id},
        )
        return event

    @staticmethod
    async def delete_event(db: AsyncSession, event_id: int, organizer_id: int) -> None:
        """Delete an event; its tickets go with it through the FK cascade"""
        async with event_locks.lock(event_id):
            async with atomic(db, "delete event"):
                await _owned_event(db, event_id, organizer_id, for_update=True)
                await db.execute(delete(Event).where(Event.id == event_id))

        logger.info(f"Deleted event {event_id}", extra={'event_id': event_id, 'user_id': organizer_id})

    @staticmethod
    async def list_events(db: AsyncSession, user_id: int) -> List[Tuple[Event, Venue, int]]:
        """
        Every event with its venue and the caller's ticket count, soonest
        first.
        """
        held = (
            select(Ticket.event_id, func.count(Ticket.id).label("held"))
            .where(Ticket.user_id == user_id)
            .group_by(Ticket.event_id)
            .subquery()
        )
        query = (
            select(Event, Venue, func.coalesce(held.c.held, 0))
            .join(Venue, Event.venue_id == Venue.id)
            .outerjoin(held, held.c.event_id == Event.id)
            .order_by(Event.start_time.asc(), Event.id.asc())
        )
        async with atomic(db, "list events"):
            result = await db.execute(query)
            return [(event, venue, int(count)) for event, venue, count in result.all()]

    @staticmethod
    async def list_organizer_events(db: AsyncSession, organizer_id: int) -> List[Tuple[Event, Venue]]:
        query = (
            select(Event, Venue)
            .join(Venue, Event.venue_id == Venue.id)
            .where(Event.organizer_id == organizer_id)
            .order_by(Event.start_time.desc(), Event.id.desc())
        )
        async with atomic(db, "list organizer events"):
            result = await db.execute(query)
            return [(event, venue) for event, venue in result.all()]

    @staticmethod
    async def list_attendees(
        db: AsyncSession,
        event_id: int,
        organizer_id: int,
    ) -> Tuple[Event, List[Tuple[User, Ticket]]]:
        """Every ticket of the event with its holder, in issue order"""
        async with atomic(db, "list attendees"):
            event = await _owned_event(db, event_id, organizer_id)
            query = (
                select(User, Ticket)
                .join(Ticket, Ticket.user_id == User.id)
                .where(Ticket.event_id == event_id)
                .order_by(Ticket.id.asc())
            )
            result = await db.execute(query)
            return event, [(user, ticket) for user, ticket in result.all()]

