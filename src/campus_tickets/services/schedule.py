"""
Schedule conflict checker

Validates a proposed event window and detects collisions with other events
at the same venue. Both the candidate window and every existing window are
widened by the venue buffer on each side before the half-open overlap test.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.core.config import settings
from campus_tickets.core.exceptions import ScheduleConflictError, ValidationError
from campus_tickets.core.metrics import schedule_conflicts_total
from campus_tickets.models import Event

logger = logging.getLogger(__name__)


def validate_event_window(
    start: datetime,
    end: datetime,
    now: datetime,
    require_future: bool = True,
) -> None:
    """
    Check ordering, duration bounds and future-ness of a window.

    Raises:
        ValidationError: with a message naming the violated rule
    """
    if end <= start:
        raise ValidationError("End time must be after the start time.")

    min_duration = timedelta(minutes=settings.MIN_EVENT_DURATION_MINUTES)
    if end - start < min_duration:
        raise ValidationError(
            f"Event must be at least {settings.MIN_EVENT_DURATION_MINUTES} minutes long."
        )

    if require_future and start <= now:
        raise ValidationError(
            "Event start time must be in the future. Cannot schedule events for past dates."
        )

    max_duration = timedelta(minutes=settings.MAX_EVENT_DURATION_MINUTES)
    if end - start > max_duration:
        raise ValidationError(
            f"Event duration cannot exceed {settings.MAX_EVENT_DURATION_MINUTES // 60} hours. "
            "Please split into multiple events if needed."
        )


def buffered_window(start: datetime, end: datetime, buffer: timedelta) -> Tuple[datetime, datetime]:
    return start - buffer, end + buffer


def windows_conflict(
    start: datetime,
    end: datetime,
    other_start: datetime,
    other_end: datetime,
    buffer: timedelta,
) -> bool:
    """Strict comparisons: buffered windows that only touch do not conflict"""
    new_start, new_end = buffered_window(start, end, buffer)
    existing_start, existing_end = buffered_window(other_start, other_end, buffer)
    return new_start < existing_end and new_end > existing_start


def find_conflict(
    start: datetime,
    end: datetime,
    existing: Iterable[Event],
    buffer: Optional[timedelta] = None,
) -> Optional[Event]:
    """Return the first event in iteration order whose buffered window overlaps"""
    if buffer is None:
        buffer = timedelta(minutes=settings.VENUE_BUFFER_MINUTES)

    for other in existing:
        if windows_conflict(start, end, other.start_time, other.end_time, buffer):
            return other
    return None


class ScheduleConflictChecker:
    """Venue-level conflict detection against stored events"""

    @staticmethod
    async def ensure_no_conflict(
        db: AsyncSession,
        venue_id: int,
        start: datetime,
        end: datetime,
        exclude_event_id: Optional[int] = None,
    ) -> None:
        """
        Scan events at the venue in ascending id order.

        Must be called inside the transaction that performs the insert/update
        it guards, while the caller holds the venue lock.

        Raises:
            ScheduleConflictError: naming the first colliding event
        """
        query = select(Event).where(Event.venue_id == venue_id)
        if exclude_event_id is not None:
            query = query.where(Event.id != exclude_event_id)
        query = query.order_by(Event.id.asc())

        result = await db.execute(query)
        conflict = find_conflict(start, end, result.scalars().all())

        if conflict is None:
            return

        schedule_conflicts_total.inc()
        logger.info(
            f"Schedule conflict at venue {venue_id} with event {conflict.id}",
            extra={'venue_id': venue_id, 'event_id': conflict.id},
        )
        raise ScheduleConflictError(
            f'Conflict: this event overlaps with "{conflict.title}" '
            f'({conflict.start_time:%Y-%m-%d %H:%M} - {conflict.end_time:%H:%M}). '
            f'Events at the same venue need a {settings.VENUE_BUFFER_MINUTES}-minute buffer '
            'before and after each event.',
            conflicting_event_id=conflict.id,
            conflicting_title=conflict.title,
            conflicting_start=conflict.start_time,
            conflicting_end=conflict.end_time,
        )
