"""
Availability ledger - the only writer of seat counts and ticket rows

Every mutation for an event runs under the per-event lock and inside one
transaction that re-reads the event row with SELECT ... FOR UPDATE, so the
read-check-write sequence is linearizable and a ticket batch commits
together with its seat decrement or not at all.
"""
import logging
import math
import secrets
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.core.config import settings
from campus_tickets.core.database import atomic
from campus_tickets.core.exceptions import (
    AlreadyCheckedInError,
    InsufficientSeatsError,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    TicketingError,
    TooEarlyError,
    TooLateError,
    ValidationError,
)
from campus_tickets.core.locks import event_locks
from campus_tickets.core.metrics import (
    cancellations_total,
    check_ins_total,
    record_reservation,
    reservation_duration_seconds,
    ticket_code_collisions_total,
    track_time,
)
from campus_tickets.core.timeutils import minutes_until, utcnow
from campus_tickets.models import Event, Ticket, TicketStatus, Venue

logger = logging.getLogger(__name__)


@dataclass
class Reservation:
    event_id: int
    user_id: int
    ticket_ids: List[str]
    seats_left: int


@dataclass
class Refund:
    ticket_id: str
    event_id: int
    event_title: str
    refund_amount: Decimal


def generate_ticket_code() -> str:
    """TKT- followed by upper-case hex from a CSPRNG"""
    return f"{settings.TICKET_CODE_PREFIX}{secrets.token_hex(settings.TICKET_CODE_BYTES).upper()}"


def compute_refund(price) -> Decimal:
    return (Decimal(price) * settings.REFUND_RATE).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class AvailabilityLedger:
    """Atomic reserve / release / check-in over events and tickets"""

    @staticmethod
    @track_time(reservation_duration_seconds)
    async def reserve(
        db: AsyncSession,
        event_id: int,
        user_id: int,
        quantity: int,
        now: Optional[datetime] = None,
    ) -> Reservation:
        """
        Reserve `quantity` seats for a user.

        Raises:
            ValidationError: quantity outside 1..MAX_TICKETS_PER_USER
            NotFoundError: event does not exist
            TooLateError: event already started
            QuotaExceededError: user would exceed the per-event cap
            InsufficientSeatsError: fewer seats left than requested
            StorageError: transaction failed and was rolled back
        """
        max_tickets = settings.MAX_TICKETS_PER_USER
        if quantity < 1 or quantity > max_tickets:
            record_reservation("validation_error")
            raise ValidationError(f"Invalid quantity. Must be between 1 and {max_tickets}.")

        async with event_locks.lock(event_id):
            attempts = settings.TICKET_CODE_MAX_ATTEMPTS
            for attempt in range(1, attempts + 1):
                try:
                    reservation = await AvailabilityLedger._reserve_once(
                        db, event_id, user_id, quantity, now or utcnow()
                    )
                    break
                except StorageError as e:
                    # A code taken between the uniqueness check and the insert
                    if isinstance(e.__cause__, IntegrityError) and attempt < attempts:
                        ticket_code_collisions_total.inc()
                        logger.warning(
                            f"Ticket insert rejected by constraint, retrying ({attempt}/{attempts})",
                            extra={'event_id': event_id, 'user_id': user_id},
                        )
                        continue
                    record_reservation(e.code)
                    raise
                except TicketingError as e:
                    record_reservation(e.code)
                    raise

        record_reservation("success", quantity)
        logger.info(
            f"Reserved {quantity} ticket(s) for event {event_id}, {reservation.seats_left} seats left",
            extra={'event_id': event_id, 'user_id': user_id},
        )
        return reservation

    @staticmethod
    async def _reserve_once(
        db: AsyncSession,
        event_id: int,
        user_id: int,
        quantity: int,
        now: datetime,
    ) -> Reservation:
        async with atomic(db, "reserve tickets"):
            # 1. Lock the event row and read the seat counter
            event_query = (
                select(Event)
                .where(Event.id == event_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            event = (await db.execute(event_query)).scalar_one_or_none()

            if event is None:
                raise NotFoundError(f"Event {event_id} not found")

            if event.start_time <= now:
                raise TooLateError("Ticket sales for this event have closed.")

            # 2. Tickets already held by this user, same snapshot
            held_query = select(func.count(Ticket.id)).where(
                Ticket.user_id == user_id,
                Ticket.event_id == event_id,
            )
            tickets_held = (await db.execute(held_query)).scalar_one()

            max_tickets = settings.MAX_TICKETS_PER_USER
            if tickets_held + quantity > max_tickets:
                remaining = max(0, max_tickets - tickets_held)
                raise QuotaExceededError(
                    f"You already have {tickets_held} ticket(s). "
                    f"You can only book {remaining} more (up to {max_tickets} total)."
                )

            if event.seats_left < quantity:
                raise InsufficientSeatsError(
                    f"Sorry, only {event.seats_left} seats are available."
                )

            # 3. Insert the batch and decrement the counter
            codes = await AvailabilityLedger._allocate_ticket_codes(db, quantity)
            db.add_all([
                Ticket(
                    ticket_code=code,
                    user_id=user_id,
                    event_id=event_id,
                    status=TicketStatus.PURCHASED,
                    created_at=now,
                )
                for code in codes
            ])
            event.seats_left = Event.seats_left - quantity
            await db.flush()
            await db.refresh(event, ["seats_left"])

            return Reservation(
                event_id=event_id,
                user_id=user_id,
                ticket_ids=codes,
                seats_left=event.seats_left,
            )

    @staticmethod
    async def _allocate_ticket_codes(db: AsyncSession, quantity: int) -> List[str]:
        """Generate codes and drop any already present in the store"""
        codes: List[str] = []
        for _ in range(settings.TICKET_CODE_MAX_ATTEMPTS):
            candidates = {generate_ticket_code() for _ in range(quantity - len(codes))}
            candidates -= set(codes)

            taken_query = select(Ticket.ticket_code).where(Ticket.ticket_code.in_(candidates))
            taken = set((await db.execute(taken_query)).scalars().all())
            if taken:
                ticket_code_collisions_total.inc(len(taken))

            codes.extend(sorted(candidates - taken))
            if len(codes) == quantity:
                return codes

        raise StorageError("Could not allocate unique ticket identifiers")

    @staticmethod
    async def _event_id_for_ticket(db: AsyncSession, ticket_code: str) -> Optional[int]:
        async with atomic(db, "ticket lookup"):
            query = select(Ticket.event_id).where(Ticket.ticket_code == ticket_code)
            return (await db.execute(query)).scalar_one_or_none()

    @staticmethod
    async def release(
        db: AsyncSession,
        ticket_code: str,
        user_id: int,
        now: Optional[datetime] = None,
    ) -> Refund:
        """
        Cancel a purchased ticket and return its seat to the event.

        Raises:
            NotFoundError: missing, owned by someone else, or already checked in
            TooLateError: less than CANCELLATION_CUTOFF_MINUTES before start
        """
        not_found = "Ticket not found or already cancelled/checked-in."
        event_id = await AvailabilityLedger._event_id_for_ticket(db, ticket_code)
        if event_id is None:
            raise NotFoundError(not_found)

        async with event_locks.lock(event_id):
            now = now or utcnow()
            async with atomic(db, "release ticket"):
                query = (
                    select(Ticket, Event)
                    .join(Event, Ticket.event_id == Event.id)
                    .where(
                        Ticket.ticket_code == ticket_code,
                        Ticket.user_id == user_id,
                        Ticket.status == TicketStatus.PURCHASED,
                    )
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                row = (await db.execute(query)).first()
                if row is None:
                    raise NotFoundError(not_found)

                ticket, event = row
                cutoff = settings.CANCELLATION_CUTOFF_MINUTES
                if minutes_until(event.start_time, now) < cutoff:
                    raise TooLateError(
                        f"Cancellation not allowed. You can only cancel tickets at least "
                        f"{cutoff} minutes before the event starts."
                    )

                refund = Refund(
                    ticket_id=ticket.ticket_code,
                    event_id=event.id,
                    event_title=event.title,
                    refund_amount=compute_refund(event.price),
                )

                await db.delete(ticket)
                event.seats_left = Event.seats_left + 1

        cancellations_total.inc()
        logger.info(
            f"Released ticket {ticket_code}, refund {refund.refund_amount}",
            extra={'event_id': event_id, 'user_id': user_id, 'ticket_id': ticket_code},
        )
        return refund

    @staticmethod
    async def check_in(
        db: AsyncSession,
        ticket_code: str,
        now: Optional[datetime] = None,
    ) -> Ticket:
        """
        Mark a ticket as used at the door.

        A second check-in of the same ticket is rejected with
        AlreadyCheckedInError rather than treated as success.

        Raises:
            NotFoundError: ticket does not exist
            TooEarlyError: more than CHECK_IN_WINDOW_MINUTES before start
            AlreadyCheckedInError: ticket already used
        """
        try:
            ticket = await AvailabilityLedger._check_in(db, ticket_code, now or utcnow())
        except TicketingError as e:
            check_ins_total.labels(outcome=e.code).inc()
            raise

        check_ins_total.labels(outcome="success").inc()
        logger.info(
            f"Checked in ticket {ticket_code}",
            extra={'event_id': ticket.event_id, 'ticket_id': ticket_code},
        )
        return ticket

    @staticmethod
    async def _check_in(db: AsyncSession, ticket_code: str, now: datetime) -> Ticket:
        event_id = await AvailabilityLedger._event_id_for_ticket(db, ticket_code)
        if event_id is None:
            raise NotFoundError("Ticket not found.")

        async with event_locks.lock(event_id):
            async with atomic(db, "check in"):
                query = (
                    select(Ticket, Event)
                    .join(Event, Ticket.event_id == Event.id)
                    .where(Ticket.ticket_code == ticket_code)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                )
                row = (await db.execute(query)).first()
                if row is None:
                    raise NotFoundError("Ticket not found.")

                ticket, event = row
                window = settings.CHECK_IN_WINDOW_MINUTES
                remaining = minutes_until(event.start_time, now)
                if remaining > window:
                    raise TooEarlyError(
                        f"Check-in not yet available. You can check in attendees starting "
                        f"{window} minutes before the event. "
                        f"Time remaining: {math.ceil(remaining)} minutes."
                    )

                if ticket.is_checked_in:
                    raise AlreadyCheckedInError(f"Ticket {ticket_code} is already checked in.")

                ticket.status = TicketStatus.CHECKED_IN
                ticket.checked_in_at = now

        return ticket

    @staticmethod
    async def get_user_tickets(
        db: AsyncSession,
        user_id: int,
    ) -> List[Tuple[Ticket, Event, Venue]]:
        """All tickets of a user with their event and venue, soonest event first"""
        async with atomic(db, "list tickets"):
            query = (
                select(Ticket, Event, Venue)
                .join(Event, Ticket.event_id == Event.id)
                .join(Venue, Event.venue_id == Venue.id)
                .where(Ticket.user_id == user_id)
                .order_by(Event.start_time.asc(), Ticket.id.asc())
            )
            result = await db.execute(query)
            return [tuple(row) for row in result.all()]
