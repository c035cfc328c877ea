"""
Reserve / release / check-in against a real database
"""
import re
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from campus_tickets.core.exceptions import (
    AlreadyCheckedInError,
    InsufficientSeatsError,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    TooEarlyError,
    TooLateError,
    ValidationError,
)
from campus_tickets.core.locks import event_locks
from campus_tickets.core.timeutils import utcnow
from campus_tickets.models import Ticket, TicketStatus
from campus_tickets.services import AvailabilityLedger, compute_refund, generate_ticket_code
from campus_tickets.services import availability_ledger

TICKET_CODE = re.compile(r"^TKT-[0-9A-F]{8}$")


def test_generate_ticket_code_format():
    codes = {generate_ticket_code() for _ in range(50)}
    assert all(TICKET_CODE.match(code) for code in codes)
    assert len(codes) > 1


def test_refund_is_ninety_percent_rounded_half_up():
    assert compute_refund(Decimal("20.00")) == Decimal("18.00")
    assert compute_refund(Decimal("0.05")) == Decimal("0.05")
    assert compute_refund(Decimal("0.00")) == Decimal("0.00")
    assert compute_refund(Decimal("9.99")) == Decimal("8.99")


@pytest.mark.asyncio
async def test_reserve_creates_tickets_and_decrements_seats(db, make_event, student, seat_state):
    event = await make_event(capacity=10)

    reservation = await AvailabilityLedger.reserve(db, event.id, student.id, 2)

    assert len(reservation.ticket_ids) == 2
    assert all(TICKET_CODE.match(code) for code in reservation.ticket_ids)
    assert reservation.seats_left == 8
    assert await seat_state(event.id) == (8, 10, 2)
    assert event_locks.active_keys() == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("quantity", [0, -1, 5])
async def test_reserve_rejects_bad_quantity(db, make_event, student, seat_state, quantity):
    event = await make_event()

    with pytest.raises(ValidationError):
        await AvailabilityLedger.reserve(db, event.id, student.id, quantity)

    assert await seat_state(event.id) == (10, 10, 0)


@pytest.mark.asyncio
async def test_reserve_enforces_per_user_quota(db, make_event, student, other_student, seat_state):
    event = await make_event(capacity=20)

    await AvailabilityLedger.reserve(db, event.id, student.id, 3)

    with pytest.raises(QuotaExceededError, match="already have 3"):
        await AvailabilityLedger.reserve(db, event.id, student.id, 2)

    await AvailabilityLedger.reserve(db, event.id, student.id, 1)

    with pytest.raises(QuotaExceededError):
        await AvailabilityLedger.reserve(db, event.id, student.id, 1)

    # The cap is per user
    await AvailabilityLedger.reserve(db, event.id, other_student.id, 4)

    assert await seat_state(event.id) == (12, 20, 8)


@pytest.mark.asyncio
async def test_reserve_insufficient_seats(db, make_event, student, seat_state):
    event = await make_event(capacity=2)

    with pytest.raises(InsufficientSeatsError, match="only 2 seats"):
        await AvailabilityLedger.reserve(db, event.id, student.id, 3)

    assert await seat_state(event.id) == (2, 2, 0)


@pytest.mark.asyncio
async def test_reserve_sold_out(db, make_event, student, other_student):
    event = await make_event(capacity=1)
    await AvailabilityLedger.reserve(db, event.id, student.id, 1)

    with pytest.raises(InsufficientSeatsError):
        await AvailabilityLedger.reserve(db, event.id, other_student.id, 1)


@pytest.mark.asyncio
async def test_reserve_missing_event(db, student):
    with pytest.raises(NotFoundError):
        await AvailabilityLedger.reserve(db, 999, student.id, 1)


@pytest.mark.asyncio
async def test_reserve_after_start_is_too_late(db, make_event, student):
    event = await make_event(start=utcnow() - timedelta(minutes=5))

    with pytest.raises(TooLateError):
        await AvailabilityLedger.reserve(db, event.id, student.id, 1)


@pytest.mark.asyncio
async def test_reserve_skips_codes_already_taken(db, make_event, student, other_student, monkeypatch):
    """A generated code that already exists is replaced before insert"""
    event = await make_event()
    codes = iter(["TKT-AAAAAAAA", "TKT-AAAAAAAA", "TKT-BBBBBBBB"])
    monkeypatch.setattr(availability_ledger, "generate_ticket_code", lambda: next(codes))

    first = await AvailabilityLedger.reserve(db, event.id, student.id, 1)
    second = await AvailabilityLedger.reserve(db, event.id, other_student.id, 1)

    assert first.ticket_ids == ["TKT-AAAAAAAA"]
    assert second.ticket_ids == ["TKT-BBBBBBBB"]


@pytest.mark.asyncio
async def test_reserve_retries_after_constraint_rejects_batch(
    db, make_event, student, other_student, seat_state, session_factory, monkeypatch
):
    """A batch rejected by the unique constraint rolls back whole, then succeeds"""
    event = await make_event(capacity=10)
    held = await AvailabilityLedger.reserve(db, event.id, other_student.id, 1)
    taken = held.ticket_ids[0]

    allocate = AvailabilityLedger._allocate_ticket_codes
    calls = {"n": 0}

    async def collide_once(session, quantity):
        calls["n"] += 1
        if calls["n"] == 1:
            return [taken, "TKT-0000FFFF"]
        return await allocate(session, quantity)

    monkeypatch.setattr(AvailabilityLedger, "_allocate_ticket_codes", staticmethod(collide_once))

    reservation = await AvailabilityLedger.reserve(db, event.id, student.id, 2)

    assert calls["n"] == 2
    assert len(reservation.ticket_ids) == 2
    assert taken not in reservation.ticket_ids
    assert "TKT-0000FFFF" not in reservation.ticket_ids
    assert reservation.seats_left == 7
    assert await seat_state(event.id) == (7, 10, 3)

    async with session_factory() as session:
        rejected = await session.execute(select(Ticket).where(Ticket.ticket_code == "TKT-0000FFFF"))
        assert rejected.scalars().first() is None
    assert event_locks.active_keys() == 0


@pytest.mark.asyncio
async def test_reserve_gives_up_when_every_batch_collides(
    db, make_event, student, other_student, seat_state, session_factory, monkeypatch
):
    event = await make_event(capacity=10)
    held = await AvailabilityLedger.reserve(db, event.id, other_student.id, 1)
    taken = held.ticket_ids[0]

    async def always_collide(session, quantity):
        return [taken] * quantity

    monkeypatch.setattr(AvailabilityLedger, "_allocate_ticket_codes", staticmethod(always_collide))

    with pytest.raises(StorageError):
        await AvailabilityLedger.reserve(db, event.id, student.id, 1)

    assert await seat_state(event.id) == (9, 10, 1)
    async with session_factory() as session:
        mine = await session.execute(select(Ticket).where(Ticket.user_id == student.id))
        assert mine.scalars().first() is None
    assert event_locks.active_keys() == 0


@pytest.mark.asyncio
async def test_release_refunds_and_returns_seat(db, make_event, student, seat_state):
    event = await make_event(price="20.00", capacity=5)
    reservation = await AvailabilityLedger.reserve(db, event.id, student.id, 2)
    code = reservation.ticket_ids[0]

    refund = await AvailabilityLedger.release(db, code, student.id)

    assert refund.refund_amount == Decimal("18.00")
    assert refund.ticket_id == code
    assert refund.event_id == event.id
    assert refund.event_title == event.title
    assert await seat_state(event.id) == (4, 5, 1)


@pytest.mark.asyncio
async def test_release_cutoff_boundary(db, make_event, student, seat_state):
    """Exactly 30 minutes before start is allowed, 29 is not"""
    event = await make_event(capacity=5)
    codes = (await AvailabilityLedger.reserve(db, event.id, student.id, 2)).ticket_ids

    await AvailabilityLedger.release(db, codes[0], student.id, now=event.start_time - timedelta(minutes=30))

    with pytest.raises(TooLateError):
        await AvailabilityLedger.release(db, codes[1], student.id, now=event.start_time - timedelta(minutes=29))

    assert await seat_state(event.id) == (4, 5, 1)


@pytest.mark.asyncio
async def test_release_requires_owner(db, make_event, student, other_student, seat_state):
    event = await make_event()
    code = (await AvailabilityLedger.reserve(db, event.id, student.id, 1)).ticket_ids[0]

    with pytest.raises(NotFoundError):
        await AvailabilityLedger.release(db, code, other_student.id)

    assert await seat_state(event.id) == (9, 10, 1)


@pytest.mark.asyncio
async def test_release_unknown_or_repeated(db, make_event, student):
    event = await make_event()
    code = (await AvailabilityLedger.reserve(db, event.id, student.id, 1)).ticket_ids[0]

    with pytest.raises(NotFoundError):
        await AvailabilityLedger.release(db, "TKT-00000000", student.id)

    await AvailabilityLedger.release(db, code, student.id)
    with pytest.raises(NotFoundError):
        await AvailabilityLedger.release(db, code, student.id)


@pytest.mark.asyncio
async def test_release_checked_in_ticket_not_allowed(db, make_event, student, seat_state):
    event = await make_event()
    code = (await AvailabilityLedger.reserve(db, event.id, student.id, 1)).ticket_ids[0]
    await AvailabilityLedger.check_in(db, code, now=event.start_time - timedelta(minutes=10))

    with pytest.raises(NotFoundError):
        await AvailabilityLedger.release(db, code, student.id, now=event.start_time - timedelta(hours=2))

    assert await seat_state(event.id) == (9, 10, 1)


@pytest.mark.asyncio
async def test_check_in_window_boundary(db, make_event, student):
    """Exactly 25 minutes before start is allowed, 26 is too early"""
    event = await make_event()
    codes = (await AvailabilityLedger.reserve(db, event.id, student.id, 2)).ticket_ids

    with pytest.raises(TooEarlyError, match="Time remaining: 26 minutes"):
        await AvailabilityLedger.check_in(db, codes[0], now=event.start_time - timedelta(minutes=26))

    checked_in_at = event.start_time - timedelta(minutes=25)
    ticket = await AvailabilityLedger.check_in(db, codes[0], now=checked_in_at)

    assert ticket.ticket_code == codes[0]
    assert ticket.status == TicketStatus.CHECKED_IN
    assert ticket.checked_in_at == checked_in_at


@pytest.mark.asyncio
async def test_check_in_twice_rejected(db, make_event, student, session_factory):
    event = await make_event()
    code = (await AvailabilityLedger.reserve(db, event.id, student.id, 1)).ticket_ids[0]
    first_time = event.start_time - timedelta(minutes=5)
    await AvailabilityLedger.check_in(db, code, now=first_time)

    with pytest.raises(AlreadyCheckedInError):
        await AvailabilityLedger.check_in(db, code, now=event.start_time)

    async with session_factory() as session:
        ticket = (await session.execute(select(Ticket).where(Ticket.ticket_code == code))).scalar_one()
        assert ticket.checked_in_at == first_time


@pytest.mark.asyncio
async def test_check_in_unknown_ticket(db):
    with pytest.raises(NotFoundError):
        await AvailabilityLedger.check_in(db, "TKT-DEADBEEF")


@pytest.mark.asyncio
async def test_user_tickets_listed_by_event_start(db, make_event, student, other_student):
    later = await make_event(title="Later", start=utcnow() + timedelta(days=3))
    sooner = await make_event(title="Sooner", start=utcnow() + timedelta(days=1))
    await AvailabilityLedger.reserve(db, later.id, student.id, 1)
    await AvailabilityLedger.reserve(db, sooner.id, student.id, 2)
    await AvailabilityLedger.reserve(db, sooner.id, other_student.id, 1)

    rows = await AvailabilityLedger.get_user_tickets(db, student.id)

    assert [event.title for _, event, _ in rows] == ["Sooner", "Sooner", "Later"]
    assert all(ticket.user_id == student.id for ticket, _, _ in rows)
    assert rows[0][2].name == "Main Auditorium"


@pytest.mark.asyncio
async def test_seat_invariant_holds_across_operations(db, make_event, student, other_student, seat_state):
    event = await make_event(capacity=6)

    a = await AvailabilityLedger.reserve(db, event.id, student.id, 4)
    await AvailabilityLedger.reserve(db, event.id, other_student.id, 2)
    await AvailabilityLedger.release(db, a.ticket_ids[0], student.id)
    await AvailabilityLedger.reserve(db, event.id, other_student.id, 1)

    seats_left, capacity, tickets = await seat_state(event.id)
    assert seats_left + tickets == capacity
    assert seats_left == 0
