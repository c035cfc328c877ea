"""Tickets API endpoints"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.api.deps import get_current_user, require_admin, require_student
from campus_tickets.core.database import get_db
from campus_tickets.middleware.rate_limiter import limiter
from campus_tickets.models import User
from campus_tickets.schemas import (
    CancellationResponse,
    MyTicketListResponse,
    MyTicketResponse,
    ReservationCreate,
    ReservationResponse,
    TicketResponse,
)
from campus_tickets.services import AvailabilityLedger

router = APIRouter()


@router.post("/tickets", response_model=ReservationResponse, status_code=201)
@limiter.limit("10/minute")
async def reserve_tickets(
    request: Request,
    data: ReservationCreate,
    student: User = Depends(require_student),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve 1-4 tickets for an event

    Fails with quota_exceeded when the caller would hold more than 4 tickets
    for the event and insufficient_seats when not enough seats remain.
    """
    reservation = await AvailabilityLedger.reserve(db, data.event_id, student.id, data.quantity)
    count = len(reservation.ticket_ids)
    return ReservationResponse(
        event_id=reservation.event_id,
        quantity=count,
        ticket_ids=reservation.ticket_ids,
        seats_left=reservation.seats_left,
        message=f"Successfully reserved {count} ticket(s)!",
    )


@router.get("/tickets", response_model=MyTicketListResponse)
@limiter.limit("60/minute")
async def list_my_tickets(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    rows = await AvailabilityLedger.get_user_tickets(db, user.id)
    tickets = [
        MyTicketResponse(
            ticket_id=ticket.ticket_code,
            status=ticket.status,
            event_id=event.id,
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
            price=event.price,
            venue_name=venue.name,
        )
        for ticket, event, venue in rows
    ]
    return MyTicketListResponse(tickets=tickets, total=len(tickets))


@router.delete("/tickets/{ticket_id}", response_model=CancellationResponse)
@limiter.limit("10/minute")
async def cancel_ticket(
    request: Request,
    ticket_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a purchased ticket up to 30 minutes before the event; refunds 90%"""
    refund = await AvailabilityLedger.release(db, ticket_id, user.id)
    return CancellationResponse(
        ticket_id=refund.ticket_id,
        event_id=refund.event_id,
        event_title=refund.event_title,
        refund_amount=refund.refund_amount,
    )


@router.post("/tickets/{ticket_id}/check-in", response_model=TicketResponse)
@limiter.limit("60/minute")
async def check_in_ticket(
    request: Request,
    ticket_id: str,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admit the ticket holder, from 25 minutes before the start"""
    ticket = await AvailabilityLedger.check_in(db, ticket_id)
    return TicketResponse.from_ticket(ticket)
