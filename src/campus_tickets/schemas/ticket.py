"""Pydantic schemas for Ticket resources"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from campus_tickets.models.ticket import TicketStatus


class ReservationCreate(BaseModel):
    event_id: int = Field(..., gt=0)
    # Bounds are enforced by the ledger so the error carries its own code
    quantity: int = 1


class ReservationResponse(BaseModel):
    event_id: int
    quantity: int
    ticket_ids: List[str]
    seats_left: int
    message: str


class CancellationResponse(BaseModel):
    ticket_id: str
    event_id: int
    event_title: str
    refund_amount: Decimal
    message: str = "Ticket cancelled successfully!"


class TicketResponse(BaseModel):
    ticket_id: str
    user_id: int
    event_id: int
    status: TicketStatus
    created_at: datetime
    checked_in_at: Optional[datetime] = None

    @classmethod
    def from_ticket(cls, ticket):
        """Convert Ticket ORM model to response"""
        return cls(
            ticket_id=ticket.ticket_code,
            user_id=ticket.user_id,
            event_id=ticket.event_id,
            status=ticket.status,
            created_at=ticket.created_at,
            checked_in_at=ticket.checked_in_at,
        )


class MyTicketResponse(BaseModel):
    ticket_id: str
    status: TicketStatus
    event_id: int
    title: str
    start_time: datetime
    end_time: datetime
    price: Decimal
    venue_name: str


class MyTicketListResponse(BaseModel):
    tickets: List[MyTicketResponse]
    total: int
