"""
Pydantic schemas for API request/response validation
"""
from campus_tickets.schemas.user import UserBase, UserCreate, UserLogin, UserResponse
from campus_tickets.schemas.venue import VenueCreate, VenueResponse
from campus_tickets.schemas.event import (
    EventBase,
    EventCreate,
    EventUpdate,
    EventResponse,
    EventCreatedResponse,
    EventListResponse,
    AttendeeResponse,
    AttendeeListResponse,
)
from campus_tickets.schemas.ticket import (
    ReservationCreate,
    ReservationResponse,
    CancellationResponse,
    TicketResponse,
    MyTicketResponse,
    MyTicketListResponse,
)
from campus_tickets.schemas.report import EventReport

__all__ = [
    # Users
    "UserBase",
    "UserCreate",
    "UserLogin",
    "UserResponse",
    # Venues
    "VenueCreate",
    "VenueResponse",
    # Events
    "EventBase",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "EventCreatedResponse",
    "EventListResponse",
    "AttendeeResponse",
    "AttendeeListResponse",
    # Tickets
    "ReservationCreate",
    "ReservationResponse",
    "CancellationResponse",
    "TicketResponse",
    "MyTicketResponse",
    "MyTicketListResponse",
    # Reports
    "EventReport",
]
