"""
Pydantic schemas for Event resources
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from campus_tickets.core.timeutils import to_naive_utc


class EventBase(BaseModel):
    """Base Event schema"""
    title: str = Field(..., min_length=1, max_length=200, description="Event title")
    start_time: datetime = Field(..., description="Event start time (UTC if no offset is given)")
    end_time: datetime = Field(..., description="Event end time")
    venue_id: int = Field(..., gt=0)
    capacity: int = Field(..., ge=0, description="Total number of seats")
    price: Decimal = Field(Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_to_utc(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class EventCreate(EventBase):
    """Schema for creating an event"""
    pass


class EventUpdate(BaseModel):
    """Partial update - omitted fields keep their stored value"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    venue_id: Optional[int] = Field(None, gt=0)
    capacity: Optional[int] = Field(None, ge=0)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)

    @field_validator('start_time', 'end_time')
    @classmethod
    def normalize_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v) if v is not None else v


class EventResponse(BaseModel):
    """Event response schema"""
    id: int
    title: str
    start_time: datetime
    end_time: datetime
    venue_id: int
    capacity: int
    seats_left: int
    price: Decimal
    organizer_id: int
    venue_name: Optional[str] = None
    venue_location: Optional[str] = None
    tickets_held: Optional[int] = Field(None, description="Tickets the caller holds for this event")
    is_active: Optional[bool] = Field(None, description="Seats left and not yet started")

    @classmethod
    def from_event(cls, event, venue=None, tickets_held: Optional[int] = None, now: Optional[datetime] = None):
        """Convert Event ORM model to response"""
        return cls(
            id=event.id,
            title=event.title,
            start_time=event.start_time,
            end_time=event.end_time,
            venue_id=event.venue_id,
            capacity=event.capacity,
            seats_left=event.seats_left,
            price=event.price,
            organizer_id=event.organizer_id,
            venue_name=venue.name if venue is not None else None,
            venue_location=venue.location if venue is not None else None,
            tickets_held=tickets_held,
            is_active=event.is_active(now) if now is not None else None,
        )


class EventCreatedResponse(BaseModel):
    event_id: int
    message: str = "Event created successfully!"


class EventListResponse(BaseModel):
    """Response schema for listing events"""
    events: List[EventResponse]
    total: int


class AttendeeResponse(BaseModel):
    username: str
    email: str
    ticket_id: str
    status: str


class AttendeeListResponse(BaseModel):
    event_id: int
    event_title: str
    event_start: datetime
    attendees: List[AttendeeResponse]
