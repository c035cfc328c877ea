"""
Events API endpoints
Uses EventService / ReportService for business logic
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.api.deps import get_current_user, require_admin
from campus_tickets.core.database import get_db
from campus_tickets.core.timeutils import utcnow
from campus_tickets.middleware.rate_limiter import limiter
from campus_tickets.models import User
from campus_tickets.schemas import (
    AttendeeListResponse,
    AttendeeResponse,
    EventCreate,
    EventCreatedResponse,
    EventListResponse,
    EventReport,
    EventResponse,
    EventUpdate,
)
from campus_tickets.services import EventService, ReportService

router = APIRouter()


@router.post("/events", response_model=EventCreatedResponse, status_code=201)
@limiter.limit("20/minute")
async def create_event(
    request: Request,
    data: EventCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """
    Create an event at a venue

    - start must be in the future, duration between 15 minutes and 8 hours
    - other events at the venue must be at least 60 minutes away
    """
    event = await EventService.create_event(db, organizer_id=admin.id, data=data)
    return EventCreatedResponse(event_id=event.id)


@router.get("/events", response_model=EventListResponse)
@limiter.limit("60/minute")
async def list_events(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All events, soonest first, with the caller's ticket count per event"""
    rows = await EventService.list_events(db, user.id)
    now = utcnow()
    events = [
        EventResponse.from_event(event, venue=venue, tickets_held=held, now=now)
        for event, venue, held in rows
    ]
    return EventListResponse(events=events, total=len(events))


@router.get("/admin/events", response_model=EventListResponse)
@limiter.limit("60/minute")
async def list_my_organized_events(
    request: Request,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Events created by the calling admin, latest first"""
    rows = await EventService.list_organizer_events(db, admin.id)
    now = utcnow()
    events = [EventResponse.from_event(event, venue=venue, now=now) for event, venue in rows]
    return EventListResponse(events=events, total=len(events))


@router.patch("/events/{event_id}", response_model=EventResponse)
@limiter.limit("20/minute")
async def update_event(
    request: Request,
    event_id: int,
    changes: EventUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Edit an event; omitted fields keep their current value"""
    event = await EventService.update_event(db, event_id, organizer_id=admin.id, changes=changes)
    return EventResponse.from_event(event)


@router.delete("/events/{event_id}", status_code=204)
@limiter.limit("20/minute")
async def delete_event(
    request: Request,
    event_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete an event together with all of its tickets"""
    await EventService.delete_event(db, event_id, organizer_id=admin.id)
    return Response(status_code=204)


@router.get("/events/{event_id}/attendees", response_model=AttendeeListResponse)
@limiter.limit("60/minute")
async def list_attendees(
    request: Request,
    event_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    event, rows = await EventService.list_attendees(db, event_id, organizer_id=admin.id)
    return AttendeeListResponse(
        event_id=event.id,
        event_title=event.title,
        event_start=event.start_time,
        attendees=[
            AttendeeResponse(
                username=attendee.username,
                email=attendee.email,
                ticket_id=ticket.ticket_code,
                status=ticket.status.value,
            )
            for attendee, ticket in rows
        ],
    )


@router.get("/events/{event_id}/report", response_model=EventReport)
@limiter.limit("30/minute")
async def get_event_report(
    request: Request,
    event_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Revenue and attendance figures, available once the event has ended"""
    return await ReportService.get_report(db, event_id, organizer_id=admin.id)
