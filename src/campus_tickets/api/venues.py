"""Venues API endpoints"""
from typing import List

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.api.deps import get_current_user, require_admin
from campus_tickets.core.database import get_db
from campus_tickets.middleware.rate_limiter import limiter
from campus_tickets.models import User
from campus_tickets.schemas import VenueCreate, VenueResponse
from campus_tickets.services import VenueService

router = APIRouter()


@router.post("/venues", response_model=VenueResponse, status_code=201)
@limiter.limit("20/minute")
async def create_venue(
    request: Request,
    data: VenueCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    venue = await VenueService.create_venue(db, admin.id, data)
    return VenueResponse.model_validate(venue)


@router.get("/venues", response_model=List[VenueResponse])
@limiter.limit("60/minute")
async def list_venues(
    request: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All venues, ordered by name"""
    venues = await VenueService.list_venues(db)
    return [VenueResponse.model_validate(venue) for venue in venues]
