"""Venue creation and listing"""
import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.core.database import atomic
from campus_tickets.core.exceptions import DuplicateError, StorageError
from campus_tickets.models import Venue
from campus_tickets.schemas.venue import VenueCreate

logger = logging.getLogger(__name__)


class VenueService:

    @staticmethod
    async def create_venue(db: AsyncSession, admin_id: int, data: VenueCreate) -> Venue:
        """
        Raises:
            DuplicateError: a venue with this name exists
        """
        duplicate = f"A venue named '{data.name}' already exists."
        try:
            async with atomic(db, "create venue"):
                existing = await db.execute(select(Venue.id).where(Venue.name == data.name))
                if existing.scalar_one_or_none() is not None:
                    raise DuplicateError(duplicate)

                venue = Venue(name=data.name, location=data.location, admin_id=admin_id)
                db.add(venue)
                await db.flush()
        except StorageError as e:
            if isinstance(e.__cause__, IntegrityError):
                raise DuplicateError(duplicate) from e
            raise

        logger.info(f"Created venue '{venue.name}'", extra={'venue_id': venue.id, 'user_id': admin_id})
        return venue

    @staticmethod
    async def list_venues(db: AsyncSession) -> List[Venue]:
        async with atomic(db, "list venues"):
            result = await db.execute(select(Venue).order_by(Venue.name.asc()))
            return list(result.scalars().all())
