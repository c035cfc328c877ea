"""
Pydantic schemas for Venue resources
"""
from typing import Optional

from pydantic import BaseModel, Field


class VenueCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Unique venue name")
    location: str = Field("", max_length=500, description="Building / room")


class VenueResponse(VenueCreate):
    id: int
    admin_id: Optional[int] = None

    class Config:
        from_attributes = True
