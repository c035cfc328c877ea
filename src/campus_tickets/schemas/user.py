"""
Pydantic schemas for User resources
"""
from datetime import datetime

from pydantic import BaseModel, Field

from campus_tickets.models.user import UserRole


class UserBase(BaseModel):
    """Base user schema"""
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    role: UserRole = Field(UserRole.STUDENT, description="student or admin")


class UserCreate(UserBase):
    """Schema for registering a user"""
    password: str = Field(..., min_length=6, max_length=128)


class UserResponse(UserBase):
    """User response schema (never exposes the credential hash)"""
    id: int
    created_at: datetime

    class Config:
        from_attributes = True


class UserLogin(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
