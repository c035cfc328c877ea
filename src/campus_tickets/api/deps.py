"""
Shared API dependencies - caller identity and role checks
"""
from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.core.database import get_db
from campus_tickets.core.exceptions import AuthenticationError, PermissionDeniedError
from campus_tickets.models import User, UserRole
from campus_tickets.services import UserService


async def get_current_user_id(
    user_id: int = Query(..., description="Caller's user id"),
) -> int:
    return user_id


async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    user = await UserService.get_by_id(db, user_id)
    if user is None:
        raise AuthenticationError("Unknown user. Please register first.")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise PermissionDeniedError("Only admins can do this.")
    return user


async def require_student(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.STUDENT:
        raise PermissionDeniedError("Only students can reserve tickets.")
    return user
