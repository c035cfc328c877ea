"""User registration and lookup"""
import logging
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.core.database import atomic
from campus_tickets.core.exceptions import (
    AuthenticationError,
    DuplicateError,
    StorageError,
)
from campus_tickets.core.security import hash_password, verify_password
from campus_tickets.models import User
from campus_tickets.schemas.user import UserCreate

logger = logging.getLogger(__name__)


class UserService:

    @staticmethod
    async def register(db: AsyncSession, data: UserCreate) -> User:
        """
        Store a new user with a hashed password.

        Raises:
            DuplicateError: username or email already registered
        """
        try:
            async with atomic(db, "register user"):
                query = select(User).where(
                    or_(User.username == data.username, User.email == data.email)
                )
                if (await db.execute(query)).scalars().first() is not None:
                    raise DuplicateError("Username or email already exists.")

                user = User(
                    username=data.username,
                    email=data.email,
                    role=data.role,
                    password_hash=hash_password(data.password),
                )
                db.add(user)
                await db.flush()
        except StorageError as e:
            # Lost a race with a concurrent registration
            if isinstance(e.__cause__, IntegrityError):
                raise DuplicateError("Username or email already exists.") from e
            raise

        logger.info(f"Registered {user.role.value} '{user.username}'", extra={'user_id': user.id})
        return user

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
        async with atomic(db, "get user"):
            return await db.get(User, user_id)

    @staticmethod
    async def authenticate(db: AsyncSession, username: str, password: str) -> User:
        """Check credentials; the same error for unknown user and bad password"""
        async with atomic(db, "authenticate"):
            query = select(User).where(User.username == username)
            user = (await db.execute(query)).scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            logger.warning(f"Failed login for '{username}'")
            raise AuthenticationError("Invalid username or password.")
        return user
