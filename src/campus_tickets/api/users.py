"""Users API endpoints"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from campus_tickets.api.deps import get_current_user
from campus_tickets.core.database import get_db
from campus_tickets.middleware.rate_limiter import limiter
from campus_tickets.models import User
from campus_tickets.schemas import UserCreate, UserLogin, UserResponse
from campus_tickets.services import UserService

router = APIRouter()


@router.post("/users", response_model=UserResponse, status_code=201)
@limiter.limit("10/minute")
async def register_user(
    request: Request,
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a student or admin account"""
    user = await UserService.register(db, data)
    return UserResponse.model_validate(user)


@router.post("/users/login", response_model=UserResponse)
@limiter.limit("10/minute")
async def login(
    request: Request,
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db),
):
    """Check credentials and return the account (its id is the caller identity)"""
    user = await UserService.authenticate(db, credentials.username, credentials.password)
    return UserResponse.model_validate(user)


@router.get("/users/me", response_model=UserResponse)
@limiter.limit("60/minute")
async def read_current_user(
    request: Request,
    user: User = Depends(get_current_user),
):
    return UserResponse.model_validate(user)
