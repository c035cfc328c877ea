"""
FastAPI application entry point
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from contextlib import asynccontextmanager
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy import text
from slowapi.errors import RateLimitExceeded
import logging

from campus_tickets import __version__
from campus_tickets.core.config import settings
from campus_tickets.core.database import engine, init_db
from campus_tickets.core.exceptions import ScheduleConflictError, TicketingError
from campus_tickets.core.logging_config import setup_logging
from campus_tickets.core.metrics import get_metrics
from campus_tickets.api import events, tickets, users, venues
from campus_tickets.middleware.rate_limiter import limiter
from campus_tickets.middleware.tracing import TracingMiddleware

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    logger.info(f"Starting {settings.APP_NAME} {__version__}")
    logger.info(f"Database backend: {'sqlite' if settings.is_sqlite else engine.url.get_backend_name()}")

    # Test database connection
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise

    if settings.AUTO_CREATE_TABLES:
        await init_db()
        logger.info("Database tables ready")

    yield

    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Campus event ticketing: venues, events, reservations, check-in and reports",
    lifespan=lifespan,
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(f"Rate limit exceeded for {request.url.path}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "message": "Too many requests. Please slow down.",
            "detail": str(exc.detail),
        },
        headers={"Retry-After": "60"},
    )


@app.exception_handler(TicketingError)
async def ticketing_error_handler(request: Request, exc: TicketingError):
    """Render domain errors as {"error": code, "message": ...}"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}", exc_info=exc)
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.message}")

    content = {"error": exc.code, "message": exc.message}
    if isinstance(exc, ScheduleConflictError) and exc.conflicting_event_id is not None:
        content["conflicting_event_id"] = exc.conflicting_event_id
    return JSONResponse(status_code=exc.status_code, content=content)


# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TracingMiddleware)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    database_status = "healthy"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Health check database ping failed: {e}")
        database_status = "unavailable"

    return {
        "status": "healthy" if database_status == "healthy" else "degraded",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "database": database_status,
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint"""
    return {
        "message": "Welcome to the Campus Event Ticketing API",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "health": "/health",
        "metrics": "/metrics",
    }


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


# Include routers
app.include_router(users.router, prefix="/api/v1", tags=["Users"])
app.include_router(venues.router, prefix="/api/v1", tags=["Venues"])
app.include_router(events.router, prefix="/api/v1", tags=["Events"])
app.include_router(tickets.router, prefix="/api/v1", tags=["Tickets"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "campus_tickets.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="info",
    )
