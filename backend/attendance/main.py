"""
Attendance API - Main Application Entry Point

Capacity-aware RSVP handling for events:
- Serializable join/leave with FIFO waitlist promotion
- Organizer overrides, check-in and no-show tracking
- Post-event feedback ledger
- Scheduled waitlist sweeps for upcoming events
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from attendance.core.config import get_settings
from attendance.core.exceptions import AttendanceError, TransactionConflictError
from attendance.core.logging import setup_logging, get_logger
from attendance.core.metrics import metrics_endpoint
from attendance.api.router import api_router
from attendance.api.middleware import RequestLoggingMiddleware
from attendance.infrastructure.redis_client import close_redis, get_redis

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        notifier=settings.NOTIFIER_BACKEND,
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without summary cache")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Attendance capacity and waitlist engine with concurrency-safe RSVPs",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(api_router)


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(TransactionConflictError)
async def transaction_conflict_handler(request: Request, exc: TransactionConflictError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers={"Retry-After": "1"},
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    redis_client = await get_redis()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": {"enabled": redis_client is not None},
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()
