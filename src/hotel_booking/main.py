"""
FastAPI application entry point
"""
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import logging

from hotel_booking.core.config import settings
from hotel_booking.core.database import engine
from hotel_booking.core.logging_config import setup_logging
from hotel_booking.core.metrics import get_metrics, record_storage_failure, CONTENT_TYPE_LATEST
from hotel_booking.core.redis import redis_client
from hotel_booking.api import bookings, rooms
from hotel_booking.middleware.tracing import TracingMiddleware
from hotel_booking.services import BookingServiceError, StorageFailureError

logger = logging.getLogger(__name__)

STORAGE_RETRY_AFTER_SECONDS = 1


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    setup_logging()
    logger.info(f"Starting up {settings.APP_NAME} {settings.APP_VERSION}")

    # Test database connection
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection successful")
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise

    # Connect to Redis (calendar cache degrades to database reads without it)
    await redis_client.connect()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await redis_client.close()
    await engine.dispose()
    logger.info("Cleanup complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Hotel room availability and booking lifecycle engine",
    lifespan=lifespan,
)


@app.exception_handler(BookingServiceError)
async def booking_error_handler(request: Request, exc: BookingServiceError):
    """Render service errors with the status their type maps to"""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_type} on {request.method} {request.url.path}: {exc}")
    else:
        logger.warning(f"{exc.error_type} on {request.method} {request.url.path}: {exc}")

    headers = None
    if isinstance(exc, StorageFailureError):
        headers = {"Retry-After": str(STORAGE_RETRY_AFTER_SECONDS)}

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": str(exc),
            "data": None,
            "errors": {"type": exc.error_type},
        },
        headers=headers,
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    """Database errors that escaped the services, e.g. from plain reads"""
    record_storage_failure("read")
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return await booking_error_handler(
        request, StorageFailureError("Storage is unavailable, please retry")
    )


app.add_middleware(TracingMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    redis_status = "healthy" if redis_client.redis else "unavailable"

    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "redis": redis_status,
    }


@app.get("/metrics", tags=["Monitoring"])
async def metrics():
    """Prometheus metrics endpoint"""
    return Response(content=get_metrics(), media_type=CONTENT_TYPE_LATEST)


# Include routers
app.include_router(rooms.router, prefix="/api/v1", tags=["Rooms"])
app.include_router(bookings.router, prefix="/api/v1", tags=["Bookings"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "hotel_booking.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
