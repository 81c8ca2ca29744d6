"""
Daycare Attendance Service - Main Application Entry Point.

This service handles the attendance side of daycare operations:
- Kiosk check-in/check-out of children by parent PIN
- Parent absence reporting and staff acknowledgment
- Employee time clock (shift and lunch punches) with admin corrections
- Daily and weekly attendance and hours reports
- Kafka event publishing for notifications
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.routes.attendance import router as attendance_router
from app.api.routes.kiosk import router as kiosk_router
from app.api.routes.portal import router as portal_router
from app.api.routes.timeclock import router as timeclock_router
from app.core.config import settings
from app.core.database import create_db_and_tables, engine
from app.core.exceptions import AttendanceError
from app.core.kafka import KafkaProducer
from app.core.logging import get_correlation_id, get_logger, set_correlation_id

logger = get_logger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


@asynccontextmanager
async def lifespan(_: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Daycare Attendance Service...")

    logger.info("Creating database and tables...")
    create_db_and_tables()
    logger.info("Database and tables created successfully")

    logger.info("Initializing Kafka producer...")
    await KafkaProducer.start()

    logger.info("Daycare Attendance Service startup complete")

    yield

    # Shutdown
    logger.info("Daycare Attendance Service shutting down...")

    logger.info("Stopping Kafka producer...")
    await KafkaProducer.stop()
    logger.info("Kafka producer stopped")

    logger.info("Daycare Attendance Service shutdown complete")


# Initialize FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Daycare Attendance Service - child check-in/out, absences and employee time clock",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# Configure CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
    expose_headers=[CORRELATION_HEADER],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """Tag every request (and every log line it produces) with a correlation id."""
    cid = set_correlation_id(request.headers.get(CORRELATION_HEADER))
    response = await call_next(request)
    response.headers[CORRELATION_HEADER] = cid
    return response


@app.exception_handler(AttendanceError)
async def attendance_error_handler(request: Request, exc: AttendanceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.message,
            "kind": exc.kind,
            "field": exc.field,
            "correlationId": get_correlation_id(),
        },
        headers={CORRELATION_HEADER: get_correlation_id()},
    )


# Include routers
app.include_router(kiosk_router, prefix="/api/v1")
app.include_router(attendance_router, prefix="/api/v1")
app.include_router(portal_router, prefix="/api/v1")
app.include_router(timeclock_router, prefix="/api/v1")


# Health check endpoint
@app.get("/health", tags=["health"])
async def health_check():
    """
    Health check endpoint for container orchestration and monitoring.
    """
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }


@app.get("/ready", tags=["health"])
async def readiness_check():
    """
    Readiness check endpoint for Kubernetes.
    Verifies that the attendance store is reachable. Kafka is reported but
    does not gate readiness.
    """
    database_ready = False
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        database_ready = True
    except SQLAlchemyError as e:
        logger.warning(f"Readiness check: database unavailable: {e}")

    if not settings.KAFKA_ENABLED:
        kafka_status = "disabled"
    else:
        kafka_status = "ok" if KafkaProducer._started else "error"

    return {
        "status": "ready" if database_ready else "not_ready",
        "checks": {
            "database": "ok" if database_ready else "error",
            "kafka_producer": kafka_status,
        },
    }


@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint with service information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
    }
