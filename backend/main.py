"""
FastAPI application entry point for HabitPush

Initializes the FastAPI app, registers routers, and sets up startup/shutdown events.
"""
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from habitpush.core.config import settings
from habitpush.core.database import engine, Base, get_db_session
from habitpush.core.logging_config import setup_logging, get_logger
from habitpush.core.metrics import init_metrics, get_metrics, get_content_type
from habitpush.middleware.logging_middleware import RequestLoggingMiddleware
from habitpush.api.v1.push import router as push_router
from habitpush.api.v1.reminders import router as reminders_router, run_reminders
import habitpush.models  # noqa: F401  registers ORM tables on Base.metadata

# Application version
APP_VERSION = "1.0.0"

# Initialize structured JSON logging
setup_logging(app_version=APP_VERSION)
logger = get_logger(__name__)

# Initialize Prometheus metrics
init_metrics(version=APP_VERSION)

# Global scheduler instance
scheduler: AsyncIOScheduler = None


async def scheduled_reminder_job():
    """
    Scheduled reminder job (daily at REMINDER_SCHEDULE_HOUR:MINUTE UTC)

    Runs the same reminder pass as POST /api/v1/reminders/send.
    """
    try:
        with get_db_session() as db:
            run = await run_reminders(db)

        summary = run.to_dict()
        logger.info(
            f"Scheduled reminder run complete: {len(summary['results'])} subscriptions processed",
            extra={"event_type": "scheduled_reminders", "total": len(summary["results"])}
        )

    except Exception as e:
        logger.error(f"Scheduled reminder run failed: {e}", exc_info=True)


def _ensure_sqlite_directory(database_url: str) -> None:
    """Create the parent directory of a file-based SQLite database."""
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        return
    path = database_url[len(prefix):]
    if path and path != ":memory:":
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler for startup and shutdown events.

    - Startup: Creates database tables and starts the optional reminder schedule
    - Shutdown: Stops the scheduler
    """
    global scheduler

    logger.info(
        "Application starting",
        extra={
            "event_type": "app_startup",
            "version": APP_VERSION,
            "log_level": settings.LOG_LEVEL,
            "debug_mode": settings.DEBUG,
            "vapid_configured": settings.vapid_configured,
        }
    )

    if not settings.vapid_configured:
        logger.warning(
            "VAPID keys not configured; reminder runs will fail until VAPID_PUBLIC_KEY and "
            "VAPID_PRIVATE_KEY are set (see scripts/generate_vapid_keys.py)",
            extra={"event_type": "vapid_missing"}
        )

    # Create database tables
    _ensure_sqlite_directory(settings.DATABASE_URL)
    Base.metadata.create_all(bind=engine)
    logger.info(
        "Database initialized",
        extra={"event_type": "database_init", "status": "success"}
    )

    if settings.REMINDER_SCHEDULE_ENABLED:
        scheduler = AsyncIOScheduler(timezone="UTC")
        scheduler.add_job(
            scheduled_reminder_job,
            trigger=CronTrigger(
                hour=settings.REMINDER_SCHEDULE_HOUR,
                minute=settings.REMINDER_SCHEDULE_MINUTE,
                timezone="UTC",
            ),
            id="habit_reminders",
            name="Send daily habit reminders",
            replace_existing=True,
        )
        scheduler.start()
        logger.info(
            "Reminder scheduler started",
            extra={
                "event_type": "scheduler_init",
                "hour": settings.REMINDER_SCHEDULE_HOUR,
                "minute": settings.REMINDER_SCHEDULE_MINUTE,
            }
        )

    yield

    # Stop scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info(
            "Scheduler stopped",
            extra={"event_type": "scheduler_shutdown"}
        )

    logger.info(
        "Application shutdown complete",
        extra={"event_type": "app_shutdown_complete", "version": APP_VERSION}
    )


# Create FastAPI app
app = FastAPI(
    title="HabitPush API",
    description="Web Push delivery of daily habit reminders",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request logging middleware
app.add_middleware(RequestLoggingMiddleware)

app.include_router(push_router, prefix=settings.API_V1_PREFIX)
app.include_router(reminders_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
async def root():
    """Root endpoint - API status check"""
    return {
        "name": "HabitPush API",
        "version": APP_VERSION,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "vapid_configured": settings.vapid_configured,
        "scheduler_running": bool(scheduler and scheduler.running),
    }


@app.get("/metrics")
async def prometheus_metrics():
    """
    Prometheus metrics endpoint

    Returns Prometheus-compatible metrics for scraping.
    """
    return Response(
        content=get_metrics(),
        media_type=get_content_type()
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
