"""
Application entrypoint: FastAPI app with database pool and reminder loop lifecycle.
"""

import asyncio
import contextlib
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from liqa.config import settings
from liqa.db.pool import db_pool
from liqa.infrastructure.notifications.broadcaster import NotificationBroadcaster
from liqa.infrastructure.observability.logging import get_logger, log_request, setup_logging
from liqa.jobs.meeting_reminder_job import MeetingReminderJob
from liqa.middleware.request_context import RequestContextMiddleware
from liqa.repositories.postgres_storage import postgres_storage
from liqa.routes import admin, health, meetings, notifications, recommendations, users

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL, json_logs=not settings.debug)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the pool, create the broadcaster and start the reminder loop."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    await db_pool.initialize()

    broadcaster = NotificationBroadcaster()
    reminder_job = MeetingReminderJob(postgres_storage, broadcaster)
    app.state.broadcaster = broadcaster
    app.state.reminder_job = reminder_job

    reminder_task = asyncio.create_task(reminder_job.start(), name="meeting-reminders")
    logger.info("All services initialized successfully", services=["database_pool", "meeting_reminders"])

    yield

    logger.info("Application shutting down")

    reminder_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await reminder_task

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Liqa",
    description="Meeting scheduling and recorded-content platform",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(meetings.router)
app.include_router(recommendations.router)
app.include_router(admin.router)
app.include_router(notifications.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.perf_counter()
    response = await call_next(request)
    log_request(
        request.method,
        request.url.path,
        response.status_code,
        (time.perf_counter() - start_time) * 1000,
    )
    return response


# Outermost: request_id is bound before request logging runs
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
