"""
Email reminder job - emails registered users about meetings in the next 24 hours.

Intended to be triggered by an external scheduler through the worker
(``python -m liqa.jobs.worker meeting_email_reminders``). There is no sent
marker: every invocation emails every registrant of every meeting still in
the window.
"""

import time
from datetime import UTC, datetime, timedelta
from typing import Literal

from liqa.config import settings
from liqa.db.pool import db_pool
from liqa.infrastructure.observability.best_effort import best_effort
from liqa.infrastructure.observability.logging import get_logger, log_job_run
from liqa.models.domain.meeting_domain import Meeting
from liqa.repositories.base import Storage
from liqa.repositories.postgres_storage import postgres_storage
from liqa.services.email_service import EmailService, email_service

logger = get_logger(__name__)

ReminderOutcome = Literal["sent", "failed", "skipped"]


async def send_upcoming_meeting_reminders(
    storage: Storage,
    email: EmailService,
    now: datetime | None = None,
    window_hours: int | None = None,
) -> dict:
    """
    Email every registrant of each meeting starting within the window.

    Args:
        storage: Storage collaborator
        email: Email transport
        now: Evaluation instant (defaults to current UTC time)
        window_hours: Look-ahead window (defaults to EMAIL_REMINDER_WINDOW_HOURS)

    Returns:
        Dict: run metrics

    Raises:
        StorageError: the meeting window could not be loaded
    """
    now = now or datetime.now(UTC)
    if window_hours is None:
        window_hours = settings.EMAIL_REMINDER_WINDOW_HOURS
    window = timedelta(hours=window_hours)
    started = time.monotonic()

    meetings = await storage.get_meetings_between(now, now + window)

    metrics = {
        "meetings": len(meetings),
        "emails_sent": 0,
        "emails_failed": 0,
        "emails_skipped": 0,
    }
    for meeting in meetings:
        # Both window bounds are exclusive
        if not (meeting.is_upcoming and now < meeting.starts_at < now + window):
            continue

        attempt = await best_effort(
            "meeting_reminder_fanout",
            lambda m=meeting: _remind_registrants(storage, email, m),
            default={},
            meeting_id=meeting.id,
        )
        for outcome, count in attempt.value.items():
            metrics[f"emails_{outcome}"] += count

    log_job_run("meeting_email_reminders", (time.monotonic() - started) * 1000, **metrics)
    return metrics


async def _remind_registrants(
    storage: Storage, email: EmailService, meeting: Meeting
) -> dict[str, int]:
    outcomes = {"sent": 0, "failed": 0, "skipped": 0}
    registrations = await storage.get_registrations_by_meeting(meeting.id)

    for registration in registrations:
        attempt = await best_effort(
            "meeting_reminder_email",
            lambda r=registration: _remind_one(storage, email, meeting, r.user_id),
            default="failed",
            meeting_id=meeting.id,
            user_id=registration.user_id,
        )
        outcomes[attempt.value] += 1

    return outcomes


async def _remind_one(
    storage: Storage, email: EmailService, meeting: Meeting, user_id: int
) -> ReminderOutcome:
    user = await storage.get_user(user_id)
    if user is None or not user.email:
        logger.info("Skipping reminder for user without email", user_id=user_id)
        return "skipped"
    return "sent" if await email.send_meeting_reminder(user, meeting) else "failed"


async def run_meeting_email_reminders() -> None:
    """Worker entrypoint: one sweep against the shared pool and transport."""
    await db_pool.initialize()
    try:
        metrics = await send_upcoming_meeting_reminders(postgres_storage, email_service)
        logger.info("Meeting email reminders completed", **metrics)
    finally:
        await db_pool.close()
