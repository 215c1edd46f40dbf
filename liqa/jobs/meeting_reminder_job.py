"""
Meeting Reminder Job - pushes "starts in 24 hours / 1 hour" notifications.

Runs inside the API process (started from the app lifespan) because it
needs the live subscriber set owned by the NotificationBroadcaster.

Each tick loads all meetings and, for every upcoming meeting, computes the
whole minutes until it starts (floored). A reminder fires when that number
equals one of the thresholds exactly. With a 60 s tick each threshold minute
is normally observed once; nothing is persisted, so a delayed or skipped
tick can miss a reminder and a fast re-run can repeat one.
"""

import asyncio
import math
import time
from datetime import UTC, datetime, timedelta

from liqa.config import settings
from liqa.infrastructure.notifications.broadcaster import NotificationBroadcaster
from liqa.infrastructure.observability.logging import get_logger, log_job_run
from liqa.models.domain.meeting_domain import Meeting
from liqa.models.domain.notification_domain import NotificationMessage
from liqa.repositories.base import Storage

logger = get_logger(__name__)

REMINDER_MESSAGE_TYPE = "upcoming-meeting"
# Failed sweeps in a row before the job reports unhealthy
MAX_CONSECUTIVE_FAILURES = 3


def minutes_until(meeting: Meeting, now: datetime) -> int:
    """Whole minutes from ``now`` until the meeting starts, floored."""
    return math.floor((meeting.starts_at - now).total_seconds() / 60)


def threshold_label(minutes: int) -> str:
    if minutes % 60:
        return f"{minutes} minutes"
    hours = minutes // 60
    return "1 hour" if hours == 1 else f"{hours} hours"


def reminder_message(meeting: Meeting, minutes: int) -> NotificationMessage:
    return NotificationMessage(
        type=REMINDER_MESSAGE_TYPE,
        message=f'Meeting "{meeting.title}" starts in {threshold_label(minutes)}',
    )


class MeetingReminderJob:
    """
    Periodic threshold sweep feeding the notification broadcaster.
    """

    def __init__(
        self,
        storage: Storage,
        broadcaster: NotificationBroadcaster,
        interval_seconds: float | None = None,
        thresholds_minutes: list[int] | None = None,
    ):
        self.storage = storage
        self.broadcaster = broadcaster
        self.interval_seconds = (
            interval_seconds
            if interval_seconds is not None
            else settings.REMINDER_INTERVAL_SECONDS
        )
        self.thresholds = set(
            thresholds_minutes
            if thresholds_minutes is not None
            else settings.REMINDER_THRESHOLDS_MINUTES
        )
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.first_attempt_time: datetime | None = None
        self.last_run_metrics: dict | None = None
        self.failed_ticks = 0
        self.consecutive_failures = 0

    async def run_once(self, now: datetime | None = None) -> dict:
        """
        Run a single sweep.

        Args:
            now: Evaluation instant (defaults to current UTC time)

        Returns:
            Dict: sweep metrics

        Raises:
            StorageError: meetings could not be loaded
        """
        if self.is_running:
            logger.warning("Meeting reminder job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        now = now or datetime.now(UTC)
        started = time.monotonic()
        if self.first_attempt_time is None:
            self.first_attempt_time = now

        try:
            self.is_running = True
            meetings = await self.storage.get_meetings()

            metrics = {
                "job_run": "meeting_reminders",
                "meetings_checked": 0,
                "reminders_sent": 0,
                "delivered": 0,
                "skipped": 0,
                "failed": 0,
            }

            for meeting in meetings:
                if not meeting.is_upcoming:
                    continue
                metrics["meetings_checked"] += 1

                minutes = minutes_until(meeting, now)
                if minutes not in self.thresholds:
                    continue

                result = await self.broadcaster.broadcast(reminder_message(meeting, minutes))
                metrics["reminders_sent"] += 1
                metrics["delivered"] += result.delivered
                metrics["skipped"] += result.skipped
                metrics["failed"] += result.failed

                logger.info(
                    "Meeting reminder broadcast",
                    meeting_id=meeting.id,
                    minutes_until=minutes,
                    delivered=result.delivered,
                    failed=result.failed,
                )

            self.last_run_time = now
            self.last_run_metrics = metrics
            self.consecutive_failures = 0
            log_job_run(
                "meeting_reminders",
                (time.monotonic() - started) * 1000,
                **{k: v for k, v in metrics.items() if k != "job_run"},
            )
            return metrics

        except Exception:
            self.consecutive_failures += 1
            raise

        finally:
            self.is_running = False

    async def start(self) -> None:
        """
        Run ``run_once`` forever on a fixed period.

        A failed tick is logged and the loop continues. Cancel the task to stop.
        """
        logger.info(
            "Starting meeting reminder scheduler",
            interval_seconds=self.interval_seconds,
            thresholds_minutes=sorted(self.thresholds, reverse=True),
        )

        while True:
            started = time.monotonic()
            try:
                await self.run_once()
            except Exception as e:
                self.failed_ticks += 1
                logger.error(
                    "Error in meeting reminder scheduler",
                    error=str(e),
                    error_type=type(e).__name__,
                    failed_ticks=self.failed_ticks,
                )

            elapsed = time.monotonic() - started
            await asyncio.sleep(max(0.0, self.interval_seconds - elapsed))

    def get_job_status(self) -> dict:
        return {
            "job_name": "meeting_reminders",
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "interval_seconds": self.interval_seconds,
            "thresholds_minutes": sorted(self.thresholds, reverse=True),
            "failed_ticks": self.failed_ticks,
            "last_run_metrics": self.last_run_metrics,
        }

    def health_check(self, now: datetime | None = None) -> dict:
        """
        Health check for the reminder loop.

        The job is unhealthy when no sweep has succeeded within twice the
        interval (counted from the last success, or from the first attempt
        when none has succeeded yet) or after MAX_CONSECUTIVE_FAILURES failed
        sweeps in a row.
        """
        now = now or datetime.now(UTC)
        overdue_threshold = timedelta(seconds=self.interval_seconds * 2)
        reference = self.last_run_time or self.first_attempt_time
        is_overdue = reference is not None and (now - reference) > overdue_threshold
        is_failing = self.consecutive_failures >= MAX_CONSECUTIVE_FAILURES

        health_status = {
            "healthy": not (is_overdue or is_failing),
            "service": "meeting_reminder_job",
            "is_running": self.is_running,
            "last_run_time": self.last_run_time.isoformat() if self.last_run_time else None,
            "is_overdue": is_overdue,
            "failed_ticks": self.failed_ticks,
            "consecutive_failures": self.consecutive_failures,
        }
        if is_overdue:
            health_status["warning"] = (
                f"Job overdue by {(now - reference).total_seconds():.0f} seconds"
            )
        elif is_failing:
            health_status["warning"] = (
                f"{self.consecutive_failures} consecutive sweeps failed"
            )
        return health_status
