"""
One-shot job runner for external schedulers (cron, a platform job runner).

    liqa-worker meeting_email_reminders
    WORKER_JOB=meeting_email_reminders liqa-worker

Exits non-zero when the job is unknown or raises.
"""

import asyncio
import os
import sys
import time
from collections.abc import Awaitable, Callable

from liqa.config import settings
from liqa.infrastructure.observability.logging import get_logger, log_job_run, setup_logging
from liqa.jobs.email_reminder_job import run_meeting_email_reminders

logger = get_logger(__name__)

DEFAULT_JOB = "meeting_email_reminders"

JOB_REGISTRY: dict[str, Callable[[], Awaitable[None]]] = {
    DEFAULT_JOB: run_meeting_email_reminders,
}


def _normalize(name: str) -> str:
    return name.strip().lower()


def _resolve_job_name(argv: list[str] | None = None) -> str:
    """First CLI argument, then WORKER_JOB, then the email reminder sweep."""
    args = sys.argv[1:] if argv is None else argv
    if args:
        return _normalize(args[0])
    return _normalize(os.getenv("WORKER_JOB", DEFAULT_JOB))


async def run_worker(job_name: str | None = None) -> None:
    name = _normalize(job_name or _resolve_job_name())
    job = JOB_REGISTRY.get(name)
    if job is None:
        known = ", ".join(sorted(JOB_REGISTRY))
        raise ValueError(f"Unknown worker job '{name}'. Available jobs: {known}")

    logger.info("Worker job starting", job=name)
    started = time.perf_counter()
    await job()
    log_job_run(name, (time.perf_counter() - started) * 1000)


def main() -> int:
    setup_logging(settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    try:
        asyncio.run(run_worker(job_name))
    except ValueError as e:
        logger.error("Worker job rejected", job=job_name, error=str(e))
        return 2
    except Exception:
        logger.exception("Worker job failed", job=job_name)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
