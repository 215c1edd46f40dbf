"""
Best-effort execution helper.

Auxiliary work (audit writes, notification emails, push delivery) must never
abort the primary flow it accompanies. Every such call goes through
``best_effort`` so the "attempt, report, continue" contract lives in one
place:

    attempt = await best_effort(
        "activity_log_write",
        lambda: storage.insert_log_entry(entry),
        action=entry.action,
    )
    if not attempt.ok:
        ...

Failures are reported through structured logs only.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from liqa.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class Attempt(Generic[T]):
    """Outcome of a best-effort call."""

    ok: bool
    value: T | None = None
    error: BaseException | None = None


async def best_effort(
    operation: str,
    action: Callable[[], Awaitable[T]],
    *,
    default: T | None = None,
    log_level: str = "error",
    **context: Any,
) -> Attempt[T]:
    """
    Await ``action()`` and capture any exception into the log sink.

    Args:
        operation: Short name of the operation, used as a log field
        action: Zero-argument callable returning an awaitable
        default: Value carried by the Attempt when the call fails
        log_level: Log method used to report failures
        **context: Extra fields attached to the failure log entry

    Returns:
        Attempt with ok=True and the awaited value, or ok=False, the default
        value and the captured exception. Cancellation is not captured.
    """
    try:
        value = await action()
    except Exception as e:
        log = getattr(logger, log_level, logger.error)
        log(
            "Best-effort operation failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
            **context,
        )
        return Attempt(ok=False, value=default, error=e)

    return Attempt(ok=True, value=value)
