"""
Structured logging for the Liqa backend.

Every module logs through ``get_logger(__name__)`` with keyword fields:

    logger.info("Meeting reminder broadcast", meeting_id=7, delivered=3)

Output is one JSON object per line on stdout. Fields bound with
``bind_request_context`` (request_id, ip_address) ride along on every entry
emitted while that request is being handled.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

SERVICE_NAME = "liqa"


def setup_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_logs: JSON lines when True, colourless key=value console output otherwise
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service_name,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Third-party chatter
    for noisy in ("uvicorn.access", "psycopg.pool", "python_http_client"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def _add_service_name(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def bind_request_context(**fields: Any) -> None:
    """Attach fields to every log entry for the current request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**fields)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_job_run(job: str, duration_ms: float, **fields: Any) -> None:
    """Log a background job iteration with consistent fields."""
    get_logger("jobs").info(
        "Job iteration completed", job=job, duration_ms=round(duration_ms, 2), **fields
    )


def log_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """Log a finished HTTP request; 4xx/5xx at warning level."""
    logger = get_logger("http")
    log = logger.warning if status_code >= 400 else logger.info
    log(
        "HTTP request completed",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=round(duration_ms, 2),
    )
