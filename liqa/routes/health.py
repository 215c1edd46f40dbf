"""
Liveness and readiness probes.
"""

import time
from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from liqa.config import settings
from liqa.db.pool import db_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Process is up; touches no dependencies."""
    return {"status": "ok", "service": "liqa"}


async def _database_check() -> dict[str, Any]:
    started = time.perf_counter()
    try:
        report = await db_health_check()
    except Exception as e:
        report = {"healthy": False, "error": f"{type(e).__name__}: {e}"}

    check = {
        "ok": bool(report.get("healthy")),
        "latency_ms": round((time.perf_counter() - started) * 1000, 1),
    }
    if "pool_stats" in report:
        check["pool_stats"] = report["pool_stats"]
    if not check["ok"]:
        check["error"] = report.get("error", "Database unhealthy")
    return check


@router.get("/readyz")
async def readyz(request: Request):
    """Database pool plus the in-process reminder loop; 503 unless both are healthy."""
    checks: dict[str, Any] = {"database": await _database_check()}
    ready = checks["database"]["ok"]

    reminder_job = getattr(request.app.state, "reminder_job", None)
    if reminder_job is not None:
        checks["meeting_reminders"] = reminder_job.health_check()
        ready = ready and checks["meeting_reminders"]["healthy"]

    checks["configuration"] = {
        "ok": True,
        "environment": settings.environment,
        "email_enabled": settings.email_enabled(),
    }

    return JSONResponse(
        status_code=200 if ready else 503,
        content={"overall_ok": ready, "checks": checks, "timestamp": time.time()},
    )
