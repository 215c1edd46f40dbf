"""
Audit Helper Utilities - one-line activity logging for endpoints.

Usage:
    from liqa.utils.audit_helpers import record_activity

    await record_activity(
        request,
        activity_logger,
        action="MEETING_DELETE",
        entity_type="MEETING",
        user_id=user_id,
        entity_id=meeting.id,
        previous_state=meeting.model_dump(mode="json"),
    )

Request context (IP, user agent) is read from request.state, where
RequestContextMiddleware puts it.
"""

from typing import Any

from fastapi import Request

from liqa.infrastructure.audit.activity_logger import ActivityLogger
from liqa.models.domain.activity_domain import ActivityAction, EntityType


async def record_activity(
    request: Request,
    activity_logger: ActivityLogger,
    action: ActivityAction,
    entity_type: EntityType,
    user_id: int | None = None,
    entity_id: int | None = None,
    previous_state: dict[str, Any] | None = None,
    new_state: dict[str, Any] | None = None,
    details: dict[str, Any] | None = None,
) -> bool:
    """
    Record an activity entry with the request's client context.

    Returns:
        True if persisted (never raises)
    """
    return await activity_logger.record(
        action=action,
        entity_type=entity_type,
        user_id=user_id,
        entity_id=entity_id,
        previous_state=previous_state,
        new_state=new_state,
        details=details,
        ip_address=getattr(request.state, "ip_address", None),
        user_agent=getattr(request.state, "user_agent", None),
    )
