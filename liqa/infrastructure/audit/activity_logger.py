"""
ActivityLogger - append-only audit trail of user and system actions.

Request handlers call ``record`` after every mutating action (meeting
create/update/delete, registration, annotation, account and role changes).
Admins read the trail back through ``query``.

Usage:
    activity_logger = ActivityLogger(postgres_storage)
    await activity_logger.record(
        user_id=42,
        action="MEETING_CREATE",
        entity_type="MEETING",
        entity_id=meeting.id,
        new_state=meeting.model_dump(mode="json"),
        ip_address=request.state.ip_address,
        user_agent=request.state.user_agent,
    )

Design Principles:
- Write to both storage (queryable) and structured logs (searchable)
- Never fail the request if audit logging fails
- The server assigns the timestamp; it is the sort key for queries
"""

from datetime import UTC, datetime
from typing import Any

from liqa.infrastructure.observability.best_effort import best_effort
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.domain.activity_domain import (
    ActivityAction,
    ActivityLogEntry,
    ActivityLogFilters,
    ActivityMetadata,
    EntityType,
    NewActivityLogEntry,
)
from liqa.repositories.base import Storage

logger = get_logger(__name__)


class ActivityLogger:
    """
    Best-effort activity log writer and reader over a storage collaborator.

    ``record`` never raises and ``query`` returns an empty list on failure.
    """

    def __init__(self, storage: Storage):
        self.storage = storage

    async def record(
        self,
        action: ActivityAction,
        entity_type: EntityType,
        user_id: int | None = None,
        entity_id: int | None = None,
        previous_state: dict[str, Any] | None = None,
        new_state: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> bool:
        """
        Append an activity entry.

        Args:
            action: Action kind (e.g., "MEETING_CREATE")
            entity_type: Kind of entity acted on
            user_id: Acting user; None for system-initiated actions
            entity_id: Id of the entity acted on
            previous_state: Snapshot before the change
            new_state: Snapshot after the change
            details: Free-form context
            ip_address: Client IP address
            user_agent: Client user agent string

        Returns:
            True if persisted, False if anything failed (never raises)
        """
        logger.info(
            "Activity event",
            activity_action=action,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            ip_address=ip_address,
        )

        async def _write() -> ActivityLogEntry:
            metadata = ActivityMetadata(
                previous_state=previous_state, new_state=new_state, details=details
            )
            entry = NewActivityLogEntry(
                user_id=user_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                metadata=None if metadata.is_empty() else metadata,
                ip_address=ip_address,
                user_agent=user_agent,
                timestamp=datetime.now(UTC),
            )
            return await self.storage.insert_log_entry(entry)

        attempt = await best_effort(
            "activity_log_write",
            _write,
            activity_action=action,
            user_id=user_id,
            entity_type=entity_type,
            entity_id=entity_id,
            # Enough context to recreate the entry by hand
            fallback_data={
                "user_id": user_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "ip_address": ip_address,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
        return attempt.ok

    async def query(self, filters: ActivityLogFilters | None = None) -> list[ActivityLogEntry]:
        """
        Read activity entries, oldest first.

        Args:
            filters: Optional actor / entity type / action / inclusive date range

        Returns:
            Matching entries sorted by timestamp ascending; [] on failure
        """
        filters = filters or ActivityLogFilters()

        async def _read() -> list[ActivityLogEntry]:
            entries = await self.storage.query_log_entries(filters)
            entries = [entry for entry in entries if filters.matches(entry)]
            entries.sort(key=lambda entry: entry.timestamp)
            return entries

        attempt = await best_effort(
            "activity_log_query",
            _read,
            default=[],
            filters=filters.model_dump(mode="json", exclude_none=True),
        )
        return attempt.value if attempt.ok else []
