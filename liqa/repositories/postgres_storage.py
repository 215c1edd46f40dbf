"""
Postgres implementation of the storage collaborator.

Plain SQL over the pooled helpers in ``liqa.db.helpers``. Every psycopg
failure surfaces as ``DatabaseError`` (a ``StorageError``).

Tables: users, meetings, registrations (unique on user_id, meeting_id),
annotations, activity_logs.
"""

from datetime import datetime
from typing import Any

from psycopg.types.json import Jsonb

from liqa.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.domain.activity_domain import (
    ActivityLogEntry,
    ActivityLogFilters,
    NewActivityLogEntry,
)
from liqa.models.domain.meeting_domain import Annotation, Meeting, Registration
from liqa.models.domain.user_domain import User, UserPreferences

logger = get_logger(__name__)

USER_COLUMNS = "id, username, name, email, is_admin, preferences"
MEETING_COLUMNS = (
    "id, title, description, date, video_url, is_upcoming, categories, topics, target_audience"
)
REGISTRATION_COLUMNS = "id, user_id, meeting_id, registration_date, attended, feedback"
ANNOTATION_COLUMNS = "id, meeting_id, user_id, timestamp, text, created_at"
ACTIVITY_COLUMNS = (
    "id, user_id, action, entity_type, entity_id, metadata, ip_address, user_agent, timestamp"
)

# Columns a meeting create/update may touch
MEETING_WRITABLE = (
    "title",
    "description",
    "date",
    "video_url",
    "is_upcoming",
    "categories",
    "topics",
    "target_audience",
)


class PostgresStorage:
    """Storage collaborator backed by the shared connection pool."""

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @with_db_retry(max_retries=2)
    async def get_user(self, user_id: int) -> User | None:
        row = await fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id = %s", (user_id,))
        return User.model_validate(row) if row else None

    @with_db_retry(max_retries=2)
    async def get_all_users(self) -> list[User]:
        rows = await fetch_all(f"SELECT {USER_COLUMNS} FROM users ORDER BY id")
        return [User.model_validate(row) for row in rows]

    async def update_user_preferences(
        self, user_id: int, preferences: UserPreferences
    ) -> User | None:
        row = await fetch_one(
            f"UPDATE users SET preferences = %s WHERE id = %s RETURNING {USER_COLUMNS}",
            (Jsonb(preferences.model_dump()), user_id),
        )
        return User.model_validate(row) if row else None

    async def update_user_role(self, user_id: int, is_admin: bool) -> User | None:
        row = await fetch_one(
            f"UPDATE users SET is_admin = %s WHERE id = %s RETURNING {USER_COLUMNS}",
            (is_admin, user_id),
        )
        return User.model_validate(row) if row else None

    async def delete_user(self, user_id: int) -> bool:
        deleted = await execute_query("DELETE FROM users WHERE id = %s", (user_id,))
        return deleted > 0

    # ------------------------------------------------------------------
    # Meetings
    # ------------------------------------------------------------------

    @with_db_retry(max_retries=2)
    async def get_meetings(self) -> list[Meeting]:
        rows = await fetch_all(f"SELECT {MEETING_COLUMNS} FROM meetings ORDER BY id")
        return [Meeting.model_validate(row) for row in rows]

    @with_db_retry(max_retries=2)
    async def get_meeting(self, meeting_id: int) -> Meeting | None:
        row = await fetch_one(
            f"SELECT {MEETING_COLUMNS} FROM meetings WHERE id = %s", (meeting_id,)
        )
        return Meeting.model_validate(row) if row else None

    @with_db_retry(max_retries=2)
    async def get_meetings_between(self, start: datetime, end: datetime) -> list[Meeting]:
        """Upcoming meetings with start < date < end (both bounds exclusive)."""
        rows = await fetch_all(
            f"""
            SELECT {MEETING_COLUMNS}
            FROM meetings
            WHERE is_upcoming = true
              AND date > %s
              AND date < %s
            ORDER BY date
            """,
            (start, end),
        )
        return [Meeting.model_validate(row) for row in rows]

    async def create_meeting(self, values: dict[str, Any]) -> Meeting:
        columns = [column for column in MEETING_WRITABLE if column in values]
        placeholders = ", ".join(["%s"] * len(columns))
        row = await fetch_one(
            f"""
            INSERT INTO meetings ({", ".join(columns)})
            VALUES ({placeholders})
            RETURNING {MEETING_COLUMNS}
            """,
            tuple(values[column] for column in columns),
        )
        meeting = Meeting.model_validate(row)
        logger.info("Meeting created", meeting_id=meeting.id, is_upcoming=meeting.is_upcoming)
        return meeting

    async def update_meeting(self, meeting_id: int, values: dict[str, Any]) -> Meeting | None:
        columns = [column for column in MEETING_WRITABLE if column in values]
        if not columns:
            return await self.get_meeting(meeting_id)

        assignments = ", ".join(f"{column} = %s" for column in columns)
        row = await fetch_one(
            f"UPDATE meetings SET {assignments} WHERE id = %s RETURNING {MEETING_COLUMNS}",
            (*[values[column] for column in columns], meeting_id),
        )
        return Meeting.model_validate(row) if row else None

    async def delete_meeting(self, meeting_id: int) -> bool:
        deleted = await execute_query("DELETE FROM meetings WHERE id = %s", (meeting_id,))
        return deleted > 0

    # ------------------------------------------------------------------
    # Registrations
    # ------------------------------------------------------------------

    async def get_registration(self, user_id: int, meeting_id: int) -> Registration | None:
        row = await fetch_one(
            f"""
            SELECT {REGISTRATION_COLUMNS}
            FROM registrations
            WHERE user_id = %s AND meeting_id = %s
            """,
            (user_id, meeting_id),
        )
        return Registration.model_validate(row) if row else None

    @with_db_retry(max_retries=2)
    async def get_registrations_by_user(self, user_id: int) -> list[Registration]:
        rows = await fetch_all(
            f"SELECT {REGISTRATION_COLUMNS} FROM registrations WHERE user_id = %s ORDER BY id",
            (user_id,),
        )
        return [Registration.model_validate(row) for row in rows]

    @with_db_retry(max_retries=2)
    async def get_registrations_by_meeting(self, meeting_id: int) -> list[Registration]:
        rows = await fetch_all(
            f"SELECT {REGISTRATION_COLUMNS} FROM registrations WHERE meeting_id = %s ORDER BY id",
            (meeting_id,),
        )
        return [Registration.model_validate(row) for row in rows]

    async def get_all_registrations(self) -> list[Registration]:
        rows = await fetch_all(f"SELECT {REGISTRATION_COLUMNS} FROM registrations ORDER BY id")
        return [Registration.model_validate(row) for row in rows]

    async def create_registration(self, user_id: int, meeting_id: int) -> Registration:
        # Unique (user_id, meeting_id) rejects a concurrent duplicate as DatabaseError
        row = await fetch_one(
            f"""
            INSERT INTO registrations (user_id, meeting_id, registration_date)
            VALUES (%s, %s, NOW())
            RETURNING {REGISTRATION_COLUMNS}
            """,
            (user_id, meeting_id),
        )
        return Registration.model_validate(row)

    # ------------------------------------------------------------------
    # Annotations
    # ------------------------------------------------------------------

    async def get_annotations(self, meeting_id: int) -> list[Annotation]:
        rows = await fetch_all(
            f"""
            SELECT {ANNOTATION_COLUMNS}
            FROM annotations
            WHERE meeting_id = %s
            ORDER BY timestamp
            """,
            (meeting_id,),
        )
        return [Annotation.model_validate(row) for row in rows]

    async def create_annotation(
        self, meeting_id: int, user_id: int, timestamp: int, text: str
    ) -> Annotation:
        row = await fetch_one(
            f"""
            INSERT INTO annotations (meeting_id, user_id, timestamp, text, created_at)
            VALUES (%s, %s, %s, %s, NOW())
            RETURNING {ANNOTATION_COLUMNS}
            """,
            (meeting_id, user_id, timestamp, text),
        )
        return Annotation.model_validate(row)

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    async def insert_log_entry(self, entry: NewActivityLogEntry) -> ActivityLogEntry:
        metadata = entry.metadata.model_dump(mode="json", exclude_none=True) if entry.metadata else None
        row = await fetch_one(
            f"""
            INSERT INTO activity_logs (
                user_id, action, entity_type, entity_id,
                metadata, ip_address, user_agent, timestamp
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {ACTIVITY_COLUMNS}
            """,
            (
                entry.user_id,
                entry.action,
                entry.entity_type,
                entry.entity_id,
                Jsonb(metadata) if metadata is not None else None,
                entry.ip_address,
                entry.user_agent,
                entry.timestamp,
            ),
        )
        return ActivityLogEntry.model_validate(row)

    async def query_log_entries(self, filters: ActivityLogFilters) -> list[ActivityLogEntry]:
        conditions: list[str] = []
        params: list[Any] = []

        if filters.user_id is not None:
            conditions.append("user_id = %s")
            params.append(filters.user_id)
        if filters.entity_type is not None:
            conditions.append("entity_type = %s")
            params.append(filters.entity_type)
        if filters.action is not None:
            conditions.append("action = %s")
            params.append(filters.action)
        if filters.start_date is not None:
            conditions.append("timestamp >= %s")
            params.append(filters.start_date)
        if filters.end_date is not None:
            conditions.append("timestamp <= %s")
            params.append(filters.end_date)

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = await fetch_all(
            f"SELECT {ACTIVITY_COLUMNS} FROM activity_logs {where} ORDER BY timestamp, id",
            tuple(params),
        )
        return [ActivityLogEntry.model_validate(row) for row in rows]


# Shared instance used by the application and worker
postgres_storage = PostgresStorage()
