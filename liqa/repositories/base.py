"""
Storage collaborator contract.

Services and jobs depend on this protocol rather than on Postgres directly,
so they can be driven by in-memory fakes in tests. Reads return the entity
or None; writes either succeed or raise ``StorageError``.
"""

from datetime import datetime
from typing import Any, Protocol

from liqa.models.domain.activity_domain import (
    ActivityLogEntry,
    ActivityLogFilters,
    NewActivityLogEntry,
)
from liqa.models.domain.meeting_domain import Annotation, Meeting, Registration
from liqa.models.domain.user_domain import User, UserPreferences


class Storage(Protocol):
    # Users
    async def get_user(self, user_id: int) -> User | None: ...

    async def get_all_users(self) -> list[User]: ...

    async def update_user_preferences(
        self, user_id: int, preferences: UserPreferences
    ) -> User | None: ...

    async def update_user_role(self, user_id: int, is_admin: bool) -> User | None: ...

    async def delete_user(self, user_id: int) -> bool: ...

    # Meetings
    async def get_meetings(self) -> list[Meeting]: ...

    async def get_meeting(self, meeting_id: int) -> Meeting | None: ...

    async def get_meetings_between(self, start: datetime, end: datetime) -> list[Meeting]: ...

    async def create_meeting(self, values: dict[str, Any]) -> Meeting: ...

    async def update_meeting(self, meeting_id: int, values: dict[str, Any]) -> Meeting | None: ...

    async def delete_meeting(self, meeting_id: int) -> bool: ...

    # Registrations
    async def get_registration(self, user_id: int, meeting_id: int) -> Registration | None: ...

    async def get_registrations_by_user(self, user_id: int) -> list[Registration]: ...

    async def get_registrations_by_meeting(self, meeting_id: int) -> list[Registration]: ...

    async def get_all_registrations(self) -> list[Registration]: ...

    async def create_registration(self, user_id: int, meeting_id: int) -> Registration: ...

    # Annotations
    async def get_annotations(self, meeting_id: int) -> list[Annotation]: ...

    async def create_annotation(
        self, meeting_id: int, user_id: int, timestamp: int, text: str
    ) -> Annotation: ...

    # Activity log
    async def insert_log_entry(self, entry: NewActivityLogEntry) -> ActivityLogEntry: ...

    async def query_log_entries(self, filters: ActivityLogFilters) -> list[ActivityLogEntry]: ...
