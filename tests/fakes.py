"""
In-memory fakes for the storage, push and email collaborators.
"""

import asyncio
from datetime import UTC, datetime, timedelta
from typing import Any

from liqa.errors import StorageError
from liqa.models.domain.activity_domain import (
    ActivityLogEntry,
    ActivityLogFilters,
    NewActivityLogEntry,
)
from liqa.models.domain.meeting_domain import Annotation, Meeting, Registration
from liqa.models.domain.user_domain import User, UserPreferences

NOW = datetime(2024, 1, 15, 12, 0, tzinfo=UTC)  # Monday


class FakeStorage:
    """In-memory storage collaborator. Methods named in ``failing`` raise StorageError."""

    def __init__(self):
        self.users: dict[int, User] = {}
        self.meetings: dict[int, Meeting] = {}
        self.registrations: list[Registration] = []
        self.annotations: list[Annotation] = []
        self.log_entries: list[ActivityLogEntry] = []
        self.failing: set[str] = set()
        self._ids = {"meeting": 100, "registration": 1000, "annotation": 0, "log": 0}

    def _check(self, operation: str) -> None:
        if operation in self.failing:
            raise StorageError(f"{operation} unavailable", operation=operation)

    def _next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    # Seeding helpers
    def add_user(self, user_id: int, **fields: Any) -> User:
        fields.setdefault("name", f"User {user_id}")
        fields.setdefault("email", f"user{user_id}@example.com")
        user = User(id=user_id, **fields)
        self.users[user_id] = user
        return user

    def add_meeting(self, meeting_id: int, **fields: Any) -> Meeting:
        fields.setdefault("title", f"Meeting {meeting_id}")
        fields.setdefault("date", NOW + timedelta(days=7))
        meeting = Meeting(id=meeting_id, **fields)
        self.meetings[meeting_id] = meeting
        return meeting

    def add_registration(self, user_id: int, meeting_id: int) -> Registration:
        registration = Registration(
            id=self._next_id("registration"),
            user_id=user_id,
            meeting_id=meeting_id,
            registration_date=NOW,
        )
        self.registrations.append(registration)
        return registration

    # Users
    async def get_user(self, user_id: int) -> User | None:
        self._check("get_user")
        return self.users.get(user_id)

    async def get_all_users(self) -> list[User]:
        self._check("get_all_users")
        return list(self.users.values())

    async def update_user_preferences(self, user_id: int, preferences: UserPreferences):
        self._check("update_user_preferences")
        if user_id not in self.users:
            return None
        self.users[user_id] = self.users[user_id].model_copy(update={"preferences": preferences})
        return self.users[user_id]

    async def update_user_role(self, user_id: int, is_admin: bool):
        self._check("update_user_role")
        if user_id not in self.users:
            return None
        self.users[user_id] = self.users[user_id].model_copy(update={"is_admin": is_admin})
        return self.users[user_id]

    async def delete_user(self, user_id: int) -> bool:
        self._check("delete_user")
        return self.users.pop(user_id, None) is not None

    # Meetings
    async def get_meetings(self) -> list[Meeting]:
        self._check("get_meetings")
        return list(self.meetings.values())

    async def get_meeting(self, meeting_id: int) -> Meeting | None:
        self._check("get_meeting")
        return self.meetings.get(meeting_id)

    async def get_meetings_between(self, start: datetime, end: datetime) -> list[Meeting]:
        self._check("get_meetings_between")
        return [
            m for m in self.meetings.values() if m.is_upcoming and start < m.starts_at < end
        ]

    async def create_meeting(self, values: dict[str, Any]) -> Meeting:
        self._check("create_meeting")
        meeting = Meeting(id=self._next_id("meeting"), **values)
        self.meetings[meeting.id] = meeting
        return meeting

    async def update_meeting(self, meeting_id: int, values: dict[str, Any]):
        self._check("update_meeting")
        if meeting_id not in self.meetings:
            return None
        self.meetings[meeting_id] = self.meetings[meeting_id].model_copy(update=values)
        return self.meetings[meeting_id]

    async def delete_meeting(self, meeting_id: int) -> bool:
        self._check("delete_meeting")
        return self.meetings.pop(meeting_id, None) is not None

    # Registrations
    async def get_registration(self, user_id: int, meeting_id: int):
        self._check("get_registration")
        for registration in self.registrations:
            if registration.user_id == user_id and registration.meeting_id == meeting_id:
                return registration
        return None

    async def get_registrations_by_user(self, user_id: int) -> list[Registration]:
        self._check("get_registrations_by_user")
        return [r for r in self.registrations if r.user_id == user_id]

    async def get_registrations_by_meeting(self, meeting_id: int) -> list[Registration]:
        self._check("get_registrations_by_meeting")
        return [r for r in self.registrations if r.meeting_id == meeting_id]

    async def get_all_registrations(self) -> list[Registration]:
        self._check("get_all_registrations")
        return list(self.registrations)

    async def create_registration(self, user_id: int, meeting_id: int) -> Registration:
        self._check("create_registration")
        return self.add_registration(user_id, meeting_id)

    # Annotations
    async def get_annotations(self, meeting_id: int) -> list[Annotation]:
        self._check("get_annotations")
        return sorted(
            (a for a in self.annotations if a.meeting_id == meeting_id),
            key=lambda a: a.timestamp,
        )

    async def create_annotation(self, meeting_id: int, user_id: int, timestamp: int, text: str):
        self._check("create_annotation")
        annotation = Annotation(
            id=self._next_id("annotation"),
            meeting_id=meeting_id,
            user_id=user_id,
            timestamp=timestamp,
            text=text,
            created_at=NOW,
        )
        self.annotations.append(annotation)
        return annotation

    # Activity log
    async def insert_log_entry(self, entry: NewActivityLogEntry) -> ActivityLogEntry:
        self._check("insert_log_entry")
        stored = ActivityLogEntry(id=self._next_id("log"), **entry.model_dump())
        self.log_entries.append(stored)
        return stored

    async def query_log_entries(self, filters: ActivityLogFilters) -> list[ActivityLogEntry]:
        self._check("query_log_entries")
        return list(self.log_entries)


class FakeSubscriber:
    """Push subscriber recording every frame it receives."""

    def __init__(self, is_open: bool = True, error: Exception | None = None, delay: float = 0):
        self.is_open = is_open
        self.error = error
        self.delay = delay
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        self.sent.append(data)


class FakeEmailService:
    """Records sends instead of calling SendGrid."""

    def __init__(self, failing_recipients: set[str] | None = None):
        self.failing_recipients = failing_recipients or set()
        self.confirmations: list[tuple[str, int]] = []
        self.reminders: list[tuple[str, int]] = []
        self.announcements: list[tuple[list[str], int]] = []

    async def send_meeting_confirmation(self, user: User, meeting: Meeting) -> bool:
        if not user.email or user.email in self.failing_recipients:
            return False
        self.confirmations.append((user.email, meeting.id))
        return True

    async def send_meeting_reminder(self, user: User, meeting: Meeting) -> bool:
        if user.email in self.failing_recipients:
            raise RuntimeError("smtp down")
        self.reminders.append((user.email, meeting.id))
        return True

    async def send_new_meeting_notification(self, users, meeting: Meeting) -> int:
        recipients = [u.email for u in users if u.email]
        self.announcements.append((recipients, meeting.id))
        return len(recipients)
