from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

ActivityAction = Literal[
    "USER_LOGIN",
    "USER_LOGOUT",
    "USER_CREATE",
    "USER_UPDATE",
    "USER_DELETE",
    "MEETING_CREATE",
    "MEETING_UPDATE",
    "MEETING_DELETE",
    "MEETING_REGISTER",
    "ADMIN_ACTION",
    "REGISTRATION_CREATE",
    "ANNOTATION_CREATE",
]

EntityType = Literal["USER", "MEETING", "REGISTRATION", "ANNOTATION"]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class ActivityMetadata(BaseModel):
    """Structured context stored with an activity log entry."""

    model_config = ConfigDict(extra="ignore")

    previous_state: dict[str, Any] | None = None
    new_state: dict[str, Any] | None = None
    details: dict[str, Any] | None = None

    def is_empty(self) -> bool:
        return not (self.previous_state or self.new_state or self.details)


class NewActivityLogEntry(BaseModel):
    """Entry as handed to storage; the id is assigned on insert."""

    user_id: int | None = None
    action: ActivityAction
    entity_type: EntityType
    entity_id: int | None = None
    metadata: ActivityMetadata | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    timestamp: UtcDatetime = Field(default_factory=lambda: datetime.now(UTC))


class ActivityLogEntry(NewActivityLogEntry):
    """Persisted, append-only audit entry."""

    model_config = ConfigDict(extra="ignore")

    id: int


class ActivityLogFilters(BaseModel):
    """Optional narrowing for activity log queries. Date bounds are inclusive."""

    user_id: int | None = None
    entity_type: EntityType | None = None
    action: ActivityAction | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None

    def matches(self, entry: ActivityLogEntry) -> bool:
        if self.user_id is not None and entry.user_id != self.user_id:
            return False
        if self.entity_type is not None and entry.entity_type != self.entity_type:
            return False
        if self.action is not None and entry.action != self.action:
            return False
        if self.start_date is not None and entry.timestamp < self.start_date:
            return False
        if self.end_date is not None and entry.timestamp > self.end_date:
            return False
        return True
