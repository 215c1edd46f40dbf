"""
Meeting, registration and annotation domain models.

Rows come straight from Postgres (dict_row) and are validated into these
models by the storage layer. Past meetings are expected to carry a video URL,
but that rule is enforced on the request models only: readers here must cope
with rows that break it.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class Meeting(BaseModel):
    """Scheduled (upcoming) or recorded (past) meeting."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str
    description: str = ""
    date: datetime
    video_url: str | None = None
    is_upcoming: bool = True
    categories: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    target_audience: list[str] = Field(default_factory=list)

    @property
    def starts_at(self) -> datetime:
        """Meeting date as an aware UTC datetime (naive values are taken as UTC)."""
        if self.date.tzinfo is None:
            return self.date.replace(tzinfo=UTC)
        return self.date.astimezone(UTC)

    def is_scheduled_after(self, now: datetime) -> bool:
        return self.is_upcoming and self.starts_at > now


class RegistrationFeedback(BaseModel):
    rating: int | None = None
    interests: list[str] = Field(default_factory=list)
    comments: str | None = None


class Registration(BaseModel):
    """Links a user to a meeting; at most one per (user, meeting) pair."""

    model_config = ConfigDict(extra="ignore")

    id: int
    user_id: int
    meeting_id: int
    registration_date: datetime
    attended: bool = False
    feedback: RegistrationFeedback | None = None


class Annotation(BaseModel):
    """Timestamped note a user takes on a meeting recording."""

    model_config = ConfigDict(extra="ignore")

    id: int
    meeting_id: int
    user_id: int
    timestamp: int  # seconds into the recording
    text: str
    created_at: datetime
