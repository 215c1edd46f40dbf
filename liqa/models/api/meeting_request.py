from datetime import datetime
from typing import Annotated
from urllib.parse import urlparse

from pydantic import AfterValidator, BaseModel, Field, field_validator, model_validator


def _validate_url(value: str | None) -> str | None:
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Please enter a valid URL")
    return value


VideoUrl = Annotated[str | None, AfterValidator(_validate_url)]


class MeetingCreateRequest(BaseModel):
    """Body for POST /meetings."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    date: datetime
    video_url: VideoUrl = None
    is_upcoming: bool = True
    categories: list[str] = Field(default_factory=list)
    topics: list[str] = Field(default_factory=list)
    target_audience: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def past_meetings_need_recording(self):
        if not self.is_upcoming and not self.video_url:
            raise ValueError("Video URL is required for past meetings")
        return self


class MeetingUpdateRequest(BaseModel):
    """Body for PATCH /meetings/{id}; only provided fields are changed."""

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    date: datetime | None = None
    video_url: VideoUrl = None
    is_upcoming: bool | None = None
    categories: list[str] | None = None
    topics: list[str] | None = None
    target_audience: list[str] | None = None

    # Omit a field to leave it unchanged; only video_url may be cleared with null
    @field_validator(
        "title",
        "description",
        "date",
        "is_upcoming",
        "categories",
        "topics",
        "target_audience",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("Field cannot be null")
        return value

    @model_validator(mode="after")
    def past_meetings_need_recording(self):
        if self.is_upcoming is False and "video_url" in self.model_fields_set and not self.video_url:
            raise ValueError("Video URL is required for past meetings")
        return self


class AnnotationCreateRequest(BaseModel):
    """Body for POST /meetings/{id}/annotations."""

    timestamp: int = Field(..., ge=0)
    text: str = Field(..., min_length=1)
