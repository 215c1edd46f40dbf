from pydantic import BaseModel, Field, field_validator

from liqa.models.domain.user_domain import WEEKDAYS


class PreferencesUpdateRequest(BaseModel):
    """Body for PUT /me/preferences."""

    interests: list[str] = Field(default_factory=list)
    preferred_days: list[str] = Field(default_factory=list)
    preferred_time_of_day: list[str] = Field(default_factory=list)

    @field_validator("preferred_days")
    @classmethod
    def normalize_days(cls, days: list[str]) -> list[str]:
        normalized = [day.strip().lower() for day in days]
        unknown = [day for day in normalized if day not in WEEKDAYS]
        if unknown:
            raise ValueError(f"Unknown weekday(s): {', '.join(unknown)}")
        return normalized


class RoleUpdateRequest(BaseModel):
    """Body for PATCH /admin/users/{id}/role."""

    is_admin: bool
