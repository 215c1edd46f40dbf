from pydantic import BaseModel, ConfigDict, Field

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class UserPreferences(BaseModel):
    """Interest and scheduling preferences stored as JSONB on the user row."""

    model_config = ConfigDict(extra="ignore")

    interests: list[str] = Field(default_factory=list)
    preferred_days: list[str] = Field(default_factory=list)
    preferred_time_of_day: list[str] = Field(default_factory=list)


class User(BaseModel):
    """Platform user as read from storage (no credentials)."""

    model_config = ConfigDict(extra="ignore")

    id: int
    username: str | None = None
    name: str
    email: str | None = None
    is_admin: bool = False
    preferences: UserPreferences | None = None

    def interest_set(self) -> set[str]:
        if not self.preferences:
            return set()
        return set(self.preferences.interests)

    def preferred_day_set(self) -> set[str]:
        if not self.preferences:
            return set()
        return {day.strip().lower() for day in self.preferences.preferred_days}
