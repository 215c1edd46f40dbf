from pydantic import BaseModel

from liqa.models.domain.meeting_domain import Meeting


class RecommendationScore(BaseModel):
    """Derived ranking entry, recomputed on every request."""

    meeting: Meeting
    score: int
    reasons: list[str]
