"""
Recommendation service - ranks upcoming meetings for a user.

Scores are derived from current state on every call; nothing is cached.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from liqa.config import settings
from liqa.errors import NotFoundError
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.domain.meeting_domain import Meeting, Registration
from liqa.models.domain.recommendation_domain import RecommendationScore
from liqa.models.domain.user_domain import WEEKDAYS, User
from liqa.repositories.base import Storage

logger = get_logger(__name__)

INTEREST_WEIGHT = 2
PREFERRED_DAY_BONUS = 1
SIMILAR_MEETING_WEIGHT = 1


@dataclass(slots=True)
class _Candidate:
    meeting: Meeting
    score: int = 0
    reasons: list[str] = field(default_factory=list)

    def add(self, delta: int, reason: str) -> None:
        if delta <= 0:
            return
        self.score += delta
        self.reasons.append(reason)


def weekday_name(moment: datetime, tz: ZoneInfo | None = None) -> str:
    """Lowercase English weekday name, independent of the process locale."""
    if tz is not None and moment.tzinfo is not None:
        moment = moment.astimezone(tz)
    return WEEKDAYS[moment.weekday()]


def rank_meetings(
    user: User,
    registrations: Sequence[Registration],
    upcoming: Sequence[Meeting],
    limit: int = 5,
    tz: ZoneInfo | None = None,
) -> list[RecommendationScore]:
    """
    Score and rank candidate meetings for one user.

    Args:
        user: Target user (preferences may be absent)
        registrations: All of the user's registrations
        upcoming: Upcoming meetings scheduled after the evaluation instant,
            in discovery order
        limit: Maximum number of entries returned
        tz: Timezone used to derive the meeting weekday

    Returns:
        Highest score first. Equal scores keep discovery order.
    """
    interests = user.interest_set()
    preferred_days = user.preferred_day_set()
    registered_ids = {registration.meeting_id for registration in registrations}
    upcoming_by_id = {meeting.id: meeting for meeting in upcoming}

    candidates: list[_Candidate] = []
    for meeting in upcoming:
        if meeting.id in registered_ids:
            continue

        candidate = _Candidate(meeting=meeting)
        categories = set(meeting.categories)

        interest_matches = sum(1 for category in meeting.categories if category in interests)
        candidate.add(
            interest_matches * INTEREST_WEIGHT,
            f"Matches {interest_matches} of your interests",
        )

        if preferred_days and weekday_name(meeting.starts_at, tz) in preferred_days:
            candidate.add(PREFERRED_DAY_BONUS, "Scheduled on your preferred day")

        similar = _count_similar_registrations(registrations, upcoming_by_id, categories)
        candidate.add(
            similar * SIMILAR_MEETING_WEIGHT,
            f"Similar to {similar} meetings you've attended",
        )

        candidates.append(candidate)

    # sorted() is stable, including with reverse=True
    ranked = sorted(candidates, key=lambda c: c.score, reverse=True)[:limit]
    return [
        RecommendationScore(meeting=c.meeting, score=c.score, reasons=c.reasons) for c in ranked
    ]


def _count_similar_registrations(
    registrations: Iterable[Registration],
    upcoming_by_id: dict[int, Meeting],
    categories: set[str],
) -> int:
    """Registrations whose meeting is upcoming and shares a category with ``categories``."""
    count = 0
    for registration in registrations:
        registered = upcoming_by_id.get(registration.meeting_id)
        if registered and categories.intersection(registered.categories):
            count += 1
    return count


class RecommendationService:
    """Loads fresh state from storage and delegates to ``rank_meetings``."""

    def __init__(self, storage: Storage, limit: int | None = None, timezone: str | None = None):
        self.storage = storage
        self.limit = limit if limit is not None else settings.RECOMMENDATION_LIMIT
        self.tz = ZoneInfo(timezone or settings.RECOMMENDATION_TIMEZONE)

    async def score_for(self, user_id: int, now: datetime | None = None) -> list[RecommendationScore]:
        """
        Ranked meeting suggestions for a user.

        Args:
            user_id: Target user id
            now: Evaluation instant (defaults to current UTC time)

        Returns:
            At most ``limit`` RecommendationScore entries, highest score first

        Raises:
            NotFoundError: user does not exist
            StorageError: any read failed
        """
        now = now or datetime.now(UTC)

        user = await self.storage.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        registrations = await self.storage.get_registrations_by_user(user_id)
        meetings = await self.storage.get_meetings()
        upcoming = [meeting for meeting in meetings if meeting.is_scheduled_after(now)]

        recommendations = rank_meetings(user, registrations, upcoming, self.limit, self.tz)

        logger.info(
            "Recommendations computed",
            user_id=user_id,
            candidates=len(upcoming),
            registrations=len(registrations),
            returned=len(recommendations),
            top_score=recommendations[0].score if recommendations else None,
        )
        return recommendations
