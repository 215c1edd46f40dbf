from pydantic import BaseModel

from liqa.models.domain.meeting_domain import Meeting, Registration
from liqa.models.domain.user_domain import User


class RegistrationDetail(BaseModel):
    """Registration joined with its user and meeting for the admin dashboard."""

    registration: Registration
    user: User | None = None
    meeting: Meeting | None = None
