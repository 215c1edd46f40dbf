"""
HTML email templates.

Each builder returns ``(subject, html)``. Every interpolated value is escaped.
"""

from datetime import UTC, datetime
from html import escape

from liqa.models.domain.meeting_domain import Meeting

_LAYOUT = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #f8f9fa; padding: 20px; text-align: center;">
    <h1 style="color: #1a202c; margin: 0;">{heading}</h1>
  </div>
  <div style="padding: 20px;">
    <p>Dear {user_name},</p>
    {body}
    <p style="margin-top: 20px;">Best regards,<br>Liqa Platform Team</p>
  </div>
  <div style="background-color: #f8f9fa; padding: 20px; text-align: center; color: #6b7280; font-size: 0.875rem;">
    <p>This is an automated message, please do not reply to this email.</p>
  </div>
</div>
"""

_MEETING_CARD = """
<div style="background-color: #f8f9fa; padding: 15px; margin: 20px 0; border-radius: 5px;">
  <h2 style="color: #2563eb; margin-top: 0;">{title}</h2>
  <p style="color: #4b5563; margin: 10px 0;">{description}</p>
  <p style="color: #1a202c; font-weight: bold; margin: 10px 0;">Date and Time: {when}</p>
  {extra}
</div>
"""


def format_meeting_date(meeting: Meeting) -> str:
    return meeting.starts_at.strftime("%Y-%m-%d %H:%M UTC")


def _meeting_card(meeting: Meeting, extra: str = "") -> str:
    return _MEETING_CARD.format(
        title=escape(meeting.title),
        description=escape(meeting.description),
        when=format_meeting_date(meeting),
        extra=extra,
    )


def _video_link(meeting: Meeting, lead: str) -> str:
    if not meeting.video_url:
        return ""
    url = escape(meeting.video_url)
    return f'<p>{lead} <a href="{url}" style="color: #2563eb; text-decoration: none;">{url}</a></p>'


def _render(heading: str, user_name: str, body: str) -> str:
    return _LAYOUT.format(heading=heading, user_name=escape(user_name), body=body)


def meeting_confirmation(user_name: str, meeting: Meeting) -> tuple[str, str]:
    body = (
        "<p>Your registration for the following meeting has been confirmed:</p>"
        + _meeting_card(meeting)
        + _video_link(meeting, "You can join the meeting using this link:")
        + "<p>Please add this event to your calendar.</p>"
    )
    return (
        f"Registration Confirmed: {meeting.title}",
        _render("Meeting Registration Confirmed", user_name, body),
    )


def meeting_reminder(user_name: str, meeting: Meeting) -> tuple[str, str]:
    body = (
        "<p>This is a reminder about your upcoming meeting:</p>"
        + _meeting_card(meeting)
        + _video_link(meeting, "You can join the meeting using this link:")
        + "<p>We look forward to seeing you. If you can no longer attend, please let us know.</p>"
    )
    return (
        f"Reminder: {meeting.title} is Coming Up",
        _render("Meeting Reminder", user_name, body),
    )


def new_meeting_announcement(
    user_name: str, meeting: Meeting, now: datetime | None = None
) -> tuple[str, str]:
    now = now or datetime.now(UTC)
    past = "Past " if meeting.starts_at < now else ""
    details = (
        f'<p style="margin: 5px 0;"><strong>Categories:</strong> '
        f"{escape(', '.join(meeting.categories))}</p>"
        f'<p style="margin: 5px 0;"><strong>Topics:</strong> '
        f"{escape(', '.join(meeting.topics))}</p>"
    )
    body = (
        f"<p>A new {past.lower()}meeting has been added to the platform:</p>"
        + _meeting_card(meeting, extra=details)
        + _video_link(meeting, "You can access the meeting recording here:")
    )
    return (
        f"New {past}Meeting Added: {meeting.title}",
        _render(f"New {past}Meeting Added", user_name, body),
    )
