"""
Email service - SendGrid transport for platform notifications.

All public methods return booleans/counts and never raise: email is always a
side effect of some primary action (registration, meeting creation, reminder
sweep) and must not fail it. The SendGrid client is blocking, so sends run
in a worker thread.
"""

import asyncio
from collections.abc import Iterable

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

from liqa.config import settings
from liqa.errors import EmailError
from liqa.infrastructure.observability.best_effort import best_effort
from liqa.infrastructure.observability.logging import get_logger
from liqa.models.domain.meeting_domain import Meeting
from liqa.models.domain.user_domain import User
from liqa.services import email_templates

logger = get_logger(__name__)

ACCEPTED_STATUS_CODES = {200, 202}


class EmailService:
    """Sends templated HTML emails through SendGrid."""

    def __init__(
        self,
        api_key: str | None = None,
        from_address: str | None = None,
        from_name: str | None = None,
        client: SendGridAPIClient | None = None,
    ):
        self.api_key = api_key if api_key is not None else settings.SENDGRID_API_KEY
        self.from_address = from_address or settings.EMAIL_FROM_ADDRESS
        self.from_name = from_name or settings.EMAIL_FROM_NAME
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client is not None or bool(self.api_key)

    def _get_client(self) -> SendGridAPIClient:
        if self._client is None:
            self._client = SendGridAPIClient(api_key=self.api_key)
        return self._client

    def _build_mail(self, to: str, subject: str, html: str) -> Mail:
        return Mail(
            from_email=Email(self.from_address, self.from_name),
            to_emails=To(to),
            subject=subject,
            html_content=Content("text/html", html),
        )

    def _send_sync(self, to: str, subject: str, html: str) -> int:
        response = self._get_client().send(self._build_mail(to, subject, html))
        if response.status_code not in ACCEPTED_STATUS_CODES:
            raise EmailError(
                f"SendGrid rejected message with status {response.status_code}", recipient=to
            )
        return response.status_code

    async def send_templated_email(self, to: str, subject: str, html: str) -> bool:
        """
        Send one HTML email.

        Returns:
            True if SendGrid accepted the message, False otherwise (never raises)
        """
        if not self.enabled:
            logger.warning("Email transport not configured, skipping send", subject=subject)
            return False

        attempt = await best_effort(
            "email_send",
            lambda: asyncio.to_thread(self._send_sync, to, subject, html),
            recipient=to,
            subject=subject,
        )
        if attempt.ok:
            logger.info("Email sent", recipient=to, subject=subject, status_code=attempt.value)
        return attempt.ok

    async def send_meeting_confirmation(self, user: User, meeting: Meeting) -> bool:
        if not user.email:
            return False
        subject, html = email_templates.meeting_confirmation(user.name, meeting)
        return await self.send_templated_email(user.email, subject, html)

    async def send_meeting_reminder(self, user: User, meeting: Meeting) -> bool:
        if not user.email:
            return False
        subject, html = email_templates.meeting_reminder(user.name, meeting)
        return await self.send_templated_email(user.email, subject, html)

    async def send_new_meeting_notification(self, users: Iterable[User], meeting: Meeting) -> int:
        """
        Announce a new meeting to every user with an email address.

        Returns:
            Number of emails accepted by the transport
        """
        recipients = [user for user in users if user.email]
        results = await asyncio.gather(
            *(self._announce(user, meeting) for user in recipients)
        )
        sent = sum(1 for ok in results if ok)

        logger.info(
            "New meeting announcement sent",
            meeting_id=meeting.id,
            recipients=len(recipients),
            sent=sent,
            failed=len(recipients) - sent,
        )
        return sent

    async def _announce(self, user: User, meeting: Meeting) -> bool:
        subject, html = email_templates.new_meeting_announcement(user.name, meeting)
        return await self.send_templated_email(user.email, subject, html)


# Shared instance used by the application and worker
email_service = EmailService()
