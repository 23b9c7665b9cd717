"""
Healthcare Portal - Outbound Email

Mailer is the email collaborator used by the authentication service.
Delivery goes through fastapi-mail over SMTP.

When MAIL_SERVER is not configured (local development), LoggingMailer is
used instead: messages are logged, never sent. Reset links are not logged
in production.

Callers treat sending as fire-and-forget. Send failures raise
MailDeliveryError, a DependencyError; the authentication service logs
them and never lets them change a response.
"""

import logging
from typing import Optional

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType

from healthportal.auth.models import Role
from healthportal.config import Settings, settings as default_settings
from healthportal.exceptions import DependencyError
from healthportal.services import email_templates

logger = logging.getLogger(__name__)


class MailDeliveryError(DependencyError):
    """Raised when an email could not be handed to the mail server."""


class Mailer:
    """
    Base mailer: builds account emails and hands them to deliver().

    Subclasses implement deliver().
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings

    async def deliver(self, to: str, subject: str, html: str) -> None:
        raise NotImplementedError

    async def send_password_reset(self, to: str, reset_link: str, role: Role) -> None:
        html = email_templates.password_reset_email(
            reset_link, role, self.settings.RESET_TOKEN_EXPIRE_MINUTES
        )
        await self.deliver(to, "Password Reset Request - HealthCare Portal", html)

    async def send_welcome(self, to: str, organization_name: str, role: Role) -> None:
        login_link = f"{self.settings.APP_URL}/{role.value}/login"
        html = email_templates.welcome_email(organization_name, role, login_link)
        await self.deliver(to, "Welcome to HealthCare Portal", html)

    async def send_password_changed(self, to: str, organization_name: str, role: Role) -> None:
        html = email_templates.password_changed_email(organization_name, role)
        await self.deliver(to, "Your HealthCare Portal password was changed", html)


class FastMailMailer(Mailer):
    """SMTP delivery through fastapi-mail."""

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)
        conf = self.settings
        self._config = ConnectionConfig(
            MAIL_USERNAME=conf.MAIL_USERNAME,
            MAIL_PASSWORD=conf.MAIL_PASSWORD,
            MAIL_FROM=conf.MAIL_FROM,
            MAIL_FROM_NAME=conf.MAIL_FROM_NAME,
            MAIL_PORT=conf.MAIL_PORT,
            MAIL_SERVER=conf.MAIL_SERVER,
            MAIL_STARTTLS=conf.MAIL_STARTTLS,
            MAIL_SSL_TLS=conf.MAIL_SSL_TLS,
            USE_CREDENTIALS=bool(conf.MAIL_USERNAME),
            VALIDATE_CERTS=True,
            SUPPRESS_SEND=int(conf.MAIL_SUPPRESS_SEND),
        )
        self._client = FastMail(self._config)

    async def deliver(self, to: str, subject: str, html: str) -> None:
        message = MessageSchema(
            subject=subject,
            recipients=[to],
            body=html,
            subtype=MessageType.html,
        )
        try:
            await self._client.send_message(message)
        except Exception as e:
            raise MailDeliveryError(f"SMTP delivery to {self.settings.MAIL_SERVER} failed: {e}") from e
        logger.info("Email '%s' handed to SMTP server", subject)


class LoggingMailer(Mailer):
    """Development mailer: records the message in the log instead of sending."""

    async def deliver(self, to: str, subject: str, html: str) -> None:
        logger.info("Email not sent (MAIL_SERVER unset): to=%s subject=%r", to, subject)


def build_mailer(settings: Optional[Settings] = None) -> Mailer:
    """Pick the mailer implementation for the current configuration."""
    conf = settings or default_settings
    if conf.MAIL_SERVER:
        return FastMailMailer(conf)
    return LoggingMailer(conf)
