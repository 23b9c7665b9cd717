"""
Healthcare Portal - Services Package

Adapters for external collaborators. The authentication service talks to
these interfaces; it never manages SMTP connections itself.
"""

from healthportal.services.mailer import (
    Mailer,
    MailDeliveryError,
    FastMailMailer,
    LoggingMailer,
    build_mailer,
)


__all__ = [
    "Mailer",
    "MailDeliveryError",
    "FastMailMailer",
    "LoggingMailer",
    "build_mailer",
]
