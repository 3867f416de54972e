"""Email sending service.

Supports two backends:
- SMTP via aiosmtplib (production)
- Log-only (development / testing): logs the email instead of sending

Set EMAIL_BACKEND=smtp and configure SMTP_* settings for production.
Default is EMAIL_BACKEND=log which just logs the letter, links included.
"""

import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

from vault.config import Settings
from vault.utils.validation import is_email

logger = logging.getLogger(__name__)


class InvalidLetter(ValueError):
    pass


@dataclass(frozen=True)
class Letter:
    to: str
    subject: str
    body: str

    def validate(self) -> None:
        if not self.to:
            raise InvalidLetter("to cannot be empty")
        if not is_email(self.to):
            raise InvalidLetter(f"invalid recipient address: {self.to}")
        if not self.subject:
            raise InvalidLetter("subject cannot be empty")
        if not self.body:
            raise InvalidLetter("body cannot be empty")


class EmailSender(Protocol):
    async def send(self, letter: Letter) -> None: ...


class LogEmailSender:
    """Development sender: logs email content instead of sending."""

    async def send(self, letter: Letter) -> None:
        logger.info("EMAIL to=%s subject=%s\n%s", letter.to, letter.subject, letter.body)


class SmtpEmailSender:
    """Production sender: sends via SMTP."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def send(self, letter: Letter) -> None:
        msg = EmailMessage()
        msg["From"] = self.settings.smtp_from_address
        msg["To"] = letter.to
        msg["Subject"] = letter.subject
        msg.set_content(letter.body)

        await aiosmtplib.send(
            msg,
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            username=self.settings.smtp_username or None,
            password=self.settings.smtp_password or None,
            use_tls=self.settings.smtp_use_tls,
        )


def get_email_sender(settings: Settings) -> EmailSender:
    if settings.email_backend == "smtp":
        return SmtpEmailSender(settings)
    return LogEmailSender()
