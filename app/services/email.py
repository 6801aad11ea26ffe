"""Email sending service.

Supports two backends:
- SMTP via aiosmtplib (production)
- Log-only (development / testing), which logs the email instead of sending

Set EMAIL_BACKEND=smtp and configure SMTP_* settings for production.
Default is EMAIL_BACKEND=log which just logs the verification link.
"""

import logging
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Protocol

import aiosmtplib

from app.config import settings
from app.schemas.mail import DeliveryInfo

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    async def send(
        self, to: str, subject: str, html: str, text: str, from_address: str
    ) -> DeliveryInfo: ...


class LogEmailSender:
    """Development sender: logs email content instead of sending."""

    async def send(
        self, to: str, subject: str, html: str, text: str, from_address: str
    ) -> DeliveryInfo:
        logger.info("EMAIL from=%s to=%s subject=%s\n%s", from_address, to, subject, text or html)
        return DeliveryInfo(to=to, message_id=make_msgid(), backend="log")


class SmtpEmailSender:
    """Production sender: sends a multipart text/html message via SMTP."""

    async def send(
        self, to: str, subject: str, html: str, text: str, from_address: str
    ) -> DeliveryInfo:
        msg = EmailMessage()
        msg["From"] = from_address or settings.smtp_from_address
        msg["To"] = to
        msg["Subject"] = subject
        msg["Message-ID"] = make_msgid()
        msg.set_content(text)
        if html:
            msg.add_alternative(html, subtype="html")

        await aiosmtplib.send(
            msg,
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_username or None,
            password=settings.smtp_password or None,
            use_tls=settings.smtp_use_tls,
        )
        return DeliveryInfo(to=to, message_id=msg["Message-ID"], backend="smtp")


def get_email_sender() -> EmailSender:
    if settings.email_backend == "smtp":
        return SmtpEmailSender()
    return LogEmailSender()
