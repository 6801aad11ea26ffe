"""Mail dispatch: render ``${URL}`` into mail templates and hand off to the sender."""

import logging

from app.config import URL_PLACEHOLDER
from app.errors import DeliveryError
from app.schemas.mail import DeliveryInfo, MailOptions
from app.services.email import EmailSender

logger = logging.getLogger(__name__)


def render_mail_options(mail_options: MailOptions, url: str | None) -> MailOptions:
    if url is None:
        return mail_options
    return mail_options.model_copy(
        update={
            "subject": mail_options.subject.replace(URL_PLACEHOLDER, url),
            "html": mail_options.html.replace(URL_PLACEHOLDER, url),
            "text": mail_options.text.replace(URL_PLACEHOLDER, url),
        }
    )


class MailDispatcher:
    def __init__(self, sender: EmailSender) -> None:
        self.sender = sender

    async def send(
        self, to: str, mail_options: MailOptions, url: str | None = None
    ) -> DeliveryInfo:
        """Send one message. Sender failures are raised as DeliveryError, never retried."""
        rendered = render_mail_options(mail_options, url)
        try:
            info = await self.sender.send(
                to=to,
                subject=rendered.subject,
                html=rendered.html,
                text=rendered.text,
                from_address=rendered.from_address,
            )
        except Exception as exc:
            raise DeliveryError(f"Failed to send {rendered.subject!r} to {to}") from exc
        logger.info("Mail %r sent to %s", rendered.subject, to)
        return info
