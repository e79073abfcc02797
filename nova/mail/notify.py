"""Owner notification channels."""

from abc import ABC, abstractmethod

from loguru import logger

from nova.mail.base import Mailbox
from nova.mail.types import OutgoingEmail


class Notifier(ABC):
    """Delivers a short text message to a person."""

    @abstractmethod
    async def deliver(self, target: str, message: str) -> None:
        """Send ``message`` to ``target``. Raises on delivery failure."""
        ...


class EmailGatewayNotifier(Notifier):
    """Sends notifications as email, typically to an email-to-SMS gateway address."""

    def __init__(self, mailbox: Mailbox, account_id: str | None = None, subject: str = "Nova Update"):
        self.mailbox = mailbox
        self.account_id = account_id
        self.subject = subject

    async def deliver(self, target: str, message: str) -> None:
        await self.mailbox.send_email(OutgoingEmail(
            to=target,
            subject=self.subject,
            body=message,
            account_id=self.account_id,
        ))


class LogNotifier(Notifier):
    """Writes notifications to the log when no outbound channel is configured."""

    async def deliver(self, target: str, message: str) -> None:
        logger.info(f"Notification for {target}: {message}")
