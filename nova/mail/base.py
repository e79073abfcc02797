"""Abstract mailbox interface consumed by the action layer."""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from nova.mail.types import EmailMessage, MailAccount, OutgoingEmail, UnsubscribeInfo

# (account_id, message or thread oldest-first)
EmailCallback = Callable[[str, EmailMessage | list[EmailMessage]], Awaitable[Any]]


class Mailbox(ABC):
    """
    Mail transport as seen by nova.

    Implementations own the IMAP/SMTP (or API) details. Every message
    operation addresses a message by account id and sequence number.
    """

    @abstractmethod
    def list_accounts(self) -> list[MailAccount]:
        """Configured accounts."""
        ...

    @abstractmethod
    async def send_email(self, message: OutgoingEmail) -> dict[str, Any]:
        """Send a message and return transport details (e.g. message id)."""
        ...

    @abstractmethod
    async def get_recent_emails(self, account_id: str, limit: int = 10) -> list[EmailMessage]:
        """Most recent inbox messages, newest first."""
        ...

    @abstractmethod
    async def search_for_sequence_numbers(
        self,
        account_id: str,
        criteria: dict[str, str],
        limit: int = 10,
    ) -> list[int]:
        """
        Search the inbox.

        Args:
            account_id: Account to search.
            criteria: Non-empty mapping with any of subject/sender/content.
            limit: Maximum number of results.

        Returns:
            Sequence numbers, most relevant (most recent) first.
        """
        ...

    @abstractmethod
    async def mark_read(self, account_id: str, seqno: int) -> None: ...

    @abstractmethod
    async def mark_unread(self, account_id: str, seqno: int) -> None: ...

    @abstractmethod
    async def mark_spam(self, account_id: str, seqno: int) -> None: ...

    @abstractmethod
    async def delete_email(self, account_id: str, seqno: int) -> None: ...

    @abstractmethod
    async def move_email(self, account_id: str, seqno: int, folder: str) -> None: ...

    @abstractmethod
    async def unsubscribe_info(self, account_id: str, seqno: int) -> UnsubscribeInfo:
        """Unsubscribe links and headers for one message."""
        ...

    def set_email_callback(self, callback: EmailCallback | None) -> None:
        """
        Register the handler for newly arrived mail.

        Transports that watch the inbox call it once per new message (or
        thread). The default transport never reports arrivals. Passing None
        unregisters the handler.
        """
        return None
