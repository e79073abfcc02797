"""Types exchanged with the mail transport."""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass
class MailAccount:
    """A configured mailbox account."""

    id: str
    email: str = ""
    name: str = ""


@dataclass
class EmailMessage:
    """A message as listed by the transport.

    ``seqno`` is scoped to one mailbox session; it is not a stable id.
    """

    seqno: int
    subject: str = ""
    sender: str = ""
    date: datetime | None = None
    text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "seqno": self.seqno,
            "subject": self.subject,
            "from": self.sender,
            "date": self.date.isoformat() if self.date else None,
        }


@dataclass
class OutgoingEmail:
    """Parameters for sending one email."""

    to: str
    subject: str
    body: str | None = None
    html: str | None = None
    priority: str | None = None
    account_id: str | None = None
    sender: str | None = None


@dataclass
class UnsubscribeInfo:
    """Unsubscribe options found in a message."""

    links: list[str] = field(default_factory=list)
    list_unsubscribe: str | None = None
    sender: str | None = None
    subject: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
