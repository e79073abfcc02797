"""Shared fakes for nova tests."""

from datetime import datetime
from typing import Any

import pytest

from nova.mail.base import Mailbox
from nova.mail.notify import Notifier
from nova.mail.types import EmailMessage, MailAccount, OutgoingEmail, UnsubscribeInfo
from nova.memory.base import MemoryClient
from nova.memory.types import MemoryItem
from nova.store.memory import InMemoryStore

NOW_MS = 1_700_000_000_000


class FrozenClock:
    """Callable clock returning a settable epoch-ms value."""

    def __init__(self, now: int = NOW_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeMailbox(Mailbox):
    """Mailbox that records every call and serves canned data."""

    def __init__(
        self,
        accounts: list[MailAccount] | None = None,
        emails: dict[str, list[EmailMessage]] | None = None,
        search_results: list[int] | None = None,
    ):
        self.accounts = accounts if accounts is not None else [
            MailAccount(id="work", email="me@work.example"),
            MailAccount(id="personal", email="me@home.example"),
        ]
        self.emails = emails or {}
        self.search_results = search_results if search_results is not None else []
        self.calls: list[tuple[str, tuple]] = []
        self.sent: list[OutgoingEmail] = []
        self.fail_with: Exception | None = None
        self.email_callback = None

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if self.fail_with is not None:
            raise self.fail_with

    def calls_to(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    def list_accounts(self) -> list[MailAccount]:
        return self.accounts

    def set_email_callback(self, callback) -> None:
        self.email_callback = callback

    async def send_email(self, message: OutgoingEmail) -> dict[str, Any]:
        self._record("send_email", message)
        self.sent.append(message)
        return {"messageId": f"<{len(self.sent)}@fake>"}

    async def get_recent_emails(self, account_id: str, limit: int = 10) -> list[EmailMessage]:
        self._record("get_recent_emails", account_id, limit)
        return self.emails.get(account_id, [])[:limit]

    async def search_for_sequence_numbers(self, account_id: str, criteria: dict[str, str], limit: int = 10) -> list[int]:
        self._record("search_for_sequence_numbers", account_id, dict(criteria), limit)
        return self.search_results[:limit]

    async def mark_read(self, account_id: str, seqno: int) -> None:
        self._record("mark_read", account_id, seqno)

    async def mark_unread(self, account_id: str, seqno: int) -> None:
        self._record("mark_unread", account_id, seqno)

    async def mark_spam(self, account_id: str, seqno: int) -> None:
        self._record("mark_spam", account_id, seqno)

    async def delete_email(self, account_id: str, seqno: int) -> None:
        self._record("delete_email", account_id, seqno)

    async def move_email(self, account_id: str, seqno: int, folder: str) -> None:
        self._record("move_email", account_id, seqno, folder)

    async def unsubscribe_info(self, account_id: str, seqno: int) -> UnsubscribeInfo:
        self._record("unsubscribe_info", account_id, seqno)
        return UnsubscribeInfo(
            links=["https://news.example/unsub?a=1", "https://news.example/prefs"],
            list_unsubscribe="<mailto:unsub@news.example>",
            sender="news@news.example",
            subject="Weekly digest",
        )


class RecordingNotifier(Notifier):
    def __init__(self, fail: bool = False):
        self.delivered: list[tuple[str, str]] = []
        self.fail = fail

    async def deliver(self, target: str, message: str) -> None:
        if self.fail:
            raise ConnectionError("gateway down")
        self.delivered.append((target, message))

    @property
    def messages(self) -> list[str]:
        return [m for _, m in self.delivered]


class FakeMemory(MemoryClient):
    def __init__(self, results: dict[str, list[MemoryItem]] | None = None):
        self.results = results or {}
        self.added: list[tuple[str, dict | None]] = []
        self.updated: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.fail_ids: set[str] = set()

    async def search(self, query: str, limit: int = 8) -> list[MemoryItem]:
        return self.results.get(query, [])[:limit]

    async def add(self, text: str, metadata: dict[str, Any] | None = None) -> Any:
        if text in self.fail_ids:
            raise RuntimeError(f"cannot store {text!r}")
        self.added.append((text, metadata))
        return {"id": f"m{len(self.added)}"}

    async def update(self, memory_id: str, text: str) -> Any:
        if memory_id in self.fail_ids:
            raise RuntimeError(f"no memory {memory_id}")
        self.updated.append((memory_id, text))
        return {"id": memory_id}

    async def delete(self, memory_id: str) -> Any:
        if memory_id in self.fail_ids:
            raise RuntimeError(f"no memory {memory_id}")
        self.deleted.append(memory_id)
        return {"id": memory_id}


def make_email(seqno: int, subject: str = "Hello", sender: str = "alice@example.com", text: str = "") -> EmailMessage:
    return EmailMessage(seqno=seqno, subject=subject, sender=sender, date=datetime(2026, 1, 5, 9, 30), text=text)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def mailbox():
    return FakeMailbox()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def memory():
    return FakeMemory()
