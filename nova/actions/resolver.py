"""Map loosely-typed plan fields onto a concrete account and message."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from loguru import logger

from nova.errors import (
    AccountResolutionError,
    ConfigurationError,
    MissingIdentificationError,
    NoMatchError,
    ResolutionError,
)
from nova.mail.base import Mailbox

IDENTIFIER_KEYS = ("emailId", "emailID", "email_id", "uid", "messageId", "message_id")

# First non-empty alias wins for each field. "message" is deliberately absent:
# it carries the user-facing reply, never search text.
CRITERIA_ALIASES: dict[str, tuple[str, ...]] = {
    "subject": ("subject", "subject_line", "emailSubject", "title"),
    "sender": ("sender", "from", "author", "fromEmail", "fromAddress"),
    "content": ("content", "snippet", "body", "preview", "text"),
}

_DIGITS = re.compile(r"[0-9]+")
_SENDER_PATTERNS = [
    re.compile(r"^from\s+", re.IGNORECASE),
    re.compile(r"\b(sent by|from|by)\b", re.IGNORECASE),
    re.compile(r"\b(support|service|team|noreply|no-reply)\b", re.IGNORECASE),
]
_SUBJECT_PATTERNS = [
    re.compile(r"^(re:|fwd?:|subject:)", re.IGNORECASE),
    re.compile(r"\b(urgent|important|meeting|reminder|invoice|receipt|confirmation)\b", re.IGNORECASE),
    re.compile(r"^[A-Z][a-z]+\s+(meeting|call|update|report)", re.IGNORECASE),
]


def first_text(plan: Mapping[str, Any], keys: tuple[str, ...]) -> str | None:
    """First value under ``keys`` that is a non-blank string, trimmed."""
    for key in keys:
        value = plan.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_sequence(value: Any) -> int | None:
    """Sequence number from an int or an all-digit string; None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    text = str(value).strip()
    if _DIGITS.fullmatch(text):
        return int(text)
    return None


def derive_criteria(plan: Mapping[str, Any]) -> dict[str, str]:
    """Search criteria from the alias table; only non-empty fields are present."""
    criteria = {}
    for name, keys in CRITERIA_ALIASES.items():
        value = first_text(plan, keys)
        if value:
            criteria[name] = value
    return criteria


def looks_like_sender(text: str) -> bool:
    if not text or not isinstance(text, str):
        return False
    if "@" in text:
        return True
    return any(p.search(text) for p in _SENDER_PATTERNS)


def looks_like_subject(text: str) -> bool:
    if not text or not isinstance(text, str):
        return False
    return any(p.search(text) for p in _SUBJECT_PATTERNS)


def classify_fallback(text: str) -> str:
    """Which criterion a free-text identifier most likely describes."""
    if looks_like_sender(text):
        return "sender"
    if looks_like_subject(text):
        return "subject"
    return "content"


@dataclass(frozen=True)
class EmailTarget:
    """How a plan identifies its message: a direct sequence number or search criteria."""

    seqno: int | None = None
    criteria: dict[str, str] = field(default_factory=dict)


def extract_target(plan: Mapping[str, Any]) -> EmailTarget:
    """
    Read the identification fields of a plan without touching the mailbox.

    Identifier keys are checked in a fixed order; the first value that parses
    as a sequence number wins. Otherwise criteria come from the alias table.
    Only when the alias table yields nothing is the first non-numeric
    identifier string classified as sender, subject or content.
    """
    fallbacks: list[str] = []
    for key in IDENTIFIER_KEYS:
        if key not in plan:
            continue
        raw = plan[key]
        seqno = parse_sequence(raw)
        if seqno is not None:
            return EmailTarget(seqno=seqno)
        if isinstance(raw, str) and raw.strip():
            fallbacks.append(raw.strip())

    criteria = derive_criteria(plan)
    if not criteria and fallbacks:
        criteria = {classify_fallback(fallbacks[0]): fallbacks[0]}
    return EmailTarget(criteria=criteria)


@dataclass(frozen=True)
class ResolvedEmail:
    account_id: str
    seqno: int
    via: Literal["identifier", "search"]
    criteria: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ResolutionFailure:
    reason: Literal["missing_identification", "no_match"]
    message: str
    criteria: dict[str, str] = field(default_factory=dict)

    def to_error(self) -> ResolutionError:
        if self.reason == "no_match":
            return NoMatchError(self.message, self.criteria)
        return MissingIdentificationError(self.message, self.criteria)


ResolvedTarget = ResolvedEmail | ResolutionFailure


class PlanResolver:
    """Resolves the account and message a plan refers to."""

    def __init__(self, mailbox: Mailbox | None, search_limit: int = 3):
        self.mailbox = mailbox
        self.search_limit = search_limit

    def _require_mailbox(self) -> Mailbox:
        if self.mailbox is None:
            raise ConfigurationError("Email service not configured")
        return self.mailbox

    def resolve_account(self, requested: Any) -> str:
        """
        Match ``requested`` against configured account ids and addresses.

        Matching is case-insensitive and exact. There is no default account:
        a missing or unknown value is an error listing what is available.
        """
        accounts = self._require_mailbox().list_accounts()
        if not accounts:
            raise ConfigurationError("No email accounts configured")

        available = [a.id for a in accounts]
        wanted = requested.strip().lower() if isinstance(requested, str) else ""
        if not wanted:
            raise AccountResolutionError(
                f"No email account specified. Available accounts: {', '.join(available)}",
                available,
            )

        for account in accounts:
            if account.id.lower() == wanted or (account.email and account.email.lower() == wanted):
                return account.id

        raise AccountResolutionError(
            f'Email account "{requested}" not found. Available accounts: {", ".join(available)}',
            available,
        )

    async def resolve_email(
        self,
        account_id: str,
        plan: Mapping[str, Any] | EmailTarget,
    ) -> ResolvedTarget:
        """
        Locate exactly one message for a plan.

        A direct identifier is returned without searching. Otherwise the
        mailbox is searched (at most ``search_limit`` results) and the first,
        most relevant, hit is used.
        """
        target = plan if isinstance(plan, EmailTarget) else extract_target(plan)

        if target.seqno is not None:
            return ResolvedEmail(account_id=account_id, seqno=target.seqno, via="identifier")

        if not target.criteria:
            return ResolutionFailure(
                reason="missing_identification",
                message="Need email identification (emailId, subject, sender, or content)",
            )

        results = await self._require_mailbox().search_for_sequence_numbers(
            account_id, target.criteria, self.search_limit
        )
        if not results:
            return ResolutionFailure(
                reason="no_match",
                message="Unable to locate email matching the provided criteria",
                criteria=dict(target.criteria),
            )

        logger.debug(f"Resolved {target.criteria} to seqno {results[0]} ({len(results)} matches)")
        return ResolvedEmail(
            account_id=account_id,
            seqno=results[0],
            via="search",
            criteria=dict(target.criteria),
        )
