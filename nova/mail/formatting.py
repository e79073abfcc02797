"""Text rendering for email summaries and reasoning contexts."""

import re
from collections.abc import Sequence

from nova.mail.types import EmailMessage, UnsubscribeInfo

PREVIEW_LENGTH = 120
NO_MATCHES = "No matching emails found."

_BOUNDARY = re.compile(r"--[0-9a-f]+")
_CONTENT_TYPE = re.compile(r"Content-Type:[^\n]+")
_BOUNDARY_ATTR = re.compile(r'boundary="[^"]*"')
_WHITESPACE = re.compile(r"\s+")


def clean_email_content(text: str | None) -> str:
    """Strip MIME boundaries and stray headers from a message body."""
    if not text:
        return "No content available"
    text = _BOUNDARY.sub("", text)
    text = _CONTENT_TYPE.sub("", text)
    text = _BOUNDARY_ATTR.sub("", text)
    return text.strip()


def _date_label(email: EmailMessage) -> str:
    return email.date.strftime("%Y-%m-%d %H:%M") if email.date else "unknown date"


def format_email_line(email: EmailMessage, include_preview: bool = False) -> str:
    line = (
        f"• {email.subject or '(no subject)'} - {email.sender or 'unknown sender'} "
        f"({_date_label(email)}) [{email.seqno}]"
    )
    if include_preview and email.text:
        preview = _WHITESPACE.sub(" ", clean_email_content(email.text)).strip()[:PREVIEW_LENGTH]
        if preview:
            suffix = "…" if len(preview) == PREVIEW_LENGTH else ""
            line += f"\n    {preview}{suffix}"
    return line


def summarize_emails(
    emails: Sequence[EmailMessage],
    limit: int = 5,
    include_preview: bool = False,
) -> str:
    """One bullet per message, capped at ``limit`` lines."""
    if not emails:
        return NO_MATCHES
    return "\n".join(format_email_line(e, include_preview) for e in emails[:limit])


def build_unsubscribe_summary(info: UnsubscribeInfo | None) -> str:
    if info is None:
        return "Unable to extract unsubscribe options."

    lines = []
    if info.subject:
        lines.append(f"Subject: {info.subject}")
    if info.sender:
        lines.append(f"From: {info.sender}")
    if info.list_unsubscribe:
        lines.append(f"List-Unsubscribe: {info.list_unsubscribe}")
    if info.links:
        lines.append("Links:")
        lines.extend(f"  {i}. {link}" for i, link in enumerate(info.links[:3], 1))
    return "\n".join(lines) or "No unsubscribe options found."


_EMAIL_ACTIONS_HELP = """AUTONOMOUS EMAIL PROCESSING: You can take these actions:
1. MARK_SPAM: Mark this {what} as spam if it's clearly promotional/unwanted
2. MOVE_EMAIL or DELETE_EMAIL: File or remove it when that is obviously right
3. SCHEDULE_REMINDER: Schedule yourself to bring it to the owner's attention, soon if it is urgent, later at a suitable time if not

With no action the {what} is left alone and the owner is not told about it.

Examples of good actions:
- MARK_SPAM for obvious junk/promotional email
- SCHEDULE_REMINDER with a short delay for important email that needs immediate attention
- SCHEDULE_REMINDER with a longer delay for email that needs follow-up but isn't urgent

Analyze this {what} and decide the best action with clear reasoning."""


def build_incoming_email_context(account_id: str, email: EmailMessage) -> str:
    """Reasoning input for a single newly arrived message."""
    content = clean_email_content(email.text)[:500]
    return (
        f"NEW EMAIL RECEIVED in {account_id} account:\n"
        f"From: {email.sender}\n"
        f"Subject: {email.subject}\n"
        f"Date: {_date_label(email)}\n"
        f"Sequence number: {email.seqno}\n"
        f"Content: {content}\n\n"
        + _EMAIL_ACTIONS_HELP.format(what="email")
    )


def build_thread_context(account_id: str, thread: Sequence[EmailMessage]) -> str:
    """Reasoning input for a conversation thread, oldest message first."""
    if not thread:
        raise ValueError("thread must contain at least one message")

    latest = thread[-1]
    parts = [
        f"EMAIL CONVERSATION THREAD RECEIVED in {account_id} account:",
        f"Subject: {latest.subject}",
        f"Thread Length: {len(thread)} messages",
        f"Latest sequence number: {latest.seqno}",
        "Conversation:",
    ]
    for i, email in enumerate(thread, 1):
        parts.append(f"--- Message {i} ---")
        parts.append(f"From: {email.sender}")
        parts.append(f"Date: {_date_label(email)}")
        parts.append(f"Content: {clean_email_content(email.text)}")
    return "\n".join(parts) + "\n\n" + _EMAIL_ACTIONS_HELP.format(what="email conversation")


def build_recent_email_context(accounts: dict[str, Sequence[EmailMessage]]) -> str | None:
    """Compact per-account listing of recent mail, or None if there is none."""
    sections = []
    for account_id, emails in accounts.items():
        if not emails:
            continue
        rows = [
            f"{i}. From: {e.sender or 'Unknown'} | Subject: \"{e.subject or 'No Subject'}\" | "
            f"Date: {e.date.date().isoformat() if e.date else 'Unknown Date'}"
            for i, e in enumerate(emails, 1)
        ]
        sections.append(f"{account_id.upper()} ACCOUNT:\n" + "\n".join(rows))
    return "\n\n".join(sections) if sections else None
