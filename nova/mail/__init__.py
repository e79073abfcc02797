"""Mailbox collaborator interface and helpers."""

from nova.mail.base import Mailbox
from nova.mail.notify import EmailGatewayNotifier, LogNotifier, Notifier
from nova.mail.types import EmailMessage, MailAccount, OutgoingEmail, UnsubscribeInfo

__all__ = [
    "Mailbox",
    "Notifier",
    "EmailGatewayNotifier",
    "LogNotifier",
    "EmailMessage",
    "MailAccount",
    "OutgoingEmail",
    "UnsubscribeInfo",
]
