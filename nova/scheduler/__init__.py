"""Reminder scheduling with proximity merge."""

from nova.scheduler.service import ReminderStore, delay_until_hour, parse_delay
from nova.scheduler.types import MergedTask, PendingReminder, Reminder

__all__ = [
    "MergedTask",
    "PendingReminder",
    "Reminder",
    "ReminderStore",
    "delay_until_hour",
    "parse_delay",
]
