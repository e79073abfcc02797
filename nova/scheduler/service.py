"""Reminder store: scheduling, proximity merge and the wake-up sweep."""

import asyncio
import re
import time
import uuid
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable

from loguru import logger
from pydantic import ValidationError

from nova.errors import CorruptStateError
from nova.scheduler.types import MergedTask, PendingReminder, Reminder, ms_to_iso
from nova.store.base import KeyValueStore

WakeupCallback = Callable[[str], Awaitable[Any]]

_DELAY_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*(second|minute|hour|day|week|month)s?", re.IGNORECASE)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_UNIT_MS = {
    "second": 1000,
    "minute": 60 * 1000,
    "hour": 60 * 60 * 1000,
    "day": 24 * 60 * 60 * 1000,
    "week": 7 * 24 * 60 * 60 * 1000,
    "month": 30 * 24 * 60 * 60 * 1000,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


class ReminderStore:
    """
    Schedules follow-ups and merges the ones that land close together.

    State lives in the durable store: a sorted index (``index_key``) scored
    by fire time in epoch milliseconds, plus one JSON record per reminder
    keyed by its id.

    The merge path (find nearby, then read-modify-write) is not atomic.
    Two overlapping ``schedule_wakeup`` calls for the same window can both
    decide to create a new record. With a single writer this only costs an
    extra notification, so no lock is taken.
    """

    def __init__(
        self,
        store: KeyValueStore,
        merge_window_ms: int = 2 * 60 * 60 * 1000,
        sweep_interval_s: float = 30.0,
        index_key: str = "nova_wakeups",
        clock: Callable[[], int] = _now_ms,
    ):
        self.store = store
        self.merge_window_ms = merge_window_ms
        self.sweep_interval_s = sweep_interval_s
        self.index_key = index_key
        self._clock = clock
        self._task: asyncio.Task | None = None
        self._running = False

    # ========== Scheduling ==========

    async def schedule_wakeup(
        self,
        task: str,
        delay_ms: int,
        context: str = "Scheduled follow-up",
        category: str | None = None,
    ) -> str:
        """
        Schedule a follow-up, merging into the closest reminder in the window.

        Args:
            task: What to do when the reminder fires.
            delay_ms: Milliseconds from now.
            context: Why the follow-up was requested.
            category: Optional grouping label (e.g. "daily_summary").

        Returns:
            Id of the new reminder, or of the reminder it was merged into.
        """
        now = self._clock()
        wakeup_time = now + int(delay_ms)
        entry = MergedTask(task=task, context=context, time=now, scheduled_for=wakeup_time)

        nearby = await self._find_nearby(wakeup_time, now)
        if nearby is not None:
            return await self._merge_into(nearby, entry)

        reminder = Reminder(
            id=f"wakeup_{now}_{uuid.uuid4().hex[:9]}",
            task=task,
            context=context,
            category=category,
            original_time=now,
            wakeup_time=wakeup_time,
            merged_tasks=[entry],
        )
        await self.store.set(reminder.id, reminder.to_json())
        await self.store.sorted_insert(self.index_key, wakeup_time, reminder.id)

        logger.info(f"Wake-up scheduled: {task} at {ms_to_iso(wakeup_time)} ({reminder.id})")
        return reminder.id

    async def _find_nearby(self, target_ms: int, now: int) -> Reminder | None:
        """Closest not-yet-due reminder whose fire time is within the merge window.

        Due reminders are excluded: the sweep may be firing them right now
        and deletes them afterwards.
        """
        if self.merge_window_ms <= 0:
            return None

        ids = await self.store.sorted_range_by_score(
            self.index_key,
            max(target_ms - self.merge_window_ms, now + 1),
            target_ms + self.merge_window_ms,
        )

        closest: Reminder | None = None
        for reminder_id in ids:
            try:
                reminder = await self._load(reminder_id)
            except CorruptStateError:
                # The sweep owns corrupt-entry cleanup.
                continue
            if reminder is None or reminder.wakeup_time <= now:
                continue
            distance = abs(reminder.wakeup_time - target_ms)
            if closest is None or distance < abs(closest.wakeup_time - target_ms):
                closest = reminder
        return closest

    async def _merge_into(self, reminder: Reminder, entry: MergedTask) -> str:
        if not reminder.merged_tasks:
            # Older records may lack the list; seed it with the original task.
            reminder.merged_tasks.append(MergedTask(
                task=reminder.task,
                context=reminder.context,
                time=reminder.original_time,
                scheduled_for=reminder.wakeup_time,
            ))
        reminder.merged_tasks.append(entry)
        reminder.task = f"Combined reminder ({len(reminder.merged_tasks)} tasks)"

        moved = entry.scheduled_for < reminder.wakeup_time
        if moved:
            reminder.wakeup_time = entry.scheduled_for

        await self.store.set(reminder.id, reminder.to_json())
        if moved:
            await self.store.sorted_remove(self.index_key, reminder.id)
            await self.store.sorted_insert(self.index_key, reminder.wakeup_time, reminder.id)

        logger.info(
            f"Wake-up merged: '{entry.task}' into {reminder.id} "
            f"({len(reminder.merged_tasks)} tasks, fires {ms_to_iso(reminder.wakeup_time)})"
        )
        return reminder.id

    # ========== Queries ==========

    async def get_reminder(self, reminder_id: str) -> Reminder | None:
        """Load a reminder record; None if absent or unreadable."""
        try:
            return await self._load(reminder_id)
        except CorruptStateError:
            return None

    async def get_pending_reminders(self) -> list[PendingReminder]:
        """All reminders that have not reached their fire time, soonest first."""
        now = self._clock()
        ids = await self.store.sorted_range_by_score(self.index_key, now, float("inf"))

        pending = []
        for reminder_id in ids:
            reminder = await self.get_reminder(reminder_id)
            if reminder is None:
                continue
            minutes = max(0, round((reminder.wakeup_time - now) / 60_000))
            pending.append(PendingReminder(
                id=reminder.id,
                time=ms_to_iso(reminder.wakeup_time),
                task=reminder.task,
                merged_count=reminder.merge_count,
                minutes_until=minutes,
                time_until=_format_minutes(minutes),
                wakeup_time=reminder.wakeup_time,
                category=reminder.category,
            ))

        pending.sort(key=lambda p: p.wakeup_time)
        return pending

    async def cancel_reminder(self, reminder_id: str) -> None:
        """Drop a reminder. Cancelling an unknown id is a no-op."""
        await self.store.sorted_remove(self.index_key, reminder_id)
        await self.store.delete(reminder_id)
        logger.info(f"Wake-up cancelled: {reminder_id}")

    # ========== Sweep ==========

    async def process_wakeups(self, callback: WakeupCallback | None) -> int:
        """
        Fire every due reminder once and remove it.

        Each entry runs inside its own failure boundary. The index entry and
        record are removed whether or not the callback raised, so a reminder
        never fires twice. Corrupt records are removed without a callback.

        Returns:
            Number of reminders whose callback was invoked.
        """
        now = self._clock()
        ready = await self.store.sorted_range_by_score(self.index_key, float("-inf"), now)

        fired = 0
        for reminder_id in ready:
            try:
                reminder = await self._load(reminder_id)
                if reminder is None:
                    logger.warning(f"Wake-up {reminder_id} has no record, dropping index entry")
                    continue

                logger.info(f"Waking up for: {reminder.task} ({reminder_id})")
                fired += 1
                if callback:
                    await callback(build_followup_instruction(reminder))
            except CorruptStateError as e:
                logger.warning(f"Discarding corrupt wake-up {reminder_id}: {e}")
            except Exception as e:
                logger.error(f"Error processing wake-up {reminder_id}: {e}")
            finally:
                await self._discard(reminder_id)

        return fired

    async def _discard(self, reminder_id: str) -> None:
        try:
            await self.store.sorted_remove(self.index_key, reminder_id)
            await self.store.delete(reminder_id)
        except Exception as e:
            logger.error(f"Failed to remove wake-up {reminder_id}: {e}")

    def start(self, callback: WakeupCallback) -> None:
        """Start the fixed-interval sweep loop."""
        if self._task and not self._task.done():
            return
        self._running = True
        self._task = asyncio.create_task(self._run(callback))
        logger.info(f"Wake-up processor started (every {self.sweep_interval_s:g}s)")

    async def _run(self, callback: WakeupCallback) -> None:
        while self._running:
            try:
                await self.process_wakeups(callback)
            except Exception as e:
                logger.error(f"Error in wake-up processor: {e}")
            await asyncio.sleep(self.sweep_interval_s)

    def stop(self) -> None:
        """Stop the sweep loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None
            logger.info("Wake-up processor stopped")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    # ========== Persistence ==========

    async def _load(self, reminder_id: str) -> Reminder | None:
        """Read a record; raises CorruptStateError when it cannot be parsed."""
        raw = await self.store.get(reminder_id)
        if raw is None:
            return None
        try:
            if isinstance(raw, (str, bytes)):
                return Reminder.model_validate_json(raw)
            if isinstance(raw, dict):
                return Reminder.model_validate(raw)
        except (ValidationError, ValueError, TypeError) as e:
            raise CorruptStateError(reminder_id, raw) from e
        raise CorruptStateError(reminder_id, raw)


def build_followup_instruction(reminder: Reminder) -> str:
    """Instruction handed to the reasoning step when a reminder fires."""
    closing = (
        "This is the follow-up you committed to. Fulfill the task now and reference why "
        "you're contacting the user (e.g., \"As requested...\" or \"You asked me to...\")."
    )

    if len(reminder.merged_tasks) > 1:
        lines = [
            f"SCHEDULED REMINDER: You previously scheduled {len(reminder.merged_tasks)} "
            "follow-ups that are now due together:"
        ]
        for i, item in enumerate(reminder.merged_tasks, 1):
            lines.append(
                f"{i}. \"{item.task}\" (context: {item.context or 'none'}; "
                f"requested at {ms_to_iso(item.time)}; due {ms_to_iso(item.scheduled_for)})"
            )
        lines.append("Handle every one of them in a single message. " + closing)
        return "\n".join(lines)

    return (
        f"SCHEDULED REMINDER: You previously scheduled this task: \"{reminder.task}\". "
        f"Context: {reminder.context}. Originally requested at: {ms_to_iso(reminder.original_time)}. "
        + closing
    )


def _format_minutes(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    hours, rest = divmod(minutes, 60)
    label = f"{hours} hour{'s' if hours != 1 else ''}"
    if rest:
        label += f" {rest} minute{'s' if rest != 1 else ''}"
    return label


def parse_delay(text: Any) -> int | None:
    """Parse phrases like '30 minutes', '2 hours', '1.5 days' into ms.

    A bare leading integer is read as minutes. Returns None when nothing
    usable is found.
    """
    if not text or not isinstance(text, str):
        return None

    match = _DELAY_PATTERN.search(text)
    if match:
        value = float(match.group(1))
        unit = match.group(2).lower()
        return round(value * _UNIT_MS.get(unit, _UNIT_MS["minute"]))

    match = _LEADING_INT.match(text)
    if match:
        return int(match.group(1)) * _UNIT_MS["minute"]

    return None


def delay_until_hour(hour: int = 18, now: datetime | None = None) -> int:
    """Milliseconds until the next local occurrence of ``hour``:00."""
    now = now or datetime.now()
    target = now.replace(hour=hour, minute=0, second=0, microsecond=0)
    if now >= target:
        target += timedelta(days=1)
    return int((target - now).total_seconds() * 1000)
