"""Reminder types (Pydantic models with camelCase JSON aliases)."""

from datetime import datetime

from pydantic import BaseModel, Field


def ms_to_iso(ms: int) -> str:
    """Local ISO timestamp (seconds precision) for epoch milliseconds."""
    return datetime.fromtimestamp(ms / 1000).isoformat(timespec="seconds")


class MergedTask(BaseModel):
    """One request folded into a reminder."""

    task: str
    context: str = ""
    time: int  # when the request was made (ms)
    scheduled_for: int = Field(alias="scheduledFor")

    model_config = {"populate_by_name": True}


class Reminder(BaseModel):
    """A scheduled self-addressed follow-up."""

    id: str
    task: str
    context: str = ""
    category: str | None = None
    original_time: int = Field(alias="originalTime")
    wakeup_time: int = Field(alias="wakeupTime")
    merged_tasks: list[MergedTask] = Field(default_factory=list, alias="mergedTasks")

    model_config = {"populate_by_name": True}

    @property
    def merge_count(self) -> int:
        return max(1, len(self.merged_tasks))

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class PendingReminder(BaseModel):
    """Human-readable projection of a reminder that has not fired yet."""

    id: str
    time: str
    task: str
    merged_count: int = Field(alias="mergedCount")
    minutes_until: int = Field(alias="minutesUntil")
    time_until: str = Field(alias="timeUntil")
    wakeup_time: int = Field(alias="wakeupTime")
    category: str | None = None

    model_config = {"populate_by_name": True}

    def __str__(self) -> str:
        merged = f" [{self.merged_count} tasks]" if self.merged_count > 1 else ""
        return f"[{self.id}] {self.task}{merged} @ {self.time} (in {self.time_until})"
