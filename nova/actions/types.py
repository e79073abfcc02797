"""Typed action plans and execution results."""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from nova.actions.resolver import EmailTarget, derive_criteria, extract_target, first_text
from nova.errors import PlanValidationError


@dataclass
class ActionExecutionResult:
    """Outcome of dispatching one plan."""

    success: bool
    action: str | None = None
    details: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.action is not None:
            data["action"] = self.action
        if self.details is not None:
            data["details"] = self.details
        if self.error is not None:
            data["error"] = self.error
        return data


def _text(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _int(value: Any) -> int | None:
    return value if isinstance(value, int) and not isinstance(value, bool) else None


class PlanAction(BaseModel):
    """Fields common to every plan."""

    model_config = ConfigDict(extra="ignore")

    action: str
    response: str | None = None
    account: str | None = None

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        """Map raw plan keys (and their aliases) onto this model's fields."""
        return {}

    @classmethod
    def from_plan(cls, plan: dict[str, Any]) -> "PlanAction":
        data = {
            "action": str(plan.get("action", "")).strip(),
            "response": _text(plan.get("response")),
            "account": _text(plan.get("account")),
        }
        data.update(cls.normalize(plan))
        return cls.model_validate(data)


class SendEmailAction(PlanAction):
    to: str | None = None
    subject: str | None = None
    body: str | None = None
    html: str | None = None
    priority: str | None = None
    sender: str | None = None

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        return {
            "to": _text(plan.get("to")),
            "subject": _text(plan.get("subject")),
            "body": plan.get("body") if isinstance(plan.get("body"), str) else None,
            "html": plan.get("html") if isinstance(plan.get("html"), str) else None,
            "priority": _text(plan.get("priority")),
            "sender": _text(plan.get("from")),
        }

    @model_validator(mode="after")
    def _check_required(self) -> "SendEmailAction":
        if not self.to:
            raise ValueError("send_email requires a 'to' address")
        if not self.subject:
            raise ValueError("send_email requires a subject")
        if not self.body and not self.html:
            raise ValueError("send_email requires body or html content")
        return self


class CheckEmailAction(PlanAction):
    limit: int | None = None

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        return {"limit": _int(plan.get("limit"))}


class SearchEmailAction(PlanAction):
    criteria: dict[str, str]
    limit: int | None = None

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        return {"criteria": derive_criteria(plan), "limit": _int(plan.get("limit"))}

    @model_validator(mode="after")
    def _check_criteria(self) -> "SearchEmailAction":
        if not self.criteria:
            raise ValueError("search_email requires at least one search criterion (subject, sender, or content)")
        return self


class EmailTargetAction(PlanAction):
    """An action on one existing message."""

    target: EmailTarget

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        return {"target": extract_target(plan)}


class MoveEmailAction(EmailTargetAction):
    folder: str | None = None

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        data = super().normalize(plan)
        data["folder"] = _text(plan.get("folder"))
        return data

    @model_validator(mode="after")
    def _check_folder(self) -> "MoveEmailAction":
        if not self.folder:
            raise ValueError("move_email requires target folder")
        return self


class ScheduleReminderAction(PlanAction):
    task: str
    context: str
    category: str | None = None
    when: str | None = None
    delay_ms: int | None = None

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        delay = plan.get("delayMs", plan.get("delay_ms"))
        return {
            "task": first_text(plan, ("task", "prompt")) or "Untitled reminder",
            "context": _text(plan.get("context")) or "Scheduled follow-up",
            "category": _text(plan.get("category")),
            "when": plan.get("when") if isinstance(plan.get("when"), str) else None,
            "delay_ms": int(delay) if isinstance(delay, (int, float)) and not isinstance(delay, bool) else None,
        }


class AddTaskAction(PlanAction):
    task: str | None = None
    due_date: str | None = None
    priority: str = "medium"

    @classmethod
    def normalize(cls, plan: dict[str, Any]) -> dict[str, Any]:
        return {
            "task": first_text(plan, ("task", "description")),
            "due_date": first_text(plan, ("due_date", "dueDate")),
            "priority": _text(plan.get("priority")) or "medium",
        }

    @model_validator(mode="after")
    def _check_task(self) -> "AddTaskAction":
        if not self.task:
            raise ValueError("add_task requires task description")
        return self


ACTION_MODELS: dict[str, type[PlanAction]] = {
    "send_email": SendEmailAction,
    "check_email": CheckEmailAction,
    "search_email": SearchEmailAction,
    "mark_spam": EmailTargetAction,
    "mark_read": EmailTargetAction,
    "mark_unread": EmailTargetAction,
    "delete_email": EmailTargetAction,
    "move_email": MoveEmailAction,
    "unsubscribe_email": EmailTargetAction,
    "schedule_reminder": ScheduleReminderAction,
    "add_task": AddTaskAction,
}


def parse_action(plan: dict[str, Any]) -> PlanAction:
    """
    Build the typed action for a plan.

    Raises:
        PlanValidationError: A field the action requires is missing.
    """
    name = str(plan.get("action", "")).strip()
    model = ACTION_MODELS.get(name, PlanAction)
    try:
        return model.from_plan(plan)
    except ValidationError as e:
        error = e.errors()[0]
        cause = error.get("ctx", {}).get("error")
        raise PlanValidationError(name, str(cause) if cause else error["msg"]) from e
