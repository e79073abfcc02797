"""Make raw reasoning output safe to act on."""

import json
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from nova.config.schema import OwnerConfig

BASE_ALLOWED_ACTIONS = frozenset({
    "send_email",
    "check_email",
    "search_email",
    "mark_spam",
    "mark_read",
    "mark_unread",
    "delete_email",
    "move_email",
    "unsubscribe_email",
    "schedule_reminder",
    "add_task",
    "check_calendar",
    "web_search",
})

EMAIL_CONTEXT_ACTIONS = frozenset({
    "send_email",
    "search_email",
    "mark_spam",
    "delete_email",
    "move_email",
    "unsubscribe_email",
    "mark_read",
    "mark_unread",
    "schedule_reminder",
})

ERROR_CONTEXT_ACTIONS = frozenset({"send_email"})

DEFAULT_CONTEXT_ACTIONS: dict[str, frozenset[str]] = {
    "general": BASE_ALLOWED_ACTIONS,
    "email": EMAIL_CONTEXT_ACTIONS,
    "incoming_email": EMAIL_CONTEXT_ACTIONS,
    "error": ERROR_CONTEXT_ACTIONS,
}

EMAIL_CONTEXTS = frozenset({"email", "incoming_email"})

DEFAULT_RESPONSE = "I understand. Let me think about the best way to help."

# Synthesized only by the normalizer; never in a permission set.
DELIVERY_ACTION = "notify_owner"

_RESERVED = {"action", "response", "message", "memory", "confidence"}


class MemoryUpdate(BaseModel):
    id: str
    text: str


class MemoryDelta(BaseModel):
    add: list[str] = Field(default_factory=list)
    update: list[MemoryUpdate] = Field(default_factory=list)
    delete: list[str] = Field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.add or self.update or self.delete)


class NormalizedDecision(BaseModel):
    """Validated reasoning output. ``response`` is always non-empty."""

    response: str
    action: str | None = None
    memory: MemoryDelta = Field(default_factory=MemoryDelta)
    confidence: float | None = None
    fields: dict[str, Any] = Field(default_factory=dict)

    def to_plan(self) -> dict[str, Any]:
        """Flat plan for the dispatcher: action fields plus action/response."""
        plan = dict(self.fields)
        if self.action:
            plan["action"] = self.action
        plan["response"] = self.response
        return plan


def parse_raw(raw: Any) -> dict[str, Any]:
    """Decode reasoning output; anything that isn't a JSON object becomes {}."""
    if isinstance(raw, dict):
        return dict(raw)
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Failed to parse reasoning JSON: {e}")
            return {}
        return data if isinstance(data, dict) else {}
    return {}


def normalize_memory(raw: Any) -> MemoryDelta:
    """Keep the well-formed entries of a memory payload, drop the rest."""
    if not isinstance(raw, dict):
        return MemoryDelta()

    def texts(values: Any) -> list[str]:
        if not isinstance(values, list):
            return []
        return [v.strip() for v in values if isinstance(v, str) and v.strip()]

    updates = []
    for entry in raw.get("update") or []:
        if not isinstance(entry, dict):
            continue
        memory_id, text = entry.get("id"), entry.get("text")
        if memory_id in (None, "") or not isinstance(text, str) or not text.strip():
            continue
        updates.append(MemoryUpdate(id=str(memory_id), text=text.strip()))

    deletes = []
    if isinstance(raw.get("delete"), list):
        deletes = [str(d).strip() for d in raw["delete"] if isinstance(d, (str, int)) and str(d).strip()]

    return MemoryDelta(add=texts(raw.get("add")), update=updates, delete=deletes)


class ReasoningNormalizer:
    """
    Enforces the decision invariants on untrusted reasoning output.

    An action outside the context's permission set is dropped. A decision
    left without an action gets a synthesized ``notify_owner`` action that
    delivers the response over the notification channel, except in email
    contexts and when no owner contact is configured.
    """

    def __init__(
        self,
        owner: OwnerConfig | None = None,
        context_actions: dict[str, frozenset[str]] | None = None,
    ):
        self.owner = owner or OwnerConfig()
        self.context_actions = context_actions or DEFAULT_CONTEXT_ACTIONS

    def allowed_actions(self, context: str | None) -> frozenset[str]:
        key = (context or "general").lower()
        return self.context_actions.get(key, self.context_actions.get("general", BASE_ALLOWED_ACTIONS))

    @property
    def delivery_target(self) -> str | None:
        return self.owner.gateway_address or self.owner.fallback_email or None

    def normalize(self, raw: Any, context: str = "general") -> NormalizedDecision:
        result = parse_raw(raw)

        # {"action": {"action": "mark_spam", "sender": ...}} -> flat plan
        nested = result.get("action")
        if isinstance(nested, dict) and isinstance(nested.get("action"), str):
            params = {k: v for k, v in nested.items() if k != "action"}
            result.update(params)
            result["action"] = nested["action"]

        action = result.get("action")
        action = action.strip() if isinstance(action, str) else None
        if action in ("", "none"):
            action = None
        if action and action not in self.allowed_actions(context):
            logger.warning(f"Action '{action}' not allowed in context '{context}', removing action")
            action = None

        response = _first_reply(result)
        fields = {k: v for k, v in result.items() if k not in _RESERVED}

        if action is None:
            response = response or DEFAULT_RESPONSE
            if (context or "").lower() not in EMAIL_CONTEXTS:
                action, fields = self._delivery_action(response, fields)

        if not response:
            response = f"I'll handle that {action.replace('_', ' ', 1)} for you."

        confidence = result.get("confidence")
        decision = NormalizedDecision(
            response=response,
            action=action,
            memory=normalize_memory(result.get("memory")),
            confidence=float(confidence) if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) else None,
            fields=fields,
        )
        logger.debug(f"Decision: action={decision.action or 'none'} response={decision.response[:80]!r}")
        return decision

    def _delivery_action(self, response: str, fields: dict[str, Any]) -> tuple[str | None, dict[str, Any]]:
        if not self.delivery_target:
            logger.debug("No owner contact configured; response will not be delivered by an action")
            return None, fields
        logger.debug("Adding notify_owner action for response delivery")
        return DELIVERY_ACTION, fields


def _first_reply(result: dict[str, Any]) -> str | None:
    for key in ("response", "message"):
        value = result.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None
