"""Reasoning client: one structured-JSON LLM call per decision."""

import json
from collections.abc import Sequence
from typing import Any

from litellm import acompletion
from loguru import logger

from nova.errors import ReasoningError
from nova.memory.types import MemoryItem
from nova.reasoning.prompts import MEMORY_SEARCH_PROMPT, SYSTEM_PROMPT


def format_conversation(history: Sequence[Any] | str | None) -> str:
    if not history:
        return ""
    if isinstance(history, str):
        return history

    lines = []
    for entry in history:
        if isinstance(entry, str):
            lines.append(entry)
        elif isinstance(entry, dict):
            role = entry.get("role") or "speaker"
            lines.append(f"{role.upper()}: {entry.get('content') or ''}".strip())
    return "\n".join(lines)


def format_memories(memories: Sequence[MemoryItem]) -> str:
    return "\n".join(
        f"- [id: {m.id or f'auto_{i}'}] {m.text}"
        for i, m in enumerate(memories)
    )


class ReasoningClient:
    """
    Calls the reasoning model through litellm.

    Provider failures (network, auth, unknown model) raise ``ReasoningError``.
    Output that is not a JSON object comes back as None; the normalizer
    turns that into a safe decision.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        temperature: float = 0.4,
        memory_temperature: float = 0.2,
        api_key: str | None = None,
        api_base: str | None = None,
        max_tokens: int = 1024,
    ):
        self.model = model
        self.temperature = temperature
        self.memory_temperature = memory_temperature
        self._api_key = api_key
        self._api_base = api_base
        self.max_tokens = max_tokens

    async def _complete(self, system: str, user: str, temperature: float) -> str | None:
        kw: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "response_format": {"type": "json_object"},
            "temperature": temperature,
            "max_tokens": self.max_tokens,
        }
        if self._api_key:
            kw["api_key"] = self._api_key
        if self._api_base:
            kw["api_base"] = self._api_base

        try:
            response = await acompletion(**kw)
        except Exception as e:
            raise ReasoningError(f"{self.model}: {e}") from e
        return response.choices[0].message.content

    async def respond(
        self,
        user_input: str,
        history: Sequence[Any] | None = None,
        memories: Sequence[MemoryItem] | None = None,
        context: str = "general",
    ) -> dict[str, Any] | None:
        """Raw decision object for one input, or None if the output was unusable."""
        payload = "\n\n".join([
            f"<USER_INPUT>{user_input}</USER_INPUT>",
            f"<RECENT_CONVERSATION>{format_conversation(history) or 'None'}</RECENT_CONVERSATION>",
            f"<MEMORIES>\n{format_memories(memories or []) or 'None'}\n</MEMORIES>",
            f"<ACTION_CONTEXT>{context}</ACTION_CONTEXT>",
        ])
        logger.debug(f"Reasoning prompt ({len(payload)} chars, context={context}):\n{payload}")

        content = await self._complete(SYSTEM_PROMPT, payload, self.temperature)
        return _parse_object(content)

    async def generate_memory_queries(
        self,
        user_input: str,
        history: Sequence[Any] | None = None,
    ) -> tuple[list[str], str]:
        """Up to three semantic search queries for long-term memory, plus the model's reasoning."""
        payload = "\n\n".join([
            f"<USER_INPUT>{user_input}</USER_INPUT>",
            f"<RECENT_CONVERSATION>{format_conversation(history) or 'None'}</RECENT_CONVERSATION>",
        ])
        content = await self._complete(MEMORY_SEARCH_PROMPT, payload, self.memory_temperature)
        data = _parse_object(content) or {}

        queries = data.get("queries")
        if not isinstance(queries, list):
            queries = []
        cleaned = [q.strip() for q in queries if isinstance(q, str) and q.strip()][:3]
        reasoning = data.get("reasoning") if isinstance(data.get("reasoning"), str) else ""
        return cleaned, reasoning


def _parse_object(content: Any) -> dict[str, Any] | None:
    if not content or not isinstance(content, str):
        return None
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse reasoning JSON: {e}")
        return None
    return data if isinstance(data, dict) else None
