"""Short rolling conversation history kept in the durable store."""

import json
from typing import Any

from loguru import logger

from nova.store.base import KeyValueStore


class ConversationHistory:
    """The last few user/assistant turns, stored as one JSON list."""

    def __init__(self, store: KeyValueStore, key: str = "nova_conversation_history", max_length: int = 6):
        self.store = store
        self.key = key
        self.max_length = max_length

    async def get(self) -> list[dict[str, str]]:
        """Recent turns, oldest first. Unreadable history is cleared."""
        raw = await self.store.get(self.key)
        if raw is None:
            return []

        entries: Any = raw
        if isinstance(raw, (str, bytes)):
            try:
                entries = json.loads(raw)
            except ValueError as e:
                logger.warning(f"Conversation history unreadable, resetting: {e}")
                await self.clear()
                return []

        if not isinstance(entries, list):
            logger.warning(f"Unexpected history format ({type(entries).__name__}), resetting")
            await self.clear()
            return []
        return [e for e in entries if isinstance(e, dict)]

    async def append(self, user_input: str, reply: str) -> None:
        history = await self.get()
        history.append({"role": "user", "content": user_input})
        history.append({"role": "assistant", "content": reply})
        await self.store.set(self.key, json.dumps(history[-self.max_length:]))

    async def clear(self) -> None:
        await self.store.delete(self.key)
