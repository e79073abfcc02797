"""mem0 platform memory backend."""

import asyncio
from datetime import datetime, timezone
from typing import Any

from loguru import logger
from mem0 import MemoryClient as Mem0Client

from nova.memory.base import MemoryClient
from nova.memory.types import MemoryItem


class Mem0Memory(MemoryClient):
    """Memory stored on the hosted mem0 platform.

    The mem0 client is synchronous; calls run in a worker thread. Without
    an API key the backend is disabled and every call is a logged no-op.
    """

    def __init__(self, api_key: str = "", user_id: str = "owner", client: Any = None):
        self.user_id = user_id
        self._client = client
        if self._client is None and api_key:
            self._client = Mem0Client(api_key=api_key)
            logger.info(f"mem0 memory initialized (user={user_id})")
        elif self._client is None:
            logger.warning("mem0 API key not set - memory features disabled")

    @property
    def available(self) -> bool:
        return self._client is not None

    async def search(self, query: str, limit: int = 8) -> list[MemoryItem]:
        if not self.available:
            logger.debug("mem0 disabled: search skipped")
            return []
        result = await asyncio.to_thread(self._client.search, query, user_id=self.user_id, limit=limit)
        records = result.get("results", []) if isinstance(result, dict) else (result or [])
        logger.debug(f"Found {len(records)} memories for query: {query[:50]}")
        return [MemoryItem.from_raw(r) for r in records if isinstance(r, dict)]

    async def add(self, text: str, metadata: dict[str, Any] | None = None) -> Any:
        if not self.available:
            logger.debug("mem0 disabled: add skipped")
            return None
        meta = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": "nova",
            **(metadata or {}),
        }
        return await asyncio.to_thread(
            self._client.add,
            [{"role": "user", "content": text}],
            user_id=self.user_id,
            metadata=meta,
        )

    async def update(self, memory_id: str, text: str) -> Any:
        if not self.available:
            logger.debug("mem0 disabled: update skipped")
            return None
        return await asyncio.to_thread(self._client.update, memory_id, text)

    async def delete(self, memory_id: str) -> Any:
        if not self.available:
            logger.debug("mem0 disabled: delete skipped")
            return None
        return await asyncio.to_thread(self._client.delete, memory_id)
