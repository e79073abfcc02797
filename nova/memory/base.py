"""Base class for long-term memory backends."""

from abc import ABC, abstractmethod
from typing import Any

from nova.memory.types import MemoryItem


class MemoryClient(ABC):
    """
    Abstract memory backend.

    Every operation propagates provider errors so the caller can decide
    per operation. A disabled backend returns None (or no results).
    """

    @property
    def available(self) -> bool:
        return True

    @abstractmethod
    async def search(self, query: str, limit: int = 8) -> list[MemoryItem]:
        """Semantic search, most relevant first."""
        ...

    @abstractmethod
    async def add(self, text: str, metadata: dict[str, Any] | None = None) -> Any:
        """Store a new memory."""
        ...

    @abstractmethod
    async def update(self, memory_id: str, text: str) -> Any:
        """Replace the text of an existing memory."""
        ...

    @abstractmethod
    async def delete(self, memory_id: str) -> Any:
        """Remove a memory."""
        ...

    async def add_task(self, task: str, due_date: str | None = None, priority: str = "medium") -> Any:
        """Store a to-do item as a tagged memory."""
        text = f"TASK: {task}"
        if due_date:
            text += f" (due {due_date})"
        return await self.add(text, {"type": "task", "priority": priority, "due_date": due_date})
