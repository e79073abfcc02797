"""Abstract base class for durable stores."""

from abc import ABC, abstractmethod
from typing import Any


class KeyValueStore(ABC):
    """
    Key-value records plus score-ordered sets.

    Every method is atomic on its own. Sequences of calls are not
    transactional; callers that read-modify-write accept that another
    coroutine may interleave at each await.
    """

    persistent: bool = True

    @abstractmethod
    async def get(self, key: str) -> Any:
        """Return the stored value, or None when the key is absent."""
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a value under key, replacing any previous value."""
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Removing an absent key is not an error."""
        ...

    @abstractmethod
    async def sorted_range_by_score(self, name: str, min_score: float, max_score: float) -> list[str]:
        """
        Members of a sorted set whose score lies in [min_score, max_score].

        Returns:
            Members ordered by ascending score.
        """
        ...

    @abstractmethod
    async def sorted_insert(self, name: str, score: float, member: str) -> None:
        """Insert member with score, or move it to the new score."""
        ...

    @abstractmethod
    async def sorted_remove(self, name: str, member: str) -> None:
        """Remove member from a sorted set. Absent members are ignored."""
        ...

    async def close(self) -> None:
        """Release connections."""
        return None
