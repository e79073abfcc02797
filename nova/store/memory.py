"""In-process store used when no durable backend is configured."""

from typing import Any

from nova.store.base import KeyValueStore


class InMemoryStore(KeyValueStore):
    """Dict-backed store. Contents are lost when the process exits."""

    persistent = False

    def __init__(self):
        self._values: dict[str, Any] = {}
        self._sorted: dict[str, dict[str, float]] = {}

    async def get(self, key: str) -> Any:
        return self._values.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    async def delete(self, key: str) -> None:
        self._values.pop(key, None)

    async def sorted_range_by_score(self, name: str, min_score: float, max_score: float) -> list[str]:
        members = self._sorted.get(name, {})
        # Ties break on member, matching Redis ZRANGEBYSCORE ordering.
        ordered = sorted(members.items(), key=lambda item: (item[1], item[0]))
        return [member for member, score in ordered if min_score <= score <= max_score]

    async def sorted_insert(self, name: str, score: float, member: str) -> None:
        self._sorted.setdefault(name, {})[member] = score

    async def sorted_remove(self, name: str, member: str) -> None:
        members = self._sorted.get(name)
        if members is not None:
            members.pop(member, None)

    def __len__(self) -> int:
        return len(self._values)
