"""Types for the memory system."""

import json
from dataclasses import dataclass, field
from typing import Any

_ID_KEYS = ("id", "memory_id", "uuid", "_id")
_TEXT_KEYS = ("text", "memory", "content")


@dataclass
class MemoryItem:
    """A single memory entry."""

    id: str | None
    text: str
    metadata: dict[str, Any] = field(default_factory=dict)
    score: float = 0.0

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "MemoryItem":
        """Build from a provider record, tolerating the id/text key variants."""
        item_id = next((str(raw[k]) for k in _ID_KEYS if raw.get(k)), None)
        text = next((raw[k] for k in _TEXT_KEYS if isinstance(raw.get(k), str) and raw[k]), None)
        score = raw.get("score")
        return cls(
            id=item_id,
            text=text if text is not None else json.dumps(raw, default=str),
            metadata=raw.get("metadata") or {},
            score=float(score) if isinstance(score, (int, float)) else 0.0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "metadata": self.metadata, "score": self.score}
