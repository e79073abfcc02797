"""Long-term memory collaborator."""

from nova.memory.base import MemoryClient
from nova.memory.mem0_store import Mem0Memory
from nova.memory.types import MemoryItem

__all__ = ["MemoryClient", "Mem0Memory", "MemoryItem"]
