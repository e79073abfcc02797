"""Durable key-value / sorted-set stores."""

from nova.store.base import KeyValueStore
from nova.store.memory import InMemoryStore
from nova.store.redis_store import RedisStore, open_store

__all__ = ["KeyValueStore", "InMemoryStore", "RedisStore", "open_store"]
