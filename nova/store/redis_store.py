"""Redis-backed store."""

from typing import Any

import redis.asyncio as redis
from loguru import logger

from nova.config.schema import StoreConfig
from nova.store.base import KeyValueStore
from nova.store.memory import InMemoryStore


class RedisStore(KeyValueStore):
    """Store backed by a Redis server (or any Redis-protocol service)."""

    def __init__(self, client: redis.Redis):
        self.r = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        return cls(redis.from_url(url, decode_responses=True))

    async def ping(self) -> bool:
        return bool(await self.r.ping())

    async def get(self, key: str) -> Any:
        return await self.r.get(key)

    async def set(self, key: str, value: Any) -> None:
        await self.r.set(key, value)

    async def delete(self, key: str) -> None:
        await self.r.delete(key)

    async def sorted_range_by_score(self, name: str, min_score: float, max_score: float) -> list[str]:
        return list(await self.r.zrangebyscore(name, _score_bound(min_score), _score_bound(max_score)))

    async def sorted_insert(self, name: str, score: float, member: str) -> None:
        await self.r.zadd(name, {member: score})

    async def sorted_remove(self, name: str, member: str) -> None:
        await self.r.zrem(name, member)

    async def close(self) -> None:
        await self.r.aclose()


def _score_bound(value: float) -> float | str:
    if value == float("inf"):
        return "+inf"
    if value == float("-inf"):
        return "-inf"
    return value


async def open_store(config: StoreConfig) -> KeyValueStore:
    """
    Open the configured store.

    Falls back to an in-memory store when Redis is not configured or not
    reachable. Reminders and history then live only as long as the process.
    """
    if not config.redis_url:
        logger.warning("Redis not configured. Using in-memory store (no persistence across restarts)")
        return InMemoryStore()

    store = RedisStore.from_url(config.redis_url)
    try:
        await store.ping()
    except (redis.RedisError, OSError) as e:
        logger.warning(f"Redis unreachable ({e}). Using in-memory store (no persistence across restarts)")
        await store.close()
        return InMemoryStore()

    logger.info("Durable store connected (redis)")
    return store
