"""Cost-table cache backends.

The gate stores the serialized cost table together with the time it was
fetched and decides freshness itself; backends only move strings around.
Keys are process-wide constants, not namespaced per user.
"""

from typing import Protocol

from redis.asyncio import Redis

CACHE_KEY = "ghoste_credit_costs"
CACHE_TIMESTAMP_KEY = "ghoste_credit_costs_timestamp"


class CostCache(Protocol):
    """Storage for the serialized cost table and its fetch timestamp."""

    async def read(self) -> tuple[str | None, str | None]:
        """Return ``(payload, fetched_at)``; either may be None."""
        ...

    async def write(self, payload: str, fetched_at: float) -> None: ...

    async def clear(self) -> None: ...


class RedisCostCache:
    """Cost cache shared by every API instance through Redis.

    Entries also get a Redis expiry a little beyond the gate's TTL so a
    stale table does not linger after the service stops refreshing it.
    """

    def __init__(self, redis: Redis, expire_seconds: int | None = None):
        self.redis = redis
        self.expire_seconds = expire_seconds

    async def read(self) -> tuple[str | None, str | None]:
        payload, fetched_at = await self.redis.mget(CACHE_KEY, CACHE_TIMESTAMP_KEY)
        return payload, fetched_at

    async def write(self, payload: str, fetched_at: float) -> None:
        async with self.redis.pipeline(transaction=True) as pipe:
            pipe.set(CACHE_KEY, payload, ex=self.expire_seconds)
            pipe.set(CACHE_TIMESTAMP_KEY, repr(fetched_at), ex=self.expire_seconds)
            await pipe.execute()

    async def clear(self) -> None:
        await self.redis.delete(CACHE_KEY, CACHE_TIMESTAMP_KEY)


class MemoryCostCache:
    """In-process cost cache for tests and single-instance development."""

    def __init__(self):
        self._entries: dict[str, str] = {}

    async def read(self) -> tuple[str | None, str | None]:
        return self._entries.get(CACHE_KEY), self._entries.get(CACHE_TIMESTAMP_KEY)

    async def write(self, payload: str, fetched_at: float) -> None:
        self._entries[CACHE_KEY] = payload
        self._entries[CACHE_TIMESTAMP_KEY] = repr(fetched_at)

    async def clear(self) -> None:
        self._entries.clear()
