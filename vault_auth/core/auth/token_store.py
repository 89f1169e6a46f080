"""
Volatile refresh token storage.

Maps an opaque refresh token to the id of the user it was issued to. Entries
expire after a TTL and are consumed exactly once through get_and_delete.
Two backends are provided: Redis (production) and an in-process dict used in
development and tests.
"""

import threading
import time
from typing import Dict, Optional, Tuple
import logging

import redis.asyncio as redis

logger = logging.getLogger(__name__)

REFRESH_TOKEN_PREFIX = "refresh_token:"


class TokenStore:
    """Interface for refresh token storage."""

    async def put(self, key: str, value: str, ttl: int) -> None:
        raise NotImplementedError

    async def get_and_delete(self, key: str) -> Optional[str]:
        """Return the value and remove the key in one indivisible step."""
        raise NotImplementedError

    async def peek(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


class RedisTokenStore(TokenStore):
    """Token store backed by Redis. Consumption uses GETDEL (Redis 6.2+)."""

    def __init__(self, client: redis.Redis, prefix: str = REFRESH_TOKEN_PREFIX):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str) -> "RedisTokenStore":
        client = redis.from_url(url, encoding="utf8", decode_responses=True)
        logger.info("Redis token store configured")
        return cls(client)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def put(self, key: str, value: str, ttl: int) -> None:
        await self.client.set(self._key(key), value, ex=ttl)

    async def get_and_delete(self, key: str) -> Optional[str]:
        return await self.client.getdel(self._key(key))

    async def peek(self, key: str) -> Optional[str]:
        return await self.client.get(self._key(key))

    async def delete(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Redis token store closed")


class InMemoryTokenStore(TokenStore):
    """In-process token store. Expired entries are dropped when touched."""

    def __init__(self, clock=time.monotonic):
        self._entries: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def _live(self, key: str) -> Optional[Tuple[str, float]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def put(self, key: str, value: str, ttl: int) -> None:
        with self._lock:
            self._entries[key] = (value, self._clock() + ttl)

    async def get_and_delete(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key)
            if entry is None:
                return None
            del self._entries[key]
            return entry[0]

    async def peek(self, key: str) -> Optional[str]:
        with self._lock:
            entry = self._live(key)
            return entry[0] if entry else None

    async def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for key in list(self._entries) if self._live(key))
