from __future__ import annotations

import json
from typing import Any, Dict, Optional, Protocol

import redis.asyncio as redis


class KeyValueCache(Protocol):
    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def delete(self, key: str) -> None: ...


class MemoryCache:
    """
    Process-lifetime cache. No TTL, no eviction.
    """

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    async def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisCache:
    """
    JSON values under a key prefix.
    Key: {prefix}:{key}
    """

    def __init__(self, r: redis.Redis, prefix: str = "explore"):
        self.r = r
        self.prefix = prefix

    def _k(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        raw = await self.r.get(self._k(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any) -> None:
        await self.r.set(self._k(key), json.dumps(value, ensure_ascii=False))

    async def delete(self, key: str) -> None:
        await self.r.delete(self._k(key))
