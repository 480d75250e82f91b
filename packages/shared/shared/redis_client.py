from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import redis.asyncio as redis


@dataclass(frozen=True)
class RedisConfig:
    url: str
    key_prefix: str = "explore"
    socket_timeout: float = 1.0
    socket_connect_timeout: float = 1.0
    health_check_interval: int = 15


class RedisClient:
    """
    Shared async Redis client for the explore service.

    Optional: without REDIS_URL the service keeps its destination lists and
    recent picks in process memory. With it, both live in Redis under
    `{key_prefix}:...` so several service instances share them.
    """

    def __init__(self, cfg: RedisConfig):
        self._cfg = cfg
        self._client: Optional[redis.Redis] = None

    @classmethod
    def from_env(cls) -> Optional["RedisClient"]:
        url = os.getenv("REDIS_URL")
        if not url:
            return None
        timeout = float(os.getenv("REDIS_SOCKET_TIMEOUT_S", "1.0"))
        return cls(
            RedisConfig(
                url=url,
                key_prefix=os.getenv("REDIS_KEY_PREFIX", "explore"),
                socket_timeout=timeout,
                socket_connect_timeout=timeout,
            )
        )

    @property
    def key_prefix(self) -> str:
        return self._cfg.key_prefix

    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(
                self._cfg.url,
                decode_responses=True,
                socket_timeout=self._cfg.socket_timeout,
                socket_connect_timeout=self._cfg.socket_connect_timeout,
                health_check_interval=self._cfg.health_check_interval,
            )
        return self._client

    async def ping(self) -> bool:
        """False instead of raising, so startup can fall back to memory."""
        try:
            return bool(await self.client().ping())
        except redis.RedisError:
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
