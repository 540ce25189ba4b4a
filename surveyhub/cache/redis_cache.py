from __future__ import annotations

import logging
from typing import Any

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from surveyhub.utils import jsonutil

log = logging.getLogger(__name__)


def survey_key(token: str) -> str:
    return f"survey:{token}"


def analytics_key(survey_id: int) -> str:
    return f"analytics:survey:{survey_id}"


class Cache:
    """
    JSON key/value cache with expiry on top of redis.asyncio.

    The cache is an optimization only: every Redis failure is logged and
    turned into a miss (reads) or a no-op (writes/deletes).
    A Cache built with client=None is disabled and always misses.
    """

    def __init__(self, client: aioredis.Redis | None) -> None:
        self.client = client

    @classmethod
    def from_url(cls, url: str | None) -> "Cache":
        if not url:
            log.warning("REDIS_URL/REDIS_HOST not set, cache disabled")
            return cls(None)
        return cls(aioredis.from_url(url, decode_responses=True))

    @property
    def enabled(self) -> bool:
        return self.client is not None

    async def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(await self.client.ping())
        except RedisError:
            log.exception("Redis ping failed")
            return False

    async def get_json(self, key: str) -> Any | None:
        if self.client is None:
            return None
        try:
            raw = await self.client.get(key)
        except RedisError:
            log.exception("Cache get failed key=%s", key)
            return None
        if raw is None:
            return None
        try:
            return jsonutil.loads(raw)
        except ValueError:
            log.warning("Dropping undecodable cache entry key=%s", key)
            await self.delete(key)
            return None

    async def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        if self.client is None:
            return
        try:
            await self.client.setex(key, ttl_seconds, jsonutil.dumps(value))
        except RedisError:
            log.exception("Cache set failed key=%s", key)

    async def delete(self, *keys: str) -> None:
        if self.client is None or not keys:
            return
        try:
            await self.client.delete(*keys)
        except RedisError:
            log.exception("Cache delete failed keys=%s", keys)

    async def close(self) -> None:
        if self.client is None:
            return
        await self.client.aclose()
