"""Redis-backed cache for resolved short URLs.

Flow Diagram — get() / set()
============================
::
    ┌─────────────┐            ┌─────────────┐
    │ get(code)    │            │ set(code,   │
    └──────┬──────┘            │ entry)      │
           ▼                   └──────┬──────┘
    ┌─────────────┐                   ▼
    │ GET prefix+ │            ┌─────────────┐
    │ code        │            │ SET prefix+ │
    └──────┬──────┘            │ code EX ttl │
    OK?    │                   └──────┬──────┘
    ┌─────┴─────┐              OK?    │
    │ NO         │ YES         ┌─────┴─────┐
    ▼            ▼             │ NO         │ YES
┌─────────┐  ┌─────────┐       ▼            ▼
│ log,    │  │ decode  │   ┌─────────┐  ┌─────────┐
│ None    │  │ JSON    │   │ log,    │  │ done    │
└─────────┘  └─────────┘   │ no-op   │  └─────────┘
                           └─────────┘

Key Behaviours
===============
- The cache is never authoritative: any Redis error or undecodable payload
  on read is reported as a miss, and any error on write is dropped.
- Entries expire after CACHE_EXPIRATION_MINUTES; concurrent writers to the
  same key race and the last write wins.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from shortify.config import Settings
from shortify.schemas import CachedShortUrl

__all__ = ["ShortUrlCache"]


class ShortUrlCache:
    """Best-effort cache of ``short_code -> CachedShortUrl``."""

    def __init__(
        self,
        client: redis.Redis,
        settings: Settings,
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self._client = client
        self._prefix = settings.CACHE_KEY_PREFIX
        self._ttl_seconds = settings.cache_ttl_seconds
        self._logger = logger or logging.getLogger(__name__)

    def key_for(self, short_code: str) -> str:
        return f"{self._prefix}{short_code}"

    async def get(self, short_code: str) -> Optional[CachedShortUrl]:
        try:
            cached = await self._client.get(self.key_for(short_code))
        except RedisError as exc:
            self._logger.warning(f"Cache read failed for {short_code}: {exc}")
            return None

        if cached is None:
            self._logger.debug(f"Cache miss for short code: {short_code}")
            return None

        try:
            entry = CachedShortUrl.model_validate_json(cached)
        except ValidationError as exc:
            self._logger.error(f"Cache deserialization error for {short_code}: {exc}")
            return None

        self._logger.debug(f"Cache hit for short code: {short_code}")
        return entry

    async def set(self, short_code: str, entry: CachedShortUrl) -> bool:
        """Store ``entry`` with the configured TTL; returns False if Redis refused."""
        key = self.key_for(short_code)
        try:
            await self._client.set(key, entry.model_dump_json(), ex=self._ttl_seconds)
        except RedisError as exc:
            self._logger.warning(f"Cache write failed for {short_code}: {exc}")
            return False

        self._logger.debug(f"Cached short URL with key: {key}, TTL: {self._ttl_seconds} seconds")
        return True
