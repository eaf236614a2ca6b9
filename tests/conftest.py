"""Shared pytest fixtures: in-memory store and Redis doubles, registry and API client."""

import logging
from collections import Counter
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from redis.exceptions import ConnectionError as RedisConnectionError

from shortify.allocator import CodeAllocator
from shortify.cache import ShortUrlCache
from shortify.config import Settings
from shortify.dependencies import get_request_context, get_url_registry
from shortify.exceptions import ShortCodeCollisionError
from shortify.main import app
from shortify.registry import UrlRegistry
from shortify.schemas import ShortUrlRecord

TEST_BASE_URL = "https://short.fy/"


class InMemoryShortUrlRepository:
    """Dict-backed stand-in for ShortUrlRepository that counts every call."""

    def __init__(self) -> None:
        self.rows: dict[str, ShortUrlRecord] = {}
        self.calls: Counter = Counter()
        self.always_exists = False
        self.reject_next_inserts = 0
        self._next_id = 1

    async def get_by_original_url(self, original_url: str) -> Optional[ShortUrlRecord]:
        self.calls["get_by_original_url"] += 1
        matches = [row for row in self.rows.values() if row.original_url == original_url]
        return min(matches, key=lambda row: row.id) if matches else None

    async def get_by_short_code(self, short_code: str) -> Optional[ShortUrlRecord]:
        self.calls["get_by_short_code"] += 1
        return self.rows.get(short_code)

    async def short_code_exists(self, short_code: str) -> bool:
        self.calls["short_code_exists"] += 1
        return self.always_exists or short_code in self.rows

    async def add(self, short_code: str, original_url: str, shortened_url: str) -> ShortUrlRecord:
        self.calls["add"] += 1
        if self.reject_next_inserts > 0 or short_code in self.rows:
            self.reject_next_inserts = max(self.reject_next_inserts - 1, 0)
            raise ShortCodeCollisionError(short_code)
        record = ShortUrlRecord(
            id=self._next_id,
            short_code=short_code,
            original_url=original_url,
            shortened_url=shortened_url,
            created_at=datetime.now(timezone.utc),
        )
        self._next_id += 1
        self.rows[short_code] = record
        return record

    @property
    def store_reads(self) -> int:
        return self.calls["get_by_short_code"] + self.calls["get_by_original_url"]


class FakeRedis:
    """Minimal async Redis double covering the commands ShortUrlCache uses."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.expirations: dict[str, int] = {}
        self.fail_reads = False
        self.fail_writes = False

    async def get(self, key: str) -> Optional[str]:
        if self.fail_reads:
            raise RedisConnectionError("redis is down")
        return self.store.get(key)

    async def set(self, key: str, value: str, ex: Optional[int] = None) -> bool:
        if self.fail_writes:
            raise RedisConnectionError("redis is down")
        self.store[key] = value
        if ex is not None:
            self.expirations[key] = ex
        return True

    async def ping(self) -> bool:
        return True


@pytest.fixture
def settings() -> Settings:
    return Settings(BASE_URL=TEST_BASE_URL, CACHE_EXPIRATION_MINUTES=30)


@pytest.fixture
def logger() -> logging.Logger:
    return logging.getLogger("shortify.tests")


@pytest.fixture
def repository() -> InMemoryShortUrlRepository:
    return InMemoryShortUrlRepository()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis, settings, logger) -> ShortUrlCache:
    return ShortUrlCache(fake_redis, settings, logger)


@pytest.fixture
def allocator(settings, logger) -> CodeAllocator:
    return CodeAllocator(settings.SHORT_CODE_LENGTH, settings.MAX_ALLOCATION_ATTEMPTS, logger)


@pytest.fixture
def registry(repository, cache, allocator, settings, logger) -> UrlRegistry:
    return UrlRegistry(repository, cache, allocator, settings, logger)


@pytest.fixture
def request_context(settings, fake_redis) -> Mock:
    ctx = Mock()
    ctx.database = AsyncMock()
    ctx.database.execute = AsyncMock(return_value=MagicMock())
    ctx.cache = fake_redis
    ctx.settings = settings
    ctx.logger = MagicMock()
    ctx.get_duration = MagicMock(return_value=1.0)
    return ctx


@pytest_asyncio.fixture
async def client(registry, request_context) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_request_context] = lambda: request_context
    app.dependency_overrides[get_url_registry] = lambda: registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
