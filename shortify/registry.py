"""ShortiFy Registry - Core Business Logic

This module orchestrates short URL creation and resolution on top of the
code allocator, the durable store and the Redis cache.

Architecture Overview
==================
::
    ┌─────────────────────────────────────────────────────────────┐
    │                       UrlRegistry                           │
    │  ┌─────────────────┐  ┌─────────────────┐  ┌──────────────┐ │
    │  │  create()        │  │  CodeAllocator  │  │ resolve()    │ │
    │  │ • Validate URL   │  │ • Random codes  │  │ • Cache first │ │
    │  │ • Idempotent     │  │ • Bounded retry │  │ • Store miss  │ │
    │  │ • Persist + cache│  │                 │  │ • Repopulate  │ │
    │  └─────────────────┘  └─────────────────┘  └──────────────┘ │
    └─────────────────────────────────────────────────────────────┘
                │                                       │
                ▼                                       ▼
    ┌─────────────────────┐                 ┌─────────────────────┐
    │  ShortUrlRepository │                 │    ShortUrlCache     │
    │  (PostgreSQL)       │                 │    (Redis, TTL)      │
    └─────────────────────┘                 └─────────────────────┘

Creation Flow
-------------
::
    ┌─────────────┐
    │ create(url) │
    └──────┬──────┘
           ▼
    ┌─────────────┐  invalid   ┌──────────────┐
    │ Validate URL │──────────►│ InvalidUrl   │
    └──────┬──────┘            └──────────────┘
           ▼
    ┌─────────────┐  found     ┌──────────────┐
    │ Lookup by    │──────────►│ Return as    │
    │ original_url │           │ EXISTING     │
    └──────┬──────┘            └──────────────┘
           ▼
    ┌─────────────┐ exhausted  ┌──────────────┐
    │ Allocate     │──────────►│ CodeGenera-  │
    │ unique code  │◄─┐        │ tionFailed   │
    └──────┬──────┘  │        └──────────────┘
           ▼         │ unique violation
    ┌─────────────┐  │
    │ INSERT       │──┘
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache (TTL,  │
    │ best effort) │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Return as    │
    │ CREATED      │
    └─────────────┘

Resolution Flow
---------------
::
    ┌─────────────┐
    │resolve(code)│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Cache get    │
    └──────┬──────┘
    HIT?  │
    ┌─────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Store   │  │ Return  │
│ lookup  │  │ cached  │
└────┬────┘  └─────────┘
     │ absent → NotFound
     ▼
┌─────────┐
│ Cache   │
│ set     │
└────┬────┘
     ▼
  Return

Key Behaviours
===============
- A repeated create for the same URL returns the stored code without
  allocating, writing, or touching the cache.
- Two concurrent creates for the same URL may both insert; original_url has
  no unique constraint.
- The unique index on short_code is the final guard against concurrent code
  collisions; a violation is retried with a fresh code up to the same bound.
- Cache failures never fail create or resolve; store failures propagate as
  StoreUnavailableError.

Usage Examples
=============
```python
registry = UrlRegistry.from_context(ctx)
result = await registry.create("https://example.com/a")
resolved = await registry.resolve(result.record.short_code)
```
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from prometheus_client import Counter, Histogram

from shortify.allocator import CodeAllocator
from shortify.cache import ShortUrlCache
from shortify.config import Settings
from shortify.enums import CacheStatus, CreationOutcome, RequestStatus
from shortify.exceptions import (
    AllocationExhaustedError,
    CodeGenerationFailedError,
    InvalidSchemeError,
    InvalidUrlError,
    ShortCodeCollisionError,
    ShortCodeNotFoundError,
)
from shortify.models import MAX_URL_LENGTH
from shortify.repository import ShortUrlRepository
from shortify.schemas import CachedShortUrl, ShortUrlRecord

__all__ = ["CreationResult", "ResolvedUrl", "UrlRegistry", "validate_original_url"]

ALLOWED_SCHEMES = ("http", "https")


# ============================================================================
# PROMETHEUS METRICS
# ============================================================================

SHORTIFY_REQUESTS_TOTAL = Counter(
    "shortify_creation_requests_total",
    "Total short URL creation requests",
    ["status", "outcome"],
)
UNSHORTIFY_REQUESTS_TOTAL = Counter(
    "shortify_resolution_requests_total",
    "Total short code resolution requests",
    ["status", "cache_hit"],
)
SHORTIFY_DURATION = Histogram(
    "shortify_creation_duration_seconds",
    "Time taken to create short URLs",
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)
UNSHORTIFY_DURATION = Histogram(
    "shortify_resolution_duration_seconds",
    "Time taken to resolve short codes",
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25],
)
ALLOCATION_COLLISIONS_TOTAL = Counter(
    "shortify_allocation_collisions_total",
    "Candidate short codes rejected because they were already stored",
)
DATABASE_READS_TOTAL = Counter(
    "shortify_database_reads_total",
    "Total database read operations",
)
DATABASE_WRITES_TOTAL = Counter(
    "shortify_database_writes_total",
    "Total database write operations",
)


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass(frozen=True)
class CreationResult:
    """Stored mapping plus whether this call created it."""

    record: ShortUrlRecord
    created: bool

    @property
    def outcome(self) -> CreationOutcome:
        return CreationOutcome.CREATED if self.created else CreationOutcome.EXISTING


@dataclass(frozen=True)
class ResolvedUrl:
    original_url: str
    short_code: str
    shortened_url: str


def validate_original_url(original_url: str) -> None:
    """Reject anything that is not an absolute http/https URL.

    Any URL with a scheme counts as absolute, so ``mailto:`` or ``urn:`` URLs
    are scheme errors. Hosts and paths are otherwise taken as given: underscores
    in host labels and unescaped path characters are accepted.

    Raises:
        InvalidSchemeError: The URL parsed but its scheme is not allowed.
        InvalidUrlError: The URL is malformed, relative, or too long.
    """
    if not original_url or len(original_url) > MAX_URL_LENGTH:
        raise InvalidUrlError()
    try:
        parts = urlsplit(original_url)
        # out-of-range or non-numeric ports raise here
        parts.port
    except ValueError as exc:
        raise InvalidUrlError() from exc
    if not parts.scheme:
        raise InvalidUrlError()
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidSchemeError(parts.scheme)
    if not parts.hostname or any(ch.isspace() for ch in parts.netloc):
        raise InvalidUrlError()


# ============================================================================
# CORE REGISTRY CLASS
# ============================================================================


class UrlRegistry:
    """Idempotent creation and cache-aside resolution of short URLs.

    Example:
        >>> registry = UrlRegistry(repository, cache, allocator, settings, logger)
        >>> result = await registry.create("https://example.com/a")
        >>> result.created, len(result.record.short_code)
        (True, 6)
    """

    def __init__(
        self,
        repository: ShortUrlRepository,
        cache: ShortUrlCache,
        allocator: CodeAllocator,
        settings: Settings,
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        self._repository = repository
        self._cache = cache
        self._allocator = allocator
        self._settings = settings
        self._logger = logger or logging.getLogger(__name__)

    @classmethod
    def from_context(cls, ctx: "RequestContext") -> "UrlRegistry":
        """Build a registry from the per-request context's shared resources."""
        settings = ctx.settings
        logger = ctx.logger
        return cls(
            repository=ShortUrlRepository(ctx.database, logger),
            cache=ShortUrlCache(ctx.cache, settings, logger),
            allocator=CodeAllocator(settings.SHORT_CODE_LENGTH, settings.MAX_ALLOCATION_ATTEMPTS, logger),
            settings=settings,
            logger=logger,
        )

    # ========================================================================
    # PUBLIC API METHODS
    # ========================================================================

    async def create(self, original_url: str) -> CreationResult:
        """Return the mapping for ``original_url``, creating it if needed.

        Raises:
            InvalidUrlError: Malformed URL or disallowed scheme.
            CodeGenerationFailedError: No free code within the attempt bound.
            StoreUnavailableError: The durable store failed.
        """
        start_time = time.perf_counter()
        self._logger.info(f"Processing shortify request for URL: {original_url}")
        try:
            validate_original_url(original_url)

            existing = await self._repository.get_by_original_url(original_url)
            DATABASE_READS_TOTAL.inc()
            if existing is not None:
                self._logger.info(f"URL already exists with short code: {existing.short_code}")
                SHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, outcome=CreationOutcome.EXISTING).inc()
                return CreationResult(record=existing, created=False)

            record = await self._allocate_and_store(original_url)
            self._logger.info(f"Created short URL: {record.short_code} -> {original_url}")

            await self._cache.set(
                record.short_code,
                CachedShortUrl(original_url=record.original_url, shortened_url=record.shortened_url),
            )

            SHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, outcome=CreationOutcome.CREATED).inc()
            return CreationResult(record=record, created=True)

        except InvalidUrlError as exc:
            SHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.VALIDATION_ERROR, outcome="").inc()
            self._logger.warning(f"Invalid URL rejected ({exc.title}): {original_url}")
            raise

        except CodeGenerationFailedError:
            SHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.GENERATION_FAILED, outcome="").inc()
            self._logger.error("Failed to generate unique short code after maximum attempts")
            raise

        except Exception as exc:
            SHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, outcome="").inc()
            self._logger.error(f"Short URL creation error: {exc}")
            raise

        finally:
            SHORTIFY_DURATION.observe(time.perf_counter() - start_time)

    async def resolve(self, short_code: str) -> ResolvedUrl:
        """Resolve ``short_code`` through the cache, falling back to the store.

        Raises:
            ShortCodeNotFoundError: No mapping exists for the code.
            StoreUnavailableError: The durable store failed on a cache miss.
        """
        start_time = time.perf_counter()
        self._logger.info(f"Processing unshortify request for short code: {short_code}")
        try:
            cached = await self._cache.get(short_code)
            if cached is not None:
                UNSHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=CacheStatus.HIT).inc()
                return ResolvedUrl(
                    original_url=cached.original_url,
                    short_code=short_code,
                    shortened_url=cached.shortened_url,
                )

            record = await self._repository.get_by_short_code(short_code)
            DATABASE_READS_TOTAL.inc()
            if record is None:
                UNSHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.NOT_FOUND, cache_hit=CacheStatus.MISS).inc()
                self._logger.warning(f"Short code not found: {short_code}")
                raise ShortCodeNotFoundError(short_code)

            await self._cache.set(
                short_code,
                CachedShortUrl(original_url=record.original_url, shortened_url=record.shortened_url),
            )

            UNSHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.SUCCESS, cache_hit=CacheStatus.MISS).inc()
            self._logger.info(f"Resolved short code: {short_code} -> {record.original_url}")
            return ResolvedUrl(
                original_url=record.original_url,
                short_code=short_code,
                shortened_url=record.shortened_url,
            )

        except ShortCodeNotFoundError:
            raise

        except Exception as exc:
            UNSHORTIFY_REQUESTS_TOTAL.labels(status=RequestStatus.ERROR, cache_hit=CacheStatus.MISS).inc()
            self._logger.error(f"Short code resolution error for {short_code}: {exc}")
            raise

        finally:
            UNSHORTIFY_DURATION.observe(time.perf_counter() - start_time)

    # ========================================================================
    # PRIVATE HELPER METHODS
    # ========================================================================

    async def _allocate_and_store(self, original_url: str) -> ShortUrlRecord:
        attempts = self._allocator.max_attempts
        for attempt in range(1, attempts + 1):
            try:
                short_code = await self._allocator.allocate_unique(self._short_code_taken)
            except AllocationExhaustedError as exc:
                raise CodeGenerationFailedError(exc.attempts) from exc

            try:
                record = await self._repository.add(
                    short_code=short_code,
                    original_url=original_url,
                    shortened_url=self._settings.shortened_url_for(short_code),
                )
            except ShortCodeCollisionError:
                ALLOCATION_COLLISIONS_TOTAL.inc()
                self._logger.warning(f"Insert collision on {short_code}, attempt {attempt} of {attempts}")
                continue

            DATABASE_WRITES_TOTAL.inc()
            return record

        raise CodeGenerationFailedError(attempts)

    async def _short_code_taken(self, short_code: str) -> bool:
        taken = await self._repository.short_code_exists(short_code)
        DATABASE_READS_TOTAL.inc()
        if taken:
            ALLOCATION_COLLISIONS_TOTAL.inc()
        return taken
