"""Durable-store access for short URL mappings.

Wraps an ``AsyncSession`` with the three point operations the registry
needs: lookup by original URL, lookup/existence by short code, and an insert
that reports a unique-index violation on short_code as a collision.
"""

import logging
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortify.exceptions import ShortCodeCollisionError, StoreUnavailableError
from shortify.models import ShortUrl
from shortify.schemas import ShortUrlRecord

__all__ = ["ShortUrlRepository"]


class ShortUrlRepository:
    """Point reads and inserts against the ``short_urls`` table."""

    def __init__(self, db: AsyncSession, logger: Optional[logging.Logger | logging.LoggerAdapter] = None):
        self._db = db
        self._logger = logger or logging.getLogger(__name__)

    async def get_by_original_url(self, original_url: str) -> Optional[ShortUrlRecord]:
        row = await self._scalar(
            select(ShortUrl).where(ShortUrl.original_url == original_url).order_by(ShortUrl.id).limit(1)
        )
        return ShortUrlRecord.model_validate(row) if row is not None else None

    async def get_by_short_code(self, short_code: str) -> Optional[ShortUrlRecord]:
        row = await self._scalar(select(ShortUrl).where(ShortUrl.short_code == short_code))
        return ShortUrlRecord.model_validate(row) if row is not None else None

    async def short_code_exists(self, short_code: str) -> bool:
        return bool(await self._scalar(select(exists().where(ShortUrl.short_code == short_code))))

    async def add(self, short_code: str, original_url: str, shortened_url: str) -> ShortUrlRecord:
        """Insert a new mapping and return it with store-assigned fields.

        Once the commit succeeds the row is stored, so a failed refresh only
        costs ``created_at`` and is not reported as an error.

        Raises:
            ShortCodeCollisionError: The unique index rejected short_code.
            StoreUnavailableError: Any other database failure before commit.
        """
        url = ShortUrl(short_code=short_code, original_url=original_url, shortened_url=shortened_url)
        try:
            self._db.add(url)
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            self._logger.warning(f"Database collision for code: {short_code}")
            raise ShortCodeCollisionError(short_code) from exc
        except SQLAlchemyError as exc:
            await self._db.rollback()
            self._logger.error(f"Database insert failed for code {short_code}: {exc}")
            raise StoreUnavailableError() from exc

        try:
            await self._db.refresh(url)
        except SQLAlchemyError as exc:
            self._logger.warning(f"Stored {short_code} but could not reload it: {exc}")
            return ShortUrlRecord(
                id=url.id,
                short_code=short_code,
                original_url=original_url,
                shortened_url=shortened_url,
            )
        return ShortUrlRecord.model_validate(url)

    async def _scalar(self, statement):
        try:
            result = await self._db.execute(statement)
        except SQLAlchemyError as exc:
            self._logger.error(f"Database query failed: {exc}")
            raise StoreUnavailableError() from exc
        return result.scalar_one_or_none()
