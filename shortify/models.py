"""SQLAlchemy ORM models for the ShortiFy service.

Data Model Layout
=================
::
    short_urls table
    ├─ id (SERIAL PRIMARY KEY)
    ├─ short_code (VARCHAR(10) UNIQUE, INDEXED)
    ├─ original_url (VARCHAR(2048) NOT NULL, INDEXED)
    ├─ shortened_url (VARCHAR(2048) NOT NULL)
    └─ created_at (TIMESTAMPTZ, DEFAULT NOW())

Key Behaviours
===============
- The unique index on short_code is the authoritative collision guard.
- original_url is indexed but deliberately not unique; concurrent creates of
  the same URL may both succeed.
- Rows are immutable once inserted; there is no updated_at column.

Classes:
    ShortUrl:  A stored mapping from short code to original URL.
"""

import datetime

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from shortify.database import Base

__all__ = ["ShortUrl", "MAX_URL_LENGTH"]

MAX_URL_LENGTH = 2048


class ShortUrl(Base):
    __tablename__ = "short_urls"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    short_code: Mapped[str] = mapped_column(String(10), unique=True, index=True, nullable=False)
    original_url: Mapped[str] = mapped_column(String(MAX_URL_LENGTH), index=True, nullable=False)
    shortened_url: Mapped[str] = mapped_column(String(MAX_URL_LENGTH), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    def __repr__(self) -> str:
        return f"<ShortUrl(id={self.id}, short_code='{self.short_code}')>"
