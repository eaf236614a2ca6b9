"""Pydantic schemas for request/response validation in ShortiFy.

Schema Hierarchy
=================
::
    ShortifyRequest (Input)
    └─ original_url: str (1..2048 chars)

    ShortifyResponse (Output)
    ├─ short_code: str
    ├─ short_url: str
    └─ original_url: str

    UnshortifyResponse (Output)
    ├─ original_url: str
    ├─ short_code: str
    └─ short_url: str

    CachedShortUrl (Redis payload)
    ├─ original_url: str
    └─ shortened_url: str

    ProblemDetails (Error output)
    ├─ type / title / status / detail

Key Behaviours
===============
- The request schema only enforces presence and length; URL syntax and
  scheme are checked by UrlRegistry so every caller gets the same rules.
- CachedShortUrl is serialized as JSON with model_dump_json().
"""

import datetime

from pydantic import BaseModel, Field

from shortify.enums import HealthStatus
from shortify.models import MAX_URL_LENGTH

__all__ = [
    "ShortifyRequest",
    "ShortifyResponse",
    "UnshortifyResponse",
    "CachedShortUrl",
    "ProblemDetails",
    "HealthResponse",
    "ShortUrlRecord",
]


class ShortifyRequest(BaseModel):
    original_url: str = Field(..., min_length=1, max_length=MAX_URL_LENGTH)


class ShortifyResponse(BaseModel):
    short_code: str
    short_url: str
    original_url: str


class UnshortifyResponse(BaseModel):
    original_url: str
    short_code: str
    short_url: str


class CachedShortUrl(BaseModel):
    """Redis cache payload for a short code."""

    original_url: str
    shortened_url: str


class ShortUrlRecord(BaseModel):
    """Read-only view of a stored mapping, detached from the ORM session."""

    id: int
    short_code: str
    original_url: str
    shortened_url: str
    created_at: datetime.datetime | None = None

    model_config = {"from_attributes": True, "frozen": True}


class ProblemDetails(BaseModel):
    type: str = "about:blank"
    title: str
    status: int
    detail: str | None = None


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus | None = None
    cache: HealthStatus | None = None
