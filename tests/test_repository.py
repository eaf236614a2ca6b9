"""Unit tests for the SQLAlchemy-backed repository against a mocked session."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from shortify.exceptions import ShortCodeCollisionError, StoreUnavailableError
from shortify.models import ShortUrl
from shortify.repository import ShortUrlRepository


@pytest.fixture
def mock_database() -> AsyncMock:
    db = AsyncMock(spec=AsyncSession)
    db.execute = AsyncMock()
    db.add = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    return db


@pytest.fixture
def store(mock_database, logger) -> ShortUrlRepository:
    return ShortUrlRepository(mock_database, logger)


@pytest.fixture
def sample_row() -> ShortUrl:
    return ShortUrl(
        id=1,
        short_code="aBc1Xy",
        original_url="https://example.com/a",
        shortened_url="https://short.fy/aBc1Xy",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def _result(value) -> MagicMock:
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


@pytest.mark.asyncio
async def test_get_by_short_code_found(store, mock_database, sample_row) -> None:
    mock_database.execute.return_value = _result(sample_row)

    record = await store.get_by_short_code("aBc1Xy")

    assert record.id == 1
    assert record.original_url == "https://example.com/a"
    assert record.shortened_url == "https://short.fy/aBc1Xy"


@pytest.mark.asyncio
async def test_get_by_original_url_missing(store, mock_database) -> None:
    mock_database.execute.return_value = _result(None)
    assert await store.get_by_original_url("https://example.com/b") is None


@pytest.mark.asyncio
@pytest.mark.parametrize("value,expected", [(True, True), (False, False)])
async def test_short_code_exists(store, mock_database, value, expected) -> None:
    mock_database.execute.return_value = _result(value)
    assert await store.short_code_exists("aBc1Xy") is expected


@pytest.mark.asyncio
async def test_query_failure_raises_store_unavailable(store, mock_database) -> None:
    mock_database.execute.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

    with pytest.raises(StoreUnavailableError):
        await store.get_by_short_code("aBc1Xy")


@pytest.mark.asyncio
async def test_add_commits_and_refreshes(store, mock_database) -> None:
    def mock_refresh(obj):
        obj.id = 7
        obj.created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)

    mock_database.refresh.side_effect = mock_refresh

    record = await store.add("aBc1Xy", "https://example.com/a", "https://short.fy/aBc1Xy")

    assert record.id == 7
    assert record.short_code == "aBc1Xy"
    mock_database.add.assert_called_once()
    mock_database.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_add_unique_violation_is_collision(store, mock_database) -> None:
    mock_database.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

    with pytest.raises(ShortCodeCollisionError) as exc_info:
        await store.add("aBc1Xy", "https://example.com/a", "https://short.fy/aBc1Xy")

    assert exc_info.value.short_code == "aBc1Xy"
    mock_database.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_add_other_failure_is_store_unavailable(store, mock_database) -> None:
    mock_database.commit.side_effect = OperationalError("INSERT", {}, Exception("server closed"))

    with pytest.raises(StoreUnavailableError):
        await store.add("aBc1Xy", "https://example.com/a", "https://short.fy/aBc1Xy")

    mock_database.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_add_refresh_failure_after_commit_keeps_row(store, mock_database) -> None:
    mock_database.add.side_effect = lambda obj: setattr(obj, "id", 7)
    mock_database.refresh.side_effect = OperationalError("SELECT", {}, Exception("server closed"))

    record = await store.add("aBc1Xy", "https://example.com/a", "https://short.fy/aBc1Xy")

    assert record.id == 7
    assert record.short_code == "aBc1Xy"
    assert record.created_at is None
    mock_database.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_add_cancelled_during_commit_propagates(store, mock_database) -> None:
    commit_started = asyncio.Event()
    never_set = asyncio.Event()

    async def blocked_commit():
        commit_started.set()
        await never_set.wait()

    mock_database.commit.side_effect = blocked_commit

    task = asyncio.create_task(store.add("aBc1Xy", "https://example.com/a", "https://short.fy/aBc1Xy"))
    await commit_started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    mock_database.refresh.assert_not_awaited()
