"""Unit tests for short code generation and bounded allocation."""

from unittest.mock import AsyncMock, patch

import pytest

from shortify.allocator import ALPHABET, CodeAllocator
from shortify.exceptions import AllocationExhaustedError


def test_alphabet_is_base62() -> None:
    assert len(ALPHABET) == 62
    assert len(set(ALPHABET)) == 62
    assert ALPHABET.isalnum()


def test_generate_default_length() -> None:
    code = CodeAllocator().generate()
    assert len(code) == 6


def test_generate_custom_length() -> None:
    allocator = CodeAllocator(length=8)
    assert len(allocator.generate()) == 8
    assert len(allocator.generate(length=3)) == 3


def test_generate_only_alphanumeric() -> None:
    allocator = CodeAllocator()
    for _ in range(200):
        assert all(c in ALPHABET for c in allocator.generate())


def test_generate_uniqueness() -> None:
    allocator = CodeAllocator()
    codes = {allocator.generate() for _ in range(1000)}
    # 62^6 possibilities; 1000 draws should not repeat
    assert len(codes) == 1000


@pytest.mark.parametrize("length", [0, -1])
def test_generate_rejects_non_positive_length(length: int) -> None:
    with pytest.raises(ValueError):
        CodeAllocator().generate(length=length)


def test_constructor_rejects_bad_policy() -> None:
    with pytest.raises(ValueError):
        CodeAllocator(length=0)
    with pytest.raises(ValueError):
        CodeAllocator(max_attempts=0)


@pytest.mark.asyncio
async def test_allocate_unique_returns_first_free_code() -> None:
    check_exists = AsyncMock(return_value=False)
    code = await CodeAllocator().allocate_unique(check_exists)

    check_exists.assert_awaited_once_with(code)


@pytest.mark.asyncio
async def test_allocate_unique_retries_on_collision() -> None:
    check_exists = AsyncMock(side_effect=[True, True, False])
    allocator = CodeAllocator()

    with patch.object(allocator, "generate", side_effect=["taken1", "taken2", "freeee"]):
        code = await allocator.allocate_unique(check_exists)

    assert code == "freeee"
    assert check_exists.await_count == 3


@pytest.mark.asyncio
async def test_allocate_unique_exhausts_after_max_attempts() -> None:
    check_exists = AsyncMock(return_value=True)

    with pytest.raises(AllocationExhaustedError) as exc_info:
        await CodeAllocator(max_attempts=10).allocate_unique(check_exists)

    assert exc_info.value.attempts == 10
    assert check_exists.await_count == 10


@pytest.mark.asyncio
async def test_allocate_unique_honours_override() -> None:
    check_exists = AsyncMock(return_value=True)

    with pytest.raises(AllocationExhaustedError):
        await CodeAllocator(max_attempts=10).allocate_unique(check_exists, max_attempts=3)

    assert check_exists.await_count == 3
