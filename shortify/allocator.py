"""Short code generation and collision-checked allocation.

Flow Diagram — allocate_unique()
================================
::
    ┌─────────────┐
    │ attempt = 1 │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ generate()   │◄──────────────┐
    └──────┬──────┘               │
           ▼                      │
    ┌─────────────┐   YES   ┌─────┴──────┐
    │ check_exists│────────►│ attempt += 1│
    │ (candidate) │         │ < max?      │
    └──────┬──────┘         └─────┬──────┘
        NO │                      │ NO
           ▼                      ▼
    ┌─────────────┐         ┌──────────────┐
    │ Return code │         │ Allocation-  │
    └─────────────┘         │ Exhausted    │
                            └──────────────┘

Key Behaviours
===============
- Codes are drawn with nanoid, which reads from os.urandom; there is no
  seeding hook and output is not reproducible.
- 62^6 ≈ 5.68e10 codes at the default length, so the bounded retry almost
  never runs past the first attempt.
- Exhaustion is reported once; retrying the whole request is up to the caller.
"""

import logging
import string
from collections.abc import Awaitable, Callable
from typing import Optional

from nanoid import generate

from shortify.exceptions import AllocationExhaustedError

__all__ = ["ALPHABET", "DEFAULT_CODE_LENGTH", "DEFAULT_MAX_ATTEMPTS", "CodeAllocator"]

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits
DEFAULT_CODE_LENGTH = 6
DEFAULT_MAX_ATTEMPTS = 10

ExistsCheck = Callable[[str], Awaitable[bool]]


class CodeAllocator:
    """Produces short codes not already present in the durable store."""

    def __init__(
        self,
        length: int = DEFAULT_CODE_LENGTH,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        logger: Optional[logging.Logger | logging.LoggerAdapter] = None,
    ):
        if length <= 0:
            raise ValueError(f"length must be a positive integer, got {length!r}")
        if max_attempts <= 0:
            raise ValueError(f"max_attempts must be a positive integer, got {max_attempts!r}")
        self._length = length
        self._max_attempts = max_attempts
        self._logger = logger or logging.getLogger(__name__)

    @property
    def length(self) -> int:
        return self._length

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def generate(self, length: Optional[int] = None) -> str:
        """Return ``length`` characters drawn uniformly from ALPHABET."""
        size = self._length if length is None else length
        if not isinstance(size, int) or size <= 0:
            raise ValueError(f"length must be a positive integer, got {size!r}")
        return generate(ALPHABET, size)

    async def allocate_unique(self, check_exists: ExistsCheck, max_attempts: Optional[int] = None) -> str:
        """Generate candidates until ``check_exists`` reports one as free.

        Args:
            check_exists: Awaitable point lookup against the durable store.
            max_attempts: Override of the configured attempt bound.

        Returns:
            str: A code that was not in use when checked.

        Raises:
            AllocationExhaustedError: Every candidate was already taken.
        """
        limit = self._max_attempts if max_attempts is None else max_attempts
        for attempt in range(1, limit + 1):
            code = self.generate()
            if not await check_exists(code):
                return code
            self._logger.debug(f"Short code collision detected: {code}, attempt {attempt}")

        self._logger.error(f"Failed to generate unique short code after {limit} attempts")
        raise AllocationExhaustedError(limit)
