"""Exceptions raised by the ShortiFy core and its storage adapters.

Every exception that may reach the HTTP layer derives from ``ShortifyError``
and carries a stable ``title`` and ``status_code`` so the transport can render
a problem response without inspecting internal detail.

Classes:
    ShortifyError:
        Base class for all service errors.

    InvalidUrlError:
        The submitted URL is not an absolute URL (400).

    InvalidSchemeError:
        The URL parsed but its scheme is not http/https (400).

    CodeGenerationFailedError:
        No free short code could be allocated within the attempt bound (500).

    ShortCodeNotFoundError:
        No mapping exists for the requested short code (404).

    StoreUnavailableError:
        The durable store failed for a reason other than a uniqueness conflict (503).

    AllocationExhaustedError:
        Internal signal from CodeAllocator; translated by UrlRegistry.

    ShortCodeCollisionError:
        Internal signal from ShortUrlRepository when the unique index on
        short_code rejects an insert; translated by UrlRegistry.

Example:
    >>> from shortify.exceptions import ShortCodeNotFoundError
    >>> raise ShortCodeNotFoundError("zzzzzz")
    Traceback (most recent call last):
        ...
    shortify.exceptions.ShortCodeNotFoundError: No URL found for short code 'zzzzzz'.
"""

__all__ = [
    "ShortifyError",
    "InvalidUrlError",
    "InvalidSchemeError",
    "CodeGenerationFailedError",
    "ShortCodeNotFoundError",
    "StoreUnavailableError",
    "AllocationExhaustedError",
    "ShortCodeCollisionError",
]


class ShortifyError(Exception):
    """Generic base class for ShortiFy errors."""

    title: str = "Internal Server Error"
    status_code: int = 500


class InvalidUrlError(ShortifyError):
    """Exception raised when the submitted URL is not a valid absolute URL."""

    title = "Invalid URL"
    status_code = 400

    def __init__(self, detail: str = "The provided URL is not a valid absolute URL.") -> None:
        super().__init__(detail)


class InvalidSchemeError(InvalidUrlError):
    """Exception raised when the URL scheme is neither http nor https."""

    title = "Invalid URL Scheme"

    def __init__(self, scheme: str) -> None:
        self.scheme = scheme
        super().__init__("Only HTTP and HTTPS URLs are supported.")


class CodeGenerationFailedError(ShortifyError):
    """Exception raised when allocation gives up after the configured attempts."""

    title = "Short Code Generation Failed"
    status_code = 500

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__("Unable to generate a unique short code. Please try again.")


class ShortCodeNotFoundError(ShortifyError):
    """Exception raised when no mapping exists for a short code."""

    title = "Short Code Not Found"
    status_code = 404

    def __init__(self, short_code: str) -> None:
        self.short_code = short_code
        super().__init__(f"No URL found for short code '{short_code}'.")


class StoreUnavailableError(ShortifyError):
    """Exception raised when the durable store cannot serve a query or insert."""

    title = "Store Unavailable"
    status_code = 503

    def __init__(self, detail: str = "The URL store is temporarily unavailable.") -> None:
        super().__init__(detail)


class AllocationExhaustedError(Exception):
    """Exception raised by CodeAllocator when every candidate was already taken."""

    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(f"No free short code after {attempts} attempts")


class ShortCodeCollisionError(Exception):
    """Exception raised when the store's unique index rejects a short code."""

    def __init__(self, short_code: str) -> None:
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' collision detected")
