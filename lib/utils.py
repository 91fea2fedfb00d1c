# =============================================================================
# lib/utils.py - Shared Utilities
# =============================================================================
# Common utilities used across the application:
# - UUID helpers
# - ApplicationError base class for lib-level errors
# - retry_with_backoff for the few writes that must not be lost
# =============================================================================

import logging
import time
from typing import Any, Callable, TypeVar
from uuid import UUID

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# UUID Utilities
# =============================================================================

def normalize_uuid(value: str | UUID) -> str:
    """
    Normalize a UUID to string format.

    Example:
        listing_id = normalize_uuid(uuid_obj)  # "550e8400-..."
        listing_id = normalize_uuid("550e8400-...")  # "550e8400-..."
    """
    return str(value) if isinstance(value, UUID) else value


def is_valid_uuid(value: Any) -> bool:
    """Check whether a value parses as a UUID (any version)."""
    if isinstance(value, UUID):
        return True
    if not isinstance(value, str):
        return False
    try:
        UUID(value)
        return True
    except ValueError:
        return False


# =============================================================================
# Base Error Class
# =============================================================================

class ApplicationError(Exception):
    """
    Base error class for application-specific errors.

    Attributes:
        code: Error code for categorization
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
        details: Additional context for debugging

    Example:
        class ShopifyAdminError(ApplicationError):
            def __init__(self, message: str, **kwargs):
                super().__init__(message, code="SHOPIFY_ERROR", **kwargs)
    """

    def __init__(
        self,
        message: str,
        code: str = "APPLICATION_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f"\n  Suggestion: {self.suggestion}"
        return result

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "details": self.details,
        }


# =============================================================================
# Retry
# =============================================================================

def retry_with_backoff(
    operation: Callable[[], T],
    attempts: int = 3,
    base_delay: float = 0.5,
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run `operation` up to `attempts` times, doubling the delay between tries.

    The last exception is re-raised if every attempt fails. Pass a no-op
    `sleep` in tests to skip the waits.

    Example:
        retry_with_backoff(lambda: link_product(listing_id, product_id), attempts=3)
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    last_error: Exception | None = None
    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except Exception as e:
            last_error = e
            if attempt == attempts:
                break
            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(
                f"{description} failed (attempt {attempt}/{attempts}): {e}; retrying in {delay:.1f}s"
            )
            sleep(delay)

    logger.error(f"{description} failed after {attempts} attempts: {last_error}")
    raise last_error
