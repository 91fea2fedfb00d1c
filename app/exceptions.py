# =============================================================================
# app/exceptions.py - Custom Exceptions and Handlers
# =============================================================================
# Centralized exception handling for the API.
#
# Error categories:
# - Authentication / authorization / CSRF
# - Validation (optionally with per-field messages)
# - Rate limiting (with Retry-After)
# - Upstream dependencies (Supabase, Shopify, PayPal, OAuth providers)
# - Not found / state conflicts
#
# Validation and auth errors carry specific, safe messages. Upstream and
# internal errors are logged in full and surfaced generically.
# =============================================================================

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class WornVaultException(Exception):
    """
    Base exception for the WornVault API.

    All custom exceptions inherit from this class.
    Provides structured error responses with actionable suggestions.
    """

    def __init__(
        self,
        message: str,
        code: str = "WORNVAULT_ERROR",
        status_code: int = 500,
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.suggestion = suggestion
        self.details = details or {}
        self.headers = headers

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response dict."""
        result = {
            "detail": self.message,
            "code": self.code,
        }
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.details:
            result["details"] = self.details
        return result


# =============================================================================
# Auth / CSRF Exceptions
# =============================================================================

class AuthenticationError(WornVaultException):
    """Raised when a request carries no valid credentials."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            code="UNAUTHENTICATED",
            status_code=401,
            suggestion="Sign in and retry with a valid access token",
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(WornVaultException):
    """Raised when an authenticated user lacks the required role."""

    def __init__(self, message: str = "You do not have access to this resource"):
        super().__init__(
            message=message,
            code="FORBIDDEN",
            status_code=403,
        )


class CSRFError(WornVaultException):
    """
    Raised for a missing, mismatched or already-used CSRF token.

    The message is deliberately the same in every case.
    """

    def __init__(self):
        super().__init__(
            message="Invalid security token. Please refresh the page and try again.",
            code="CSRF_INVALID",
            status_code=403,
            suggestion="Fetch a new token from GET /api/v1/csrf",
        )


# =============================================================================
# Validation Exceptions
# =============================================================================

class ValidationFailedError(WornVaultException):
    """
    Raised when request input fails validation.

    `field_errors` maps form field names to user-facing messages so the
    client can show every problem at once.
    """

    def __init__(
        self,
        message: str = "Please fix the errors below",
        field_errors: dict[str, str] | None = None,
    ):
        self.field_errors = field_errors or {}
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            details={"field_errors": self.field_errors} if self.field_errors else None,
        )


class InvalidImageError(WornVaultException):
    """Raised when an uploaded image fails content validation."""

    def __init__(self, message: str, filename: str | None = None):
        super().__init__(
            message=message,
            code="INVALID_IMAGE",
            status_code=400,
            suggestion="Upload a JPEG, PNG, GIF or WebP image under the size limit",
            details={"filename": filename} if filename else None,
        )


# =============================================================================
# Rate Limit Exceptions
# =============================================================================

class RateLimitExceededError(WornVaultException):
    """Raised when a caller exceeds the request limit for a window."""

    def __init__(self, retry_after: int):
        self.retry_after = max(int(retry_after), 1)
        super().__init__(
            message="Too many requests. Please wait a moment and try again.",
            code="RATE_LIMITED",
            status_code=429,
            suggestion=f"Retry after {self.retry_after} seconds",
            details={"retry_after": self.retry_after},
            headers={"Retry-After": str(self.retry_after)},
        )


# =============================================================================
# Resource Exceptions
# =============================================================================

class CreatorNotFoundError(WornVaultException):
    """Raised when the signed-in user has no creator profile, or a handle is unknown."""

    def __init__(self, identifier: str | None = None):
        super().__init__(
            message="Creator profile not found",
            code="CREATOR_NOT_FOUND",
            status_code=404,
            suggestion="Complete your creator profile first",
            details={"identifier": identifier} if identifier else None,
        )


class ListingNotFoundError(WornVaultException):
    """Raised when a listing doesn't exist or isn't owned by the caller."""

    def __init__(self, listing_id: str):
        super().__init__(
            message="Listing not found",
            code="LISTING_NOT_FOUND",
            status_code=404,
            details={"listing_id": listing_id},
        )


class ListingNotEditableError(WornVaultException):
    """Raised when editing a listing whose status no longer allows it."""

    def __init__(self, listing_id: str, status: str):
        super().__init__(
            message="This listing cannot be edited in its current status",
            code="LISTING_NOT_EDITABLE",
            status_code=403,
            suggestion="Only draft and pending_approval listings can be edited",
            details={"listing_id": listing_id, "status": status},
        )


class PayoutNotFoundError(WornVaultException):
    """Raised when a payout id doesn't exist or is not pending."""

    def __init__(self, payout_id: str):
        super().__init__(
            message="Payout not found or already completed",
            code="PAYOUT_NOT_FOUND",
            status_code=404,
            details={"payout_id": payout_id},
        )


class OrderNotFoundError(WornVaultException):
    """Raised when an order doesn't exist or has no items from the caller."""

    def __init__(self, order_id: str):
        super().__init__(
            message="Order not found",
            code="ORDER_NOT_FOUND",
            status_code=404,
            details={"order_id": order_id},
        )


class WebhookSignatureError(WornVaultException):
    """Raised when a webhook delivery's HMAC signature doesn't verify."""

    def __init__(self):
        super().__init__(
            message="Invalid webhook signature",
            code="WEBHOOK_SIGNATURE_INVALID",
            status_code=401,
        )


# =============================================================================
# Upload / Upstream Exceptions
# =============================================================================

class StorageUploadError(WornVaultException):
    """Raised when file upload to storage fails."""

    def __init__(self, error: str):
        super().__init__(
            message="Failed to upload file to storage",
            code="STORAGE_UPLOAD_ERROR",
            status_code=502,
            suggestion="Try again later or contact support if the issue persists",
            details={"error": error},
        )


class PhotoUploadFailedError(WornVaultException):
    """Raised when none of a listing's photos could be stored."""

    def __init__(self, errors: list[str]):
        super().__init__(
            message="Failed to upload any photos. Please try again.",
            code="PHOTO_UPLOAD_FAILED",
            status_code=502,
            details={"photo_errors": errors},
        )


class UpstreamServiceError(WornVaultException):
    """Raised when a dependency (database, commerce, OAuth provider) fails."""

    def __init__(self, service: str, error: str | None = None):
        if error:
            logger.error(f"Upstream failure in {service}: {error}")
        super().__init__(
            message=GENERIC_ERROR_MESSAGE,
            code="UPSTREAM_ERROR",
            status_code=502,
            details={"service": service},
        )


class OAuthStateError(WornVaultException):
    """Raised when an OAuth state token is missing, expired or already used."""

    def __init__(self, reason: str = "invalid_state"):
        self.reason = reason
        super().__init__(
            message="Invalid or expired authorization request",
            code="OAUTH_STATE_INVALID",
            status_code=400,
            details={"reason": reason},
        )


# =============================================================================
# Safe Error Relay
# =============================================================================

def safe_client_error(exc: Exception) -> ValidationFailedError | WornVaultException:
    """
    Translate an internal error into something safe to show a user.

    Only a fixed set of known messages is relayed; everything else becomes a
    generic error so database details and stack traces never leak.
    """
    if isinstance(exc, WornVaultException):
        return exc

    text = str(exc).lower()
    if "username" in text and "taken" in text:
        return ValidationFailedError(
            field_errors={"username": "Username is already taken. Please choose a different username."}
        )
    if "display name" in text and "required" in text:
        return ValidationFailedError(field_errors={"display_name": "Display name is required"})
    if "username" in text and "required" in text:
        return ValidationFailedError(field_errors={"username": "Username is required"})
    if "validation" in text or "invalid" in text:
        return ValidationFailedError(message="Validation error. Please check your input and try again.")

    return WornVaultException(message=GENERIC_ERROR_MESSAGE, code="INTERNAL_ERROR", status_code=500)


# =============================================================================
# Exception Handlers
# =============================================================================

async def wornvault_exception_handler(
    request: Request,
    exc: WornVaultException
) -> JSONResponse:
    """
    Handle WornVault custom exceptions.

    Returns structured JSON error response.
    """
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.details}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """
    Handle request validation errors raised by FastAPI.

    Field names are reported, raw input values are not echoed back.
    """
    fields: dict[str, str] = {}
    for error in getattr(exc, "errors", lambda: [])():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        if location:
            fields[".".join(location)] = error.get("msg", "Invalid value")
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": {"field_errors": fields},
        }
    )
