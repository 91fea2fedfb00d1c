# =============================================================================
# app/dependencies.py - Shared Dependencies
# =============================================================================
# FastAPI dependency injection for shared resources.
# These are injected into route handlers using Depends():
# - Redis-backed rate limiter and CSRF token store
# - Platform registry (built once at startup, stored on app.state)
# - External API clients (Shopify, PayPal, OAuth providers)
#
# Tests replace any of these via app.dependency_overrides.
# =============================================================================

import logging
from functools import lru_cache
from typing import Annotated, Callable, Optional

import redis
from fastapi import Depends, Request

from app.auth import AuthUser, get_current_user, get_current_user_optional
from app.config import settings
from app.exceptions import CSRFError, RateLimitExceededError
from lib.csrf import CSRFTokenStore
from lib.oauth_client import OAuthClient
from lib.paypal import PayPalVerifier
from lib.platforms import PlatformRegistry, build_platform_registry
from lib.rate_limit import RateLimiter, rate_limit_key
from lib.redis_client import RedisClient
from lib.shopify_admin import ShopifyAdminClient

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"
CSRF_FORM_FIELD = "csrf_token"


# =============================================================================
# Redis-backed guards
# =============================================================================

def get_redis() -> redis.Redis:
    """Shared Redis connection."""
    return RedisClient.get_client()


def get_rate_limiter(client: redis.Redis = Depends(get_redis)) -> RateLimiter:
    return RateLimiter(client)


def get_csrf_store(client: redis.Redis = Depends(get_redis)) -> CSRFTokenStore:
    return CSRFTokenStore(client, settings.SESSION_SECRET, settings.CSRF_TOKEN_TTL_SECONDS)


def client_ip(request: Request) -> str:
    """
    Best-effort client IP.

    Order: cf-connecting-ip, x-real-ip, first x-forwarded-for entry,
    then the socket peer.
    """
    headers = request.headers
    for name in ("cf-connecting-ip", "x-real-ip"):
        value = (headers.get(name) or "").strip()
        if value:
            return value
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"


def rate_limit(scope: str, limit_setting: str, authenticated: bool = True) -> Callable:
    """
    Build a dependency enforcing a fixed-window limit keyed by user + IP.

    Args:
        scope: Key namespace, e.g. "listing-create"
        limit_setting: Name of the Settings field holding the limit
        authenticated: When False the user is optional (anonymous callers
            are keyed by IP only)

    Usage:
        @router.post("", dependencies=[Depends(rate_limit("listing-create", "RATE_LIMIT_LISTING_CREATE"))])
    """
    user_dependency = get_current_user if authenticated else get_current_user_optional

    async def dependency(
        request: Request,
        user: Optional[AuthUser] = Depends(user_dependency),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        key = rate_limit_key(scope, user.session_key if user else "anonymous", client_ip(request))
        result = limiter.hit(key, getattr(settings, limit_setting), settings.RATE_LIMIT_WINDOW_SECONDS)
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {scope}")
            raise RateLimitExceededError(result.retry_after)

    return dependency


async def require_csrf(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    store: CSRFTokenStore = Depends(get_csrf_store),
) -> None:
    """
    Validate and consume the request's CSRF token.

    The token is read from the X-CSRF-Token header or the csrf_token form
    field. A token works once; replays fail with the same generic error.
    """
    token = request.headers.get(CSRF_HEADER)
    if not token:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
            form = await request.form()
            value = form.get(CSRF_FORM_FIELD)
            token = value if isinstance(value, str) else None

    if not store.consume(user.session_key, token):
        logger.warning(f"CSRF validation failed for user {user.id} on {request.url.path}")
        raise CSRFError()


# =============================================================================
# Configuration objects
# =============================================================================

def get_platforms(request: Request) -> PlatformRegistry:
    """The registry built in the app lifespan (falls back to building one)."""
    platforms = getattr(request.app.state, "platforms", None)
    if platforms is None:
        platforms = build_platform_registry(settings)
        request.app.state.platforms = platforms
    return platforms


# =============================================================================
# External API clients
# =============================================================================

@lru_cache
def _shopify_client() -> ShopifyAdminClient:
    return ShopifyAdminClient.from_settings(settings)


def get_shopify_client() -> Optional[ShopifyAdminClient]:
    """Shopify client, or None when commerce sync is not configured."""
    if not settings.shopify_configured:
        return None
    return _shopify_client()


def get_paypal_verifier() -> Optional[PayPalVerifier]:
    """PayPal verifier, or None when API credentials are missing."""
    if not (settings.PAYPAL_API_USERNAME and settings.PAYPAL_API_PASSWORD):
        return None
    return PayPalVerifier.from_settings(settings)


@lru_cache
def get_oauth_client() -> OAuthClient:
    return OAuthClient()


# Type aliases for dependency injection
PlatformsDep = Annotated[PlatformRegistry, Depends(get_platforms)]
ShopifyDep = Annotated[Optional[ShopifyAdminClient], Depends(get_shopify_client)]
PayPalDep = Annotated[Optional[PayPalVerifier], Depends(get_paypal_verifier)]
OAuthClientDep = Annotated[OAuthClient, Depends(get_oauth_client)]
