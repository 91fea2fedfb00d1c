# =============================================================================
# app/routers/health.py - Health Check Endpoints
# =============================================================================
# Liveness, readiness and a summary of which integrations are configured.
# Readiness covers the three backends every write path needs: the database,
# the listing photo bucket, and Redis (CSRF tokens and rate limits).
# =============================================================================

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from app.config import settings
from app.dependencies import PlatformsDep

router = APIRouter()

API_VERSION = "1.0.0"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(e: Exception) -> str:
    # Short and single-line; full errors go to the logs
    return f"unhealthy: {str(e).splitlines()[0][:50] if str(e) else type(e).__name__}"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    environment: str
    version: str


class ChecksResponse(BaseModel):
    database: str
    storage: str
    redis: str


class IntegrationsResponse(BaseModel):
    """Optional third parties; missing ones disable a feature, not the API."""
    shopify: bool
    paypal: bool
    oauth_platforms: list[str]


class ReadinessResponse(BaseModel):
    status: str
    checks: ChecksResponse
    integrations: IntegrationsResponse
    timestamp: str


class LivenessResponse(BaseModel):
    status: str
    timestamp: str


# =============================================================================
# Endpoints
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic status for load balancers."""
    return HealthResponse(
        status="healthy",
        timestamp=_now(),
        environment=settings.ENVIRONMENT,
        version=API_VERSION,
    )


@router.get("/health/ready", response_model=ReadinessResponse)
def readiness_check(platforms: PlatformsDep):
    """
    Readiness check.

    `status` is "ready" only when the database, listing photo storage and
    Redis all respond. Integrations are reported but never make the
    service unready.
    """
    from core.services.storage_service import StorageService
    from lib.redis_client import RedisClient
    from lib.supabase_client import SupabaseClient

    checks = ChecksResponse(database="unknown", storage="unknown", redis="unknown")

    try:
        SupabaseClient.get_client().table("creators").select("id").limit(1).execute()
        checks.database = "healthy"
    except Exception as e:
        checks.database = _failure(e)

    checks.storage = "healthy" if StorageService.check_bucket() else "unhealthy"

    try:
        RedisClient.get_client().ping()
        checks.redis = "healthy"
    except Exception as e:
        checks.redis = _failure(e)

    integrations = IntegrationsResponse(
        shopify=settings.shopify_configured,
        paypal=bool(settings.PAYPAL_API_USERNAME and settings.PAYPAL_API_PASSWORD),
        oauth_platforms=[p.key for p in platforms if p.oauth.configured],
    )

    ready = all(value == "healthy" for value in (checks.database, checks.storage, checks.redis))
    return ReadinessResponse(
        status="ready" if ready else "degraded",
        checks=checks,
        integrations=integrations,
        timestamp=_now(),
    )


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check():
    return LivenessResponse(status="alive", timestamp=_now())
