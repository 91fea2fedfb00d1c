# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the WornVault marketplace API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import (
    GENERIC_ERROR_MESSAGE,
    WornVaultException,
    validation_exception_handler,
    wornvault_exception_handler,
)
from app.routers import admin, creators, csrf, health, listings, orders, payouts, social_links, webhooks
from app.routers import settings as settings_routes
from app.auth import routes as auth_routes
from lib.platforms import build_platform_registry

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    - Startup: build the social platform registry from configuration
    - Shutdown: log only; clients are created lazily and hold no state
      that needs flushing
    """
    logger.info(f"Starting WornVault API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")

    app.state.platforms = build_platform_registry(settings)
    configured = [p.key for p in app.state.platforms if p.oauth.configured]
    logger.info(f"OAuth verification available for: {configured or 'none'}")
    if not settings.shopify_configured:
        logger.warning("Shopify is not configured; listings will not sync to the store")

    yield

    logger.info("Shutting down WornVault API")


# Create FastAPI application
app = FastAPI(
    title="WornVault API",
    description="""
## WornVault Creator Marketplace API

Creators submit pre-owned items for sale; admins approve them and approved
listings are published to the Shopify storefront.

### Creator Flow

1. **Sign in** - Supabase Auth issues a JWT; `GET /api/v1/auth/me` creates the creator profile
2. **Fetch a CSRF token** - `GET /api/v1/csrf` before every form submission
3. **Submit a listing** - multipart form with 1-10 photos
4. **Verify socials** - link Instagram, TikTok, X and others via OAuth
5. **Get paid** - set a PayPal email and track payouts

### Guarantees

- Listing creation is all-or-nothing: the listing row and its photos are
  removed again if the photo step fails completely
- Store sync failures never lose a listing; they are queued for retry
- CSRF tokens are single use; write endpoints are rate limited

### Quick Start

```bash
# 1. Get a CSRF token
curl -H "Authorization: Bearer $TOKEN" http://localhost:8000/api/v1/csrf

# 2. Submit a listing
curl -X POST http://localhost:8000/api/v1/creator/listings \\
  -H "Authorization: Bearer $TOKEN" \\
  -F "csrf_token=$CSRF" -F "title=Vintage denim jacket" \\
  -F "story=Worn to every show of the 2019 tour." \\
  -F "category=Outerwear" -F "condition=Lightly worn" -F "price=150" \\
  -F "photos=@front.jpg" -F "photos=@back.jpg"
```
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "Auth",
            "description": "Current user and token verification",
        },
        {
            "name": "Security",
            "description": "CSRF token issuance",
        },
        {
            "name": "Listings",
            "description": "Creator listing submission and edits",
        },
        {
            "name": "Social Links",
            "description": "Social profile links and OAuth verification",
        },
        {
            "name": "Settings",
            "description": "Creator profile and payout settings",
        },
        {
            "name": "Payouts",
            "description": "Creator sales summary and payout history",
        },
        {
            "name": "Admin",
            "description": "Moderation, creators, payouts and the sync queue",
        },
        {
            "name": "Creators",
            "description": "Public creator storefronts",
        },
        {
            "name": "Health",
            "description": "API health and readiness checks",
        },
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(WornVaultException)
async def handle_wornvault_exception(request: Request, exc: WornVaultException):
    """Handle custom WornVault exceptions."""
    return await wornvault_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Handle malformed request input."""
    return await validation_exception_handler(request, exc)


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": GENERIC_ERROR_MESSAGE,
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints
app.include_router(
    auth_routes.router,
    prefix="/api/v1/auth",
    tags=["Auth"]
)

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

# CSRF token endpoint
app.include_router(
    csrf.router,
    prefix="/api/v1",
    tags=["Security"]
)

# Creator listing endpoints
app.include_router(
    listings.router,
    prefix="/api/v1/creator/listings",
    tags=["Listings"]
)

# Social link endpoints
app.include_router(
    social_links.router,
    prefix="/api/v1/creator/social-links",
    tags=["Social Links"]
)

# Creator settings endpoints
app.include_router(
    settings_routes.router,
    prefix="/api/v1/creator/settings",
    tags=["Settings"]
)

# Creator payout endpoints
app.include_router(
    payouts.router,
    prefix="/api/v1/creator/payouts",
    tags=["Payouts"]
)

# Creator order endpoints
app.include_router(
    orders.router,
    prefix="/api/v1/creator/orders",
    tags=["Orders"]
)

# Admin endpoints
app.include_router(
    admin.router,
    prefix="/api/v1/admin",
    tags=["Admin"]
)

# Public storefront endpoints
app.include_router(
    creators.router,
    prefix="/api/v1/creators",
    tags=["Creators"]
)

# Shopify webhook endpoints
app.include_router(
    webhooks.router,
    prefix="/api/v1/webhooks",
    tags=["Webhooks"]
)


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "WornVault API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
