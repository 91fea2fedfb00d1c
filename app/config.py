# =============================================================================
# app/config.py - Application Settings
# =============================================================================
# This module loads configuration from environment variables using pydantic-settings.
# It provides a single Settings class with all configuration values.
#
# Usage:
#   from app.config import settings
#   print(settings.SUPABASE_URL)
#
# Environment variables are loaded from:
# 1. System environment variables
# 2. .env file in project root (if exists)
# =============================================================================

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are accessed via the global `settings` instance.
    Optional integrations (Shopify, PayPal, OAuth platforms) default to
    empty strings and are treated as "not configured" when blank.
    """

    # -------------------------------------------------------------------------
    # Supabase Configuration
    # -------------------------------------------------------------------------
    # These are required - app won't start without them

    SUPABASE_URL: str = Field(
        ...,
        description="Supabase project URL (e.g., https://xxx.supabase.co)"
    )

    SUPABASE_ANON_KEY: str = Field(
        ...,
        description="Supabase anon/public API key"
    )

    SUPABASE_SERVICE_KEY: str = Field(
        ...,
        description="Supabase service_role key (bypasses RLS)"
    )

    SUPABASE_JWT_SECRET: str = Field(
        default="",
        description="Legacy HS256 JWT secret for verifying Supabase access tokens"
    )

    # -------------------------------------------------------------------------
    # Redis Configuration (rate limits, CSRF tokens, Celery)
    # -------------------------------------------------------------------------

    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL for counters, CSRF tokens and the Celery broker"
    )

    # -------------------------------------------------------------------------
    # Application Settings
    # -------------------------------------------------------------------------

    ENVIRONMENT: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Current environment"
    )

    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode (verbose logging, auto-reload)"
    )

    API_HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the API server to"
    )

    API_PORT: int = Field(
        default=8000,
        ge=1,
        le=65535,
        description="Port for the API server"
    )

    PUBLIC_APP_URL: str = Field(
        default="http://localhost:3000",
        description="Public origin of the storefront; used for OAuth redirect URIs"
    )

    # -------------------------------------------------------------------------
    # Security
    # -------------------------------------------------------------------------

    SESSION_SECRET: str = Field(
        default="dev-session-secret-change-in-production",
        min_length=16,
        description="Secret used to sign CSRF tokens"
    )

    CSRF_TOKEN_TTL_SECONDS: int = Field(
        default=3600,
        ge=60,
        description="How long an issued CSRF token stays valid"
    )

    CORS_ORIGINS: str = Field(
        default="http://localhost:3000",
        description="Allowed CORS origins (comma-separated)"
    )

    ADMIN_EMAILS: str = Field(
        default="",
        description="Admin account emails (comma-separated)"
    )

    # -------------------------------------------------------------------------
    # Upload Settings
    # -------------------------------------------------------------------------

    MAX_UPLOAD_SIZE_MB: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum image upload size in MB"
    )

    MAX_IMAGE_DIMENSION: int = Field(
        default=5000,
        ge=1,
        description="Maximum image width/height in pixels"
    )

    MAX_LISTING_PHOTOS: int = Field(
        default=10,
        ge=1,
        description="Maximum number of photos accepted per listing request"
    )

    # -------------------------------------------------------------------------
    # Rate Limits (requests per window)
    # -------------------------------------------------------------------------

    RATE_LIMIT_WINDOW_SECONDS: int = Field(
        default=60,
        ge=1,
        description="Fixed window length for all rate limits"
    )

    RATE_LIMIT_LISTING_CREATE: int = Field(default=5, ge=1)
    RATE_LIMIT_SOCIAL_LINKS: int = Field(default=10, ge=1)
    RATE_LIMIT_SETTINGS: int = Field(default=10, ge=1)
    RATE_LIMIT_ADMIN_ACTIONS: int = Field(default=20, ge=1)
    RATE_LIMIT_OAUTH_CALLBACK: int = Field(default=10, ge=1)
    RATE_LIMIT_WEBHOOK: int = Field(default=1000, ge=1)

    # -------------------------------------------------------------------------
    # Shopify Admin API
    # -------------------------------------------------------------------------

    SHOPIFY_ADMIN_CLIENT_ID: str = Field(default="")
    SHOPIFY_ADMIN_CLIENT_SECRET: str = Field(default="")
    PUBLIC_STORE_DOMAIN: str = Field(
        default="",
        description="Shopify store domain (e.g., wornvault.myshopify.com)"
    )
    SHOPIFY_API_VERSION: str = Field(default="2024-10")
    SHOPIFY_VENDOR: str = Field(
        default="WornVault",
        description="Vendor used when a creator has no display name"
    )
    SHOPIFY_WEBHOOK_SECRET: str = Field(
        default="",
        description="Shared secret used to sign Shopify webhook deliveries"
    )

    # -------------------------------------------------------------------------
    # Marketplace Economics
    # -------------------------------------------------------------------------

    PLATFORM_FEE_PERCENT: float = Field(
        default=10.0,
        description="Platform fee taken from gross sales (clamped to 0-100)"
    )

    # -------------------------------------------------------------------------
    # PayPal (AddressVerify NVP API)
    # -------------------------------------------------------------------------

    PAYPAL_API_USERNAME: str = Field(default="")
    PAYPAL_API_PASSWORD: str = Field(default="")
    PAYPAL_API_SIGNATURE: str = Field(default="")
    PAYPAL_SANDBOX: bool = Field(default=False)

    # -------------------------------------------------------------------------
    # Social OAuth Clients
    # -------------------------------------------------------------------------

    INSTAGRAM_CLIENT_ID: str = Field(default="")
    INSTAGRAM_CLIENT_SECRET: str = Field(default="")
    FACEBOOK_APP_ID: str = Field(default="")
    FACEBOOK_APP_SECRET: str = Field(default="")
    TIKTOK_CLIENT_KEY: str = Field(default="")
    TIKTOK_CLIENT_SECRET: str = Field(default="")
    X_CLIENT_ID: str = Field(default="")
    X_CLIENT_SECRET: str = Field(default="")
    GOOGLE_CLIENT_ID: str = Field(default="")
    GOOGLE_CLIENT_SECRET: str = Field(default="")
    TWITCH_CLIENT_ID: str = Field(default="")
    TWITCH_CLIENT_SECRET: str = Field(default="")

    OAUTH_STATE_TTL_MINUTES: int = Field(default=10, ge=1)

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # Computed Properties
    # -------------------------------------------------------------------------

    @property
    def cors_origins_list(self) -> list[str]:
        """
        Parse CORS_ORIGINS string into a list.

        Example: "http://localhost:3000, https://wornvault.com" -> ["http://localhost:3000", "https://wornvault.com"]
        """
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def admin_emails_list(self) -> list[str]:
        """Lower-cased admin emails."""
        return [email.strip().lower() for email in self.ADMIN_EMAILS.split(",") if email.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        """Convert MB to bytes for file size validation."""
        return self.MAX_UPLOAD_SIZE_MB * 1024 * 1024

    @property
    def shopify_configured(self) -> bool:
        """True when all Shopify Admin credentials are present."""
        return bool(
            self.SHOPIFY_ADMIN_CLIENT_ID
            and self.SHOPIFY_ADMIN_CLIENT_SECRET
            and self.PUBLIC_STORE_DOMAIN
        )

    @property
    def public_app_origin(self) -> str:
        return self.PUBLIC_APP_URL.rstrip("/")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached Settings instance.

    Using lru_cache ensures we only parse .env and validate once,
    not on every access.

    Returns:
        Settings: The application settings instance
    """
    return Settings()


# Global settings instance for easy importing
# Usage: from app.config import settings
settings = get_settings()
