# =============================================================================
# lib/platforms.py - Social Platform Registry
# =============================================================================
# Immutable description of every social platform a creator can link:
# allow-listed domains, creator table columns, and OAuth endpoints.
#
# The registry is built once at startup (app.main lifespan) and injected into
# routes, so request handlers never rebuild or mutate platform tables.
#
# Usage:
#   registry = build_platform_registry(settings)
#   url = registry.validate_profile_url("instagram", "instagram.com/jane")
# =============================================================================

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterator, Mapping
from urllib.parse import urlsplit

from lib.sanitize import strip_control_chars

logger = logging.getLogger(__name__)

MAX_PROFILE_URL_LENGTH = 500


@dataclass(frozen=True)
class OAuthEndpoints:
    """Provider URLs and client configuration for the verification flow."""
    authorize_url: str
    token_url: str
    profile_url: str
    scopes: tuple[str, ...]
    client_id: str = ""
    client_secret: str = ""
    # Name of the client-id query parameter (TikTok calls it client_key)
    client_id_param: str = "client_id"
    scope_separator: str = " "
    uses_pkce: bool = False
    extra_authorize_params: tuple[tuple[str, str], ...] = ()

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


@dataclass(frozen=True)
class Platform:
    """One linkable social platform."""
    key: str
    display_name: str
    domains: tuple[str, ...]
    oauth: OAuthEndpoints

    @property
    def url_field(self) -> str:
        return f"{self.key}_url"

    @property
    def username_field(self) -> str:
        return f"{self.key}_username"

    @property
    def verified_field(self) -> str:
        return f"{self.key}_verified"

    def owns_hostname(self, hostname: str) -> bool:
        """True if hostname equals an allowed domain or is a subdomain of one."""
        host = hostname.lower().rstrip(".")
        return any(host == domain or host.endswith("." + domain) for domain in self.domains)


@dataclass(frozen=True)
class PlatformRegistry:
    """Read-only lookup of platforms by key, in display order."""
    _platforms: Mapping[str, Platform] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "_platforms", MappingProxyType(dict(self._platforms)))

    def __contains__(self, key: object) -> bool:
        return key in self._platforms

    def __iter__(self) -> Iterator[Platform]:
        return iter(self._platforms.values())

    def __len__(self) -> int:
        return len(self._platforms)

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(self._platforms)

    def get(self, key: str | None) -> Platform | None:
        if not key:
            return None
        return self._platforms.get(key.strip().lower())

    def creator_columns(self) -> list[str]:
        """Every url/username/verified column on the creators table."""
        columns = []
        for platform in self:
            columns += [platform.url_field, platform.username_field, platform.verified_field]
        return columns

    def validate_profile_url(self, platform_key: str, raw_url: str | None) -> str | None:
        """
        Normalize and validate a manually entered profile URL.

        - control characters are stripped
        - a missing scheme gets "https://" prefixed
        - the scheme must be https
        - at most 500 characters
        - the hostname must belong to the platform's allow-list

        Returns:
            The normalized URL, or None if it is empty or invalid
        """
        platform = self.get(platform_key)
        if platform is None or not raw_url or not isinstance(raw_url, str):
            return None

        candidate = strip_control_chars(raw_url.strip())
        if not candidate:
            return None

        if not candidate.lower().startswith(("http://", "https://")):
            candidate = f"https://{candidate}"

        if len(candidate) > MAX_PROFILE_URL_LENGTH:
            return None

        try:
            parts = urlsplit(candidate)
            hostname = parts.hostname
        except ValueError:
            return None

        if parts.scheme.lower() != "https" or not hostname:
            return None

        if not platform.owns_hostname(hostname):
            return None

        return candidate


def build_platform_registry(settings) -> PlatformRegistry:
    """
    Build the registry from configuration.

    Platforms without OAuth credentials are still registered; only the
    verification flow checks `oauth.configured`.
    """
    platforms = [
        Platform(
            key="instagram",
            display_name="Instagram",
            domains=("instagram.com", "www.instagram.com"),
            oauth=OAuthEndpoints(
                authorize_url="https://api.instagram.com/oauth/authorize",
                token_url="https://api.instagram.com/oauth/access_token",
                profile_url="https://graph.instagram.com",
                scopes=("user_profile", "user_media"),
                scope_separator=",",
                client_id=settings.INSTAGRAM_CLIENT_ID,
                client_secret=settings.INSTAGRAM_CLIENT_SECRET,
            ),
        ),
        Platform(
            key="facebook",
            display_name="Facebook",
            domains=("facebook.com", "www.facebook.com", "fb.com", "www.fb.com"),
            oauth=OAuthEndpoints(
                authorize_url="https://www.facebook.com/v18.0/dialog/oauth",
                token_url="https://graph.facebook.com/v18.0/oauth/access_token",
                profile_url="https://graph.facebook.com/v18.0/me",
                scopes=("public_profile", "email"),
                scope_separator=",",
                client_id=settings.FACEBOOK_APP_ID,
                client_secret=settings.FACEBOOK_APP_SECRET,
            ),
        ),
        Platform(
            key="tiktok",
            display_name="TikTok",
            domains=("tiktok.com", "www.tiktok.com"),
            oauth=OAuthEndpoints(
                authorize_url="https://www.tiktok.com/v2/auth/authorize/",
                token_url="https://open.tiktokapis.com/v2/oauth/token/",
                profile_url="https://open.tiktokapis.com/v2/user/info/",
                scopes=("user.info.basic",),
                scope_separator=",",
                client_id=settings.TIKTOK_CLIENT_KEY,
                client_secret=settings.TIKTOK_CLIENT_SECRET,
                client_id_param="client_key",
            ),
        ),
        Platform(
            key="x",
            display_name="X (Twitter)",
            domains=("x.com", "www.x.com", "twitter.com", "www.twitter.com"),
            oauth=OAuthEndpoints(
                authorize_url="https://twitter.com/i/oauth2/authorize",
                token_url="https://api.twitter.com/2/oauth2/token",
                profile_url="https://api.twitter.com/2/users/me",
                scopes=("tweet.read", "users.read"),
                client_id=settings.X_CLIENT_ID,
                client_secret=settings.X_CLIENT_SECRET,
                uses_pkce=True,
            ),
        ),
        Platform(
            key="youtube",
            display_name="YouTube",
            domains=("youtube.com", "www.youtube.com", "youtu.be"),
            oauth=OAuthEndpoints(
                authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
                token_url="https://oauth2.googleapis.com/token",
                profile_url="https://www.googleapis.com/youtube/v3/channels",
                scopes=("https://www.googleapis.com/auth/youtube.readonly",),
                client_id=settings.GOOGLE_CLIENT_ID,
                client_secret=settings.GOOGLE_CLIENT_SECRET,
                extra_authorize_params=(("access_type", "offline"), ("prompt", "consent")),
            ),
        ),
        Platform(
            key="twitch",
            display_name="Twitch",
            domains=("twitch.tv", "www.twitch.tv"),
            oauth=OAuthEndpoints(
                authorize_url="https://id.twitch.tv/oauth2/authorize",
                token_url="https://id.twitch.tv/oauth2/token",
                profile_url="https://api.twitch.tv/helix/users",
                scopes=("user:read:email",),
                client_id=settings.TWITCH_CLIENT_ID,
                client_secret=settings.TWITCH_CLIENT_SECRET,
            ),
        ),
    ]

    registry = PlatformRegistry({platform.key: platform for platform in platforms})
    configured = [p.key for p in registry if p.oauth.configured]
    logger.info(f"Platform registry ready: {len(registry)} platforms, OAuth configured for {configured or 'none'}")
    return registry
