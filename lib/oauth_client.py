# =============================================================================
# lib/oauth_client.py - Social OAuth Verification Client
# =============================================================================
# Provider-specific pieces of the "prove you own this account" flow:
# - build_authorize_url: where to send the creator
# - generate_pkce_pair: verifier/challenge for platforms that use PKCE (X)
# - OAuthClient.fetch_verified_profile: exchange the code, read the profile
#
# Each provider returns a VerifiedProfile (username + canonical profile URL)
# that gets written to the creator's {platform}_url/_username/_verified.
# =============================================================================

import base64
import hashlib
import logging
import secrets
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import httpx

from lib.platforms import Platform
from lib.utils import ApplicationError

logger = logging.getLogger(__name__)


class OAuthProviderError(ApplicationError):
    """Token exchange or profile lookup failed."""

    def __init__(self, platform: str, message: str):
        super().__init__(message, code="OAUTH_PROVIDER_ERROR", details={"platform": platform})
        self.platform = platform


@dataclass(frozen=True)
class VerifiedProfile:
    username: str
    profile_url: str


# =============================================================================
# Authorization Request
# =============================================================================

def generate_state_token() -> str:
    return secrets.token_urlsafe(32)


def generate_pkce_pair() -> tuple[str, str]:
    """Return (code_verifier, S256 code_challenge)."""
    verifier = secrets.token_urlsafe(64)[:128]
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    challenge = base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
    return verifier, challenge


def build_authorize_url(
    platform: Platform,
    redirect_uri: str,
    state: str,
    code_challenge: str | None = None,
) -> str:
    """Build the provider's authorize URL for this platform."""
    oauth = platform.oauth
    params: dict[str, str] = {
        oauth.client_id_param: oauth.client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": oauth.scope_separator.join(oauth.scopes),
        "state": state,
    }
    if oauth.uses_pkce:
        if not code_challenge:
            raise ValueError(f"{platform.key} requires a PKCE code challenge")
        params["code_challenge"] = code_challenge
        params["code_challenge_method"] = "S256"
    params.update(dict(oauth.extra_authorize_params))
    return f"{oauth.authorize_url}?{urlencode(params)}"


# =============================================================================
# Code Exchange + Profile Lookup
# =============================================================================

class OAuthClient:
    """Exchanges authorization codes and reads profiles. `http` is injectable."""

    def __init__(self, http: httpx.Client | None = None, timeout: float = 15.0):
        self.http = http or httpx.Client(timeout=timeout)

    def fetch_verified_profile(
        self,
        platform: Platform,
        code: str,
        redirect_uri: str,
        code_verifier: str | None = None,
    ) -> VerifiedProfile:
        """
        Complete the OAuth flow for one platform.

        Raises:
            OAuthProviderError: On any provider failure or missing username
        """
        handler = getattr(self, f"_verify_{platform.key}", None)
        if handler is None:
            raise OAuthProviderError(platform.key, "Unsupported platform")
        try:
            return handler(platform, code, redirect_uri, code_verifier)
        except OAuthProviderError:
            raise
        except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
            raise OAuthProviderError(platform.key, f"Verification failed: {e}")

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _json(self, response: httpx.Response, platform: str, step: str) -> dict[str, Any]:
        if response.status_code >= 400:
            raise OAuthProviderError(platform, f"{step} failed: HTTP {response.status_code}")
        return response.json()

    def _form_token(self, platform: Platform, data: dict[str, str], **kwargs) -> dict[str, Any]:
        response = self.http.post(platform.oauth.token_url, data=data, **kwargs)
        return self._json(response, platform.key, "Token exchange")

    @staticmethod
    def _bearer(token: str, **extra: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token}", **extra}

    @staticmethod
    def _require(platform: str, username: str | None, profile_url: str | None) -> VerifiedProfile:
        if not username or not profile_url:
            raise OAuthProviderError(platform, "Provider returned no username")
        return VerifiedProfile(username=username, profile_url=profile_url)

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------

    def _verify_instagram(self, platform, code, redirect_uri, code_verifier):
        oauth = platform.oauth
        token = self._form_token(platform, {
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
            "code": code,
        })
        response = self.http.get(
            f"{oauth.profile_url}/{token['user_id']}",
            params={"fields": "id,username", "access_token": token["access_token"]},
        )
        username = self._json(response, platform.key, "Profile lookup").get("username")
        return self._require(platform.key, username, f"https://instagram.com/{username}")

    def _verify_facebook(self, platform, code, redirect_uri, code_verifier):
        oauth = platform.oauth
        response = self.http.get(oauth.token_url, params={
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
            "redirect_uri": redirect_uri,
            "code": code,
        })
        token = self._json(response, platform.key, "Token exchange")
        response = self.http.get(
            oauth.profile_url,
            params={"fields": "id,name,username", "access_token": token["access_token"]},
        )
        profile = self._json(response, platform.key, "Profile lookup")
        username = profile.get("username") or profile.get("name")
        return self._require(platform.key, username, f"https://facebook.com/{username}")

    def _verify_tiktok(self, platform, code, redirect_uri, code_verifier):
        oauth = platform.oauth
        token = self._form_token(platform, {
            "client_key": oauth.client_id,
            "client_secret": oauth.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
        })
        access_token = (token.get("data") or token)["access_token"]
        response = self.http.get(
            oauth.profile_url,
            params={"fields": "open_id,display_name"},
            headers=self._bearer(access_token),
        )
        user = self._json(response, platform.key, "Profile lookup")["data"]["user"]
        username = user.get("display_name")
        return self._require(platform.key, username, f"https://tiktok.com/@{username}")

    def _verify_x(self, platform, code, redirect_uri, code_verifier):
        oauth = platform.oauth
        if not code_verifier:
            raise OAuthProviderError(platform.key, "Missing PKCE code verifier")
        token = self._form_token(
            platform,
            {
                "code": code,
                "grant_type": "authorization_code",
                "client_id": oauth.client_id,
                "redirect_uri": redirect_uri,
                "code_verifier": code_verifier,
            },
            auth=(oauth.client_id, oauth.client_secret),
        )
        response = self.http.get(
            oauth.profile_url,
            params={"user.fields": "username"},
            headers=self._bearer(token["access_token"]),
        )
        username = (self._json(response, platform.key, "Profile lookup").get("data") or {}).get("username")
        return self._require(platform.key, username, f"https://x.com/{username}" if username else None)

    def _verify_youtube(self, platform, code, redirect_uri, code_verifier):
        oauth = platform.oauth
        token = self._form_token(platform, {
            "code": code,
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
        })
        response = self.http.get(
            oauth.profile_url,
            params={"part": "snippet", "mine": "true"},
            headers=self._bearer(token["access_token"]),
        )
        items = self._json(response, platform.key, "Channel lookup").get("items") or []
        if not items:
            raise OAuthProviderError(platform.key, "No YouTube channel on this account")
        channel = items[0]
        custom_url = channel["snippet"].get("customUrl")
        username = custom_url or channel["snippet"].get("title")
        path = custom_url or f"channel/{channel['id']}"
        return self._require(platform.key, username, f"https://youtube.com/{path}")

    def _verify_twitch(self, platform, code, redirect_uri, code_verifier):
        oauth = platform.oauth
        token = self._form_token(platform, {
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
        })
        response = self.http.get(
            oauth.profile_url,
            headers=self._bearer(token["access_token"], **{"Client-Id": oauth.client_id}),
        )
        users = self._json(response, platform.key, "Profile lookup").get("data") or []
        username = users[0].get("login") if users else None
        return self._require(platform.key, username, f"https://twitch.tv/{username}" if username else None)
