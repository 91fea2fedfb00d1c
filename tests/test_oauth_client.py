# =============================================================================
# tests/test_oauth_client.py - Social OAuth Client Tests
# =============================================================================
# Provider HTTP calls go through httpx.MockTransport.
# =============================================================================

import base64
import hashlib
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from lib.oauth_client import (
    OAuthClient,
    OAuthProviderError,
    build_authorize_url,
    generate_pkce_pair,
)
from tests.test_platforms import make_settings
from lib.platforms import build_platform_registry

REDIRECT_URI = "https://wornvault.test/api/v1/creator/social-links/oauth/callback"


@pytest.fixture
def registry():
    return build_platform_registry(make_settings(TWITCH_CLIENT_ID="tw-id", TWITCH_CLIENT_SECRET="tw-secret"))


def client_for(handler):
    return OAuthClient(http=httpx.Client(transport=httpx.MockTransport(handler)))


class TestAuthorizeUrl:
    """Tests for build_authorize_url and PKCE."""

    def test_pkce_pair(self):
        verifier, challenge = generate_pkce_pair()
        expected = base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest()).rstrip(b"=").decode()

        assert 43 <= len(verifier) <= 128
        assert challenge == expected

    def test_instagram_url(self, registry):
        url = build_authorize_url(registry.get("instagram"), REDIRECT_URI, "state-1")
        query = parse_qs(urlsplit(url).query)

        assert url.startswith("https://api.instagram.com/oauth/authorize?")
        assert query["client_id"] == ["ig-id"]
        assert query["state"] == ["state-1"]
        assert query["scope"] == ["user_profile,user_media"]
        assert query["redirect_uri"] == [REDIRECT_URI]
        assert "code_challenge" not in query

    def test_tiktok_uses_client_key(self, registry):
        query = parse_qs(urlsplit(build_authorize_url(registry.get("tiktok"), REDIRECT_URI, "s")).query)

        assert query["client_key"] == ["tt-key"]
        assert "client_id" not in query

    def test_x_includes_challenge(self, registry):
        url = build_authorize_url(registry.get("x"), REDIRECT_URI, "s", code_challenge="abc")
        query = parse_qs(urlsplit(url).query)

        assert query["code_challenge"] == ["abc"]
        assert query["code_challenge_method"] == ["S256"]

    def test_x_without_challenge_fails(self, registry):
        with pytest.raises(ValueError):
            build_authorize_url(registry.get("x"), REDIRECT_URI, "s")


class TestFetchVerifiedProfile:
    """Tests for code exchange and profile lookup."""

    def test_instagram(self, registry):
        def handler(request: httpx.Request):
            if request.url.path == "/oauth/access_token":
                assert b"code=abc" in request.content
                return httpx.Response(200, json={"access_token": "tok", "user_id": "42"})
            assert request.url.path == "/42"
            return httpx.Response(200, json={"id": "42", "username": "jane"})

        profile = client_for(handler).fetch_verified_profile(registry.get("instagram"), "abc", REDIRECT_URI)

        assert profile.username == "jane"
        assert profile.profile_url == "https://instagram.com/jane"

    def test_x_sends_verifier(self, registry):
        def handler(request: httpx.Request):
            if request.method == "POST":
                assert b"code_verifier=ver" in request.content
                assert request.headers["Authorization"].startswith("Basic ")
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(200, json={"data": {"username": "janedoe"}})

        profile = client_for(handler).fetch_verified_profile(registry.get("x"), "abc", REDIRECT_URI, "ver")

        assert profile.profile_url == "https://x.com/janedoe"

    def test_x_without_verifier(self, registry):
        with pytest.raises(OAuthProviderError, match="PKCE"):
            client_for(lambda r: httpx.Response(500)).fetch_verified_profile(registry.get("x"), "abc", REDIRECT_URI)

    def test_twitch(self, registry):
        def handler(request: httpx.Request):
            if request.method == "POST":
                return httpx.Response(200, json={"access_token": "tok"})
            assert request.headers["Client-Id"] == "tw-id"
            return httpx.Response(200, json={"data": [{"login": "jane_tv"}]})

        profile = client_for(handler).fetch_verified_profile(registry.get("twitch"), "abc", REDIRECT_URI)

        assert profile.username == "jane_tv"

    def test_token_exchange_error(self, registry):
        client = client_for(lambda r: httpx.Response(400, json={"error": "bad_code"}))

        with pytest.raises(OAuthProviderError, match="Token exchange failed: HTTP 400"):
            client.fetch_verified_profile(registry.get("instagram"), "abc", REDIRECT_URI)

    def test_missing_username(self, registry):
        def handler(request: httpx.Request):
            if request.method == "POST":
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(200, json={"data": []})

        with pytest.raises(OAuthProviderError, match="no username"):
            client_for(handler).fetch_verified_profile(registry.get("twitch"), "abc", REDIRECT_URI)

    def test_malformed_payload_wrapped(self, registry):
        client = client_for(lambda r: httpx.Response(200, json={"unexpected": True}))

        with pytest.raises(OAuthProviderError) as exc_info:
            client.fetch_verified_profile(registry.get("instagram"), "abc", REDIRECT_URI)

        assert exc_info.value.platform == "instagram"

    def test_transport_error_wrapped(self, registry):
        def handler(request):
            raise httpx.ConnectError("unreachable")

        with pytest.raises(OAuthProviderError, match="Verification failed"):
            client_for(handler).fetch_verified_profile(registry.get("youtube"), "abc", REDIRECT_URI)
