# =============================================================================
# tests/test_platforms.py - Social Platform Registry Tests
# =============================================================================

from types import SimpleNamespace

import pytest

from lib.platforms import build_platform_registry


def make_settings(**overrides):
    values = dict(
        INSTAGRAM_CLIENT_ID="ig-id", INSTAGRAM_CLIENT_SECRET="ig-secret",
        FACEBOOK_APP_ID="", FACEBOOK_APP_SECRET="",
        TIKTOK_CLIENT_KEY="tt-key", TIKTOK_CLIENT_SECRET="tt-secret",
        X_CLIENT_ID="x-id", X_CLIENT_SECRET="x-secret",
        GOOGLE_CLIENT_ID="", GOOGLE_CLIENT_SECRET="",
        TWITCH_CLIENT_ID="", TWITCH_CLIENT_SECRET="",
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def registry():
    return build_platform_registry(make_settings())


class TestRegistry:
    """Tests for registry construction and lookup."""

    def test_all_platforms_registered_in_order(self, registry):
        assert registry.keys == ("instagram", "facebook", "tiktok", "x", "youtube", "twitch")
        assert len(registry) == 6

    def test_unconfigured_platforms_still_registered(self, registry):
        assert "facebook" in registry
        assert not registry.get("facebook").oauth.configured
        assert registry.get("instagram").oauth.configured

    def test_lookup_is_case_insensitive(self, registry):
        assert registry.get(" TikTok ").key == "tiktok"
        assert registry.get("myspace") is None
        assert registry.get(None) is None

    def test_x_uses_pkce(self, registry):
        assert registry.get("x").oauth.uses_pkce
        assert not registry.get("instagram").oauth.uses_pkce

    def test_tiktok_client_key_param(self, registry):
        assert registry.get("tiktok").oauth.client_id_param == "client_key"

    def test_creator_columns(self, registry):
        columns = registry.creator_columns()

        assert "instagram_url" in columns
        assert "x_username" in columns
        assert "twitch_verified" in columns
        assert len(columns) == 18

    def test_registry_is_read_only(self, registry):
        with pytest.raises(TypeError):
            registry._platforms["myspace"] = None


class TestValidateProfileUrl:
    """Tests for manual profile URL validation."""

    def test_scheme_added(self, registry):
        assert registry.validate_profile_url("instagram", "instagram.com/jane") == "https://instagram.com/jane"

    def test_https_url_kept(self, registry):
        url = "https://www.tiktok.com/@jane"
        assert registry.validate_profile_url("tiktok", url) == url

    def test_http_rejected(self, registry):
        assert registry.validate_profile_url("instagram", "http://instagram.com/jane") is None

    def test_subdomain_allowed(self, registry):
        assert registry.validate_profile_url("facebook", "https://m.facebook.com/jane")

    def test_lookalike_domain_rejected(self, registry):
        assert registry.validate_profile_url("instagram", "https://instagram.com.evil.test/jane") is None
        assert registry.validate_profile_url("instagram", "https://notinstagram.com/jane") is None

    def test_other_platform_domain_rejected(self, registry):
        assert registry.validate_profile_url("x", "https://instagram.com/jane") is None

    def test_twitter_domain_accepted_for_x(self, registry):
        assert registry.validate_profile_url("x", "twitter.com/jane") == "https://twitter.com/jane"

    def test_too_long_rejected(self, registry):
        assert registry.validate_profile_url("youtube", "youtube.com/" + "a" * 500) is None

    def test_javascript_scheme_rejected(self, registry):
        assert registry.validate_profile_url("instagram", "javascript:alert(1)") is None

    @pytest.mark.parametrize("raw", [None, "", "   ", 42])
    def test_empty_input(self, registry, raw):
        assert registry.validate_profile_url("instagram", raw) is None

    def test_unknown_platform(self, registry):
        assert registry.validate_profile_url("myspace", "myspace.com/jane") is None
