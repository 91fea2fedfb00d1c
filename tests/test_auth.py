# =============================================================================
# tests/test_auth.py - Authentication Tests
# =============================================================================
# Tokens are signed locally with the HS256 test secret from conftest.
# =============================================================================

import asyncio
import time
from unittest.mock import patch

import pytest
from jose import jwt

from app.auth import AuthUser, is_admin_email, require_admin
from app.auth.dependencies import decode_access_token, get_current_creator
from app.config import settings
from app.exceptions import AuthenticationError, AuthorizationError, CreatorNotFoundError
from lib.supabase_client import SupabaseClient
from tests.conftest import USER_ID


def make_token(**claims):
    payload = {
        "sub": USER_ID,
        "email": "Jane@Example.com",
        "aud": "authenticated",
        "exp": int(time.time()) + 3600,
        "iat": int(time.time()),
        "user_metadata": {"full_name": "Jane Doe"},
    }
    payload.update(claims)
    return jwt.encode({k: v for k, v in payload.items() if v is not None}, settings.SUPABASE_JWT_SECRET, algorithm="HS256")


class TestDecodeAccessToken:
    """Tests for decode_access_token."""

    def test_valid_token(self):
        user = decode_access_token(make_token())

        assert str(user.id) == USER_ID
        assert user.email == "jane@example.com"
        assert user.metadata == {"full_name": "Jane Doe"}
        assert user.session_key == USER_ID

    def test_expired_token(self):
        with pytest.raises(AuthenticationError, match="expired"):
            decode_access_token(make_token(exp=int(time.time()) - 10))

    def test_wrong_audience(self):
        with pytest.raises(AuthenticationError):
            decode_access_token(make_token(aud="anon"))

    def test_wrong_secret(self):
        token = jwt.encode({"sub": USER_ID, "aud": "authenticated"}, "another-secret", algorithm="HS256")

        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_missing_subject(self):
        with pytest.raises(AuthenticationError):
            decode_access_token(make_token(sub=None))

    def test_non_uuid_subject(self):
        with pytest.raises(AuthenticationError):
            decode_access_token(make_token(sub="user-1"))

    def test_garbage(self):
        with pytest.raises(AuthenticationError):
            decode_access_token("not.a.jwt")


class TestRoles:
    """Tests for admin and creator dependencies."""

    def test_is_admin_email(self):
        assert is_admin_email(" Admin@WornVault.test ")
        assert not is_admin_email("jane@example.com")
        assert not is_admin_email(None)

    def test_require_admin_allows_admin(self, admin_user):
        assert asyncio.run(require_admin(admin_user)) is admin_user

    def test_require_admin_rejects_creator(self, auth_user):
        with pytest.raises(AuthorizationError):
            asyncio.run(require_admin(auth_user))

    def test_creator_lookup(self, supabase, auth_user, creator_row):
        with patch.object(SupabaseClient, "fetch_creator_by_email", return_value=creator_row) as fetch:
            assert asyncio.run(get_current_creator(auth_user)) is creator_row

        fetch.assert_called_once_with("jane@example.com")

    def test_creator_missing(self, supabase, auth_user):
        with patch.object(SupabaseClient, "fetch_creator_by_email", return_value=None):
            with pytest.raises(CreatorNotFoundError):
                asyncio.run(get_current_creator(auth_user))

    def test_token_without_email(self):
        with pytest.raises(AuthenticationError):
            asyncio.run(get_current_creator(AuthUser(id=USER_ID)))
