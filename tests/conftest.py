# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# This module provides pytest fixtures and configuration for all tests.
#
# Key features:
# - Sets up mock environment variables before any imports
# - In-memory Redis stand-in for CSRF tokens and rate-limit counters
# - MagicMock Supabase client with one mock per table
# - FastAPI TestClient with auth and infrastructure dependencies overridden
# =============================================================================

import io
import os
from collections import defaultdict
from unittest.mock import MagicMock, patch
from uuid import UUID

# =============================================================================
# Set up test environment BEFORE any imports
# =============================================================================
# This must happen before importing app.config which loads settings immediately

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test-service-key")
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret-for-hs256-tokens")
os.environ.setdefault("SESSION_SECRET", "test-session-secret-0123456789")
os.environ.setdefault("ADMIN_EMAILS", "admin@wornvault.test")
os.environ.setdefault("PUBLIC_APP_URL", "https://wornvault.test")
os.environ.setdefault("SHOPIFY_WEBHOOK_SECRET", "test-webhook-secret")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "true")

import pytest
from PIL import Image

from lib.supabase_client import SupabaseClient

CREATOR_ID = "11111111-1111-4111-8111-111111111111"
USER_ID = "22222222-2222-4222-8222-222222222222"
LISTING_ID = "33333333-3333-4333-8333-333333333333"


# =============================================================================
# Fakes
# =============================================================================

class FakeRedis:
    """
    Dict-backed subset of redis.Redis used by the CSRF store and rate limiter.

    Values are kept as str (the real client runs with decode_responses=True).
    """

    def __init__(self):
        self.store: dict[str, object] = {}
        self.ttls: dict[str, int] = {}

    def set(self, key, value, ex=None):
        self.store[key] = value
        if ex:
            self.ttls[key] = ex
        return True

    def get(self, key):
        return self.store.get(key)

    def delete(self, *keys):
        deleted = 0
        for key in keys:
            if key in self.store:
                del self.store[key]
                self.ttls.pop(key, None)
                deleted += 1
        return deleted

    def incr(self, key):
        self.store[key] = int(self.store.get(key, 0)) + 1
        return self.store[key]

    def expire(self, key, seconds):
        if key not in self.store:
            return False
        self.ttls[key] = seconds
        return True

    def ttl(self, key):
        if key not in self.store:
            return -2
        return self.ttls.get(key, -1)

    def ping(self):
        return True


def db_result(data):
    """A PostgREST response object with `.data`."""
    result = MagicMock()
    result.data = data
    return result


def make_image_bytes(fmt: str = "PNG", size: tuple[int, int] = (8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def supabase():
    """
    Patch SupabaseClient.get_client with a MagicMock.

    `supabase.tables[name]` is the mock returned by `client.table(name)`, so
    tests can set e.g. `tables["listings"].insert.return_value.execute.return_value`.
    Public URLs are deterministic: https://cdn.test/<path>.
    """
    client = MagicMock()
    tables = defaultdict(MagicMock)
    client.table.side_effect = lambda name: tables[name]
    client.tables = tables
    bucket = client.storage.from_.return_value
    bucket.get_public_url.side_effect = lambda path: f"https://cdn.test/{path}"
    with patch.object(SupabaseClient, "get_client", return_value=client):
        yield client


@pytest.fixture
def png_bytes():
    return make_image_bytes("PNG")


@pytest.fixture
def creator_row():
    """Sample creators row."""
    return {
        "id": CREATOR_ID,
        "email": "jane@example.com",
        "handle": "jane-doe",
        "display_name": "Jane Doe",
        "first_name": "Jane",
        "last_name": "Doe",
        "bio": "Stylist and collector.",
        "verification_status": "approved",
        "payout_method": "paypal",
        "paypal_email": "jane@example.com",
        "paypal_email_verified": True,
    }


@pytest.fixture
def listing_row():
    """Sample listings row as returned by an insert."""
    return {
        "id": LISTING_ID,
        "creator_id": CREATOR_ID,
        "title": "Vintage denim jacket",
        "story": "<p>Worn on tour.</p>",
        "category": "Outerwear",
        "condition": "Lightly worn",
        "price_cents": 15000,
        "status": "pending_approval",
        "shopify_product_id": None,
    }


@pytest.fixture
def auth_user():
    from app.auth import AuthUser

    return AuthUser(id=UUID(USER_ID), email="jane@example.com")


@pytest.fixture
def admin_user():
    from app.auth import AuthUser

    return AuthUser(id=UUID(USER_ID), email="admin@wornvault.test")


@pytest.fixture
def app_client(fake_redis, auth_user, creator_row):
    """
    TestClient with auth, creator lookup, Redis and Shopify overridden.

    Yields (client, app) so tests can add further overrides.
    """
    from fastapi.testclient import TestClient

    from app.auth import get_current_creator, get_current_user, get_current_user_optional
    from app.dependencies import get_redis, get_shopify_client
    from app.main import app

    app.dependency_overrides[get_current_user] = lambda: auth_user
    app.dependency_overrides[get_current_user_optional] = lambda: auth_user
    app.dependency_overrides[get_current_creator] = lambda: creator_row
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_shopify_client] = lambda: None

    yield TestClient(app), app

    app.dependency_overrides.clear()
