# =============================================================================
# tests/test_workers.py - Celery Task Tests
# =============================================================================
# Tasks are called directly (Task.run); no broker is needed.
# =============================================================================

import logging
from unittest.mock import MagicMock, PropertyMock, patch

import pytest

from app.config import Settings
from core.services.commerce_service import CommerceService
from core.services.oauth_service import OAuthStateService
from lib.shopify_admin import ShopifyAdminClient, ShopifyAdminError
from workers.config import CeleryConfig
from tests.conftest import LISTING_ID
from workers.tasks import MAX_SYNC_ATTEMPTS, cleanup_expired_oauth_states, retry_manual_syncs


@pytest.fixture
def shopify_configured():
    with patch.object(Settings, "shopify_configured", new_callable=PropertyMock, return_value=True), \
            patch.object(ShopifyAdminClient, "from_settings", return_value=MagicMock()) as from_settings:
        yield from_settings


def entry(entry_id, attempts=0):
    return {"id": entry_id, "listing_id": f"listing-{entry_id}", "shopify_product_id": None, "attempts": attempts}


class TestRetryManualSyncs:
    """Tests for the manual sync sweep."""

    def test_skips_without_shopify(self):
        with patch.object(Settings, "shopify_configured", new_callable=PropertyMock, return_value=False), \
                patch.object(CommerceService, "list_pending") as list_pending:
            result = retry_manual_syncs.run()

        assert result == {"resolved": 0, "failed": 0, "skipped": 0}
        list_pending.assert_not_called()

    def test_counts_outcomes(self, shopify_configured, caplog):
        entries = [entry("a"), entry("b", attempts=3), entry("c", attempts=MAX_SYNC_ATTEMPTS)]

        def retry(shopify, item):
            if item["id"] == "b":
                raise ShopifyAdminError("still failing")
            return "gid://shopify/Product/1"

        with patch.object(CommerceService, "list_pending", return_value=entries) as list_pending, \
                patch.object(CommerceService, "retry_entry", side_effect=retry) as retry_entry, \
                patch.object(CommerceService, "record_attempt") as record_attempt, \
                caplog.at_level(logging.CRITICAL):
            result = retry_manual_syncs.run(limit=25)

        assert result == {"resolved": 1, "failed": 1, "skipped": 1}
        list_pending.assert_called_once_with(25)
        assert retry_entry.call_count == 2
        record_attempt.assert_called_once_with(entries[1], "still failing")
        assert "Manual intervention required" in caplog.text

    def test_reason_is_plain_message(self, shopify_configured):
        entries = [entry("a"), entry("b")]
        errors = iter([
            ShopifyAdminError("variant update failed", suggestion="Check the access scopes"),
            RuntimeError("timed out"),
        ])

        def retry(shopify, item):
            raise next(errors)

        with patch.object(CommerceService, "list_pending", return_value=entries), \
                patch.object(CommerceService, "retry_entry", side_effect=retry), \
                patch.object(CommerceService, "record_attempt") as record_attempt:
            retry_manual_syncs.run()

        reasons = [call.args[1] for call in record_attempt.call_args_list]
        assert reasons == ["variant update failed", "timed out"]

    def test_record_failure_does_not_stop_sweep(self, shopify_configured):
        entries = [entry("a"), entry("b")]

        with patch.object(CommerceService, "list_pending", return_value=entries), \
                patch.object(CommerceService, "retry_entry", side_effect=RuntimeError("down")), \
                patch.object(CommerceService, "record_attempt", side_effect=RuntimeError("db down")):
            result = retry_manual_syncs.run()

        assert result["failed"] == 2


class TestRetryEntry:
    """Tests for CommerceService.retry_entry (the per-entry work of the sweep)."""

    def test_entry_with_product_only_links(self, supabase):
        supabase.tables["listings"].update.return_value.eq.return_value.execute.return_value.data = [{"id": LISTING_ID}]
        shopify = MagicMock()

        product_id = CommerceService.retry_entry(shopify, {
            "id": "q1", "listing_id": LISTING_ID, "shopify_product_id": "gid://shopify/Product/9",
        })

        assert product_id == "gid://shopify/Product/9"
        shopify.create_product.assert_not_called()
        supabase.tables["manual_sync_queue"].update.assert_called_once_with(
            {"status": "resolved", "shopify_product_id": "gid://shopify/Product/9"}
        )

    def test_missing_listing(self, supabase):
        from lib.supabase_client import SupabaseClient, SupabaseClientError

        with patch.object(SupabaseClient, "fetch_listing", return_value=None):
            with pytest.raises(SupabaseClientError):
                CommerceService.retry_entry(MagicMock(), {"id": "q1", "listing_id": LISTING_ID})


class TestCleanupExpiredOAuthStates:
    """Tests for the OAuth state cleanup task."""

    def test_returns_deleted_count(self):
        with patch.object(OAuthStateService, "delete_expired", return_value=4):
            assert cleanup_expired_oauth_states.run() == {"deleted": 4}


class TestSchedule:
    """Tests for the beat schedule and routing."""

    def test_beat_schedule(self):
        schedule = CeleryConfig.beat_schedule

        assert schedule["retry-manual-syncs"]["task"] == "workers.tasks.retry_manual_syncs"
        assert schedule["cleanup-expired-oauth-states"]["task"] == "workers.tasks.cleanup_expired_oauth_states"

    def test_sync_retry_routed_to_commerce_queue(self):
        assert CeleryConfig.task_routes["workers.tasks.retry_manual_syncs"]["queue"] == "commerce"
