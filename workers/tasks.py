# =============================================================================
# workers/tasks.py - Celery Task Definitions
# =============================================================================
# Periodic maintenance tasks, scheduled by celery beat (see config.py).
#
# Tasks:
# - retry_manual_syncs: Re-attempt store product creation / linking for
#   listings in the manual sync queue
# - cleanup_expired_oauth_states: Delete OAuth state rows past expiry
# =============================================================================

import logging
from typing import Any

from celery import shared_task

from app.config import settings
from core.services.commerce_service import CommerceService
from core.services.oauth_service import OAuthStateService
from lib.shopify_admin import ShopifyAdminClient

logger = logging.getLogger(__name__)

# Entries that failed this often are left for a human
MAX_SYNC_ATTEMPTS = 10


# =============================================================================
# Commerce Sync Retry
# =============================================================================

@shared_task(bind=True, name="workers.tasks.retry_manual_syncs")
def retry_manual_syncs(self, limit: int = 50) -> dict[str, Any]:
    """
    Sweep the manual sync queue.

    Each pending entry is retried once per sweep. Failures bump the entry's
    attempt counter and store the latest error as its reason.

    Returns:
        Dict with counts: resolved, failed, skipped
    """
    if not settings.shopify_configured:
        logger.info("Shopify not configured; skipping manual sync sweep")
        return {"resolved": 0, "failed": 0, "skipped": 0}

    shopify = ShopifyAdminClient.from_settings(settings)
    resolved = failed = skipped = 0

    for entry in CommerceService.list_pending(limit):
        if int(entry.get("attempts") or 0) >= MAX_SYNC_ATTEMPTS:
            skipped += 1
            continue
        try:
            CommerceService.retry_entry(shopify, entry)
            resolved += 1
        except Exception as e:
            failed += 1
            reason = getattr(e, "message", None) or str(e)
            logger.warning(f"Manual sync retry failed for listing {entry.get('listing_id')}: {e}")
            try:
                CommerceService.record_attempt(entry, reason)
            except Exception as record_error:
                logger.error(f"Could not record sync attempt for entry {entry.get('id')}: {record_error}")

    if skipped:
        logger.critical(
            f"Manual intervention required: {skipped} sync queue entries exceeded {MAX_SYNC_ATTEMPTS} attempts"
        )
    logger.info(f"Manual sync sweep: {resolved} resolved, {failed} failed, {skipped} skipped")
    return {"resolved": resolved, "failed": failed, "skipped": skipped}


# =============================================================================
# OAuth State Cleanup
# =============================================================================

@shared_task(bind=True, name="workers.tasks.cleanup_expired_oauth_states")
def cleanup_expired_oauth_states(self) -> dict[str, Any]:
    """
    Delete OAuth states that expired without a callback.

    Consumed states are already deleted by the callback; this only removes
    abandoned flows.
    """
    deleted = OAuthStateService.delete_expired()
    logger.info(f"Deleted {deleted} expired OAuth state(s)")
    return {"deleted": deleted}
