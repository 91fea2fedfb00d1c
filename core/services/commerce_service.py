# =============================================================================
# core/services/commerce_service.py - Listing -> Shopify Product Sync
# =============================================================================
# Creates the storefront product for a listing and links its id back onto
# the listing row. Anything that cannot be linked is written to the
# manual_sync_queue table for an operator (or the retry worker) to finish.
# =============================================================================

import logging
import time
from typing import Any, Callable

from app.config import settings
from lib.shopify_admin import ProductInput, ProductResult, ShopifyAdminClient
from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.utils import normalize_uuid, retry_with_backoff

logger = logging.getLogger(__name__)

LINK_ATTEMPTS = 3
MAX_REASON_LENGTH = 500


class SyncQueueStatus:
    PENDING = "pending"
    RESOLVED = "resolved"


class CommerceService:
    """Commerce sync and the manual-intervention queue."""

    @staticmethod
    def build_product_input(
        listing: dict[str, Any],
        creator: dict[str, Any] | None,
        image_urls: list[str],
    ) -> ProductInput:
        vendor = ((creator or {}).get("display_name") or "").strip() or settings.SHOPIFY_VENDOR
        return ProductInput(
            title=listing["title"],
            vendor=vendor,
            price_cents=int(listing["price_cents"]),
            sku=str(listing["id"]),
            description_html=listing.get("story") or "",
            product_type=listing.get("category") or "",
            condition=listing.get("condition"),
            image_urls=list(image_urls),
        )

    @staticmethod
    def link_product(listing_id: str, product_id: str) -> None:
        """
        Store the Shopify product id on the listing.

        Raises:
            SupabaseClientError: If the update fails or matches no row
        """
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("listings")
                .update({"shopify_product_id": product_id})
                .eq("id", normalize_uuid(listing_id))
                .execute()
            )
        except Exception as e:
            raise SupabaseClientError(
                message=f"Failed to link product: {e}",
                code="LINK_PRODUCT_FAILED",
                details={"listing_id": listing_id},
            )
        if not response.data:
            raise SupabaseClientError(
                message="Link update matched no listing",
                code="LINK_PRODUCT_FAILED",
                details={"listing_id": listing_id},
            )

    @staticmethod
    def sync_listing(
        shopify: ShopifyAdminClient,
        listing: dict[str, Any],
        creator: dict[str, Any] | None,
        image_urls: list[str],
        sleep: Callable[[float], None] = time.sleep,
    ) -> ProductResult:
        """
        Create the product and link it to the listing.

        Failures are queued for manual sync and then re-raised so the
        caller can record a warning. The listing itself is never touched
        on failure.
        """
        listing_id = str(listing["id"])
        product = CommerceService.build_product_input(listing, creator, image_urls)

        try:
            result = shopify.create_product(product)
        except Exception as e:
            CommerceService.enqueue_manual_sync(
                listing_id, getattr(e, "product_id", None), f"product creation failed: {e}"
            )
            raise

        try:
            retry_with_backoff(
                lambda: CommerceService.link_product(listing_id, result.product_id),
                attempts=LINK_ATTEMPTS,
                description=f"Linking product {result.product_id} to listing {listing_id}",
                sleep=sleep,
            )
        except Exception as e:
            CommerceService.enqueue_manual_sync(
                listing_id, result.product_id, f"linking product id failed: {e}"
            )
            raise

        logger.info(f"Listing {listing_id} synced to Shopify product {result.product_id}")
        return result

    # -------------------------------------------------------------------------
    # Manual sync queue
    # -------------------------------------------------------------------------

    @staticmethod
    def enqueue_manual_sync(listing_id: str, product_id: str | None, reason: str) -> bool:
        """
        Record a listing that needs manual commerce sync.

        Never raises; if even this write fails the details are logged at
        CRITICAL level for an operator.
        """
        client = SupabaseClient.get_client()
        row = {
            "listing_id": normalize_uuid(listing_id),
            "shopify_product_id": product_id,
            "reason": reason[:MAX_REASON_LENGTH],
            "status": SyncQueueStatus.PENDING,
            "attempts": 0,
        }
        try:
            client.table("manual_sync_queue").insert(row).execute()
            logger.warning(f"Queued listing {listing_id} for manual sync (product={product_id})")
            return True
        except Exception as e:
            logger.critical(
                f"Manual intervention required: could not queue listing {listing_id} "
                f"(product={product_id}) for sync: {e}"
            )
            return False

    @staticmethod
    def list_pending(limit: int = 50) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        response = (
            client.table("manual_sync_queue")
            .select("*")
            .eq("status", SyncQueueStatus.PENDING)
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return response.data or []

    @staticmethod
    def mark_resolved(entry_id: str, product_id: str) -> None:
        client = SupabaseClient.get_client()
        (
            client.table("manual_sync_queue")
            .update({"status": SyncQueueStatus.RESOLVED, "shopify_product_id": product_id})
            .eq("id", entry_id)
            .execute()
        )

    @staticmethod
    def record_attempt(entry: dict[str, Any], error: str) -> None:
        client = SupabaseClient.get_client()
        (
            client.table("manual_sync_queue")
            .update({
                "attempts": int(entry.get("attempts") or 0) + 1,
                "reason": error[:MAX_REASON_LENGTH],
            })
            .eq("id", entry["id"])
            .execute()
        )

    @staticmethod
    def retry_entry(shopify: ShopifyAdminClient, entry: dict[str, Any]) -> str:
        """
        Re-attempt one queued sync.

        Entries that already have a product id only need linking; the rest
        get a new product created from the current listing row.

        Returns:
            The linked product id
        """
        listing_id = str(entry["listing_id"])
        product_id = entry.get("shopify_product_id")

        if not product_id:
            listing = SupabaseClient.fetch_listing(listing_id)
            if listing is None:
                raise SupabaseClientError(
                    message="Queued listing no longer exists",
                    code="LISTING_GONE",
                    details={"listing_id": listing_id},
                )
            if listing.get("shopify_product_id"):
                product_id = listing["shopify_product_id"]
            else:
                # Imported here to keep the module graph acyclic
                from core.services.listing_service import ListingService

                creator = SupabaseClient.fetch_creator(listing["creator_id"])
                image_urls = ListingService.photo_urls(listing_id)
                product = CommerceService.build_product_input(listing, creator, image_urls)
                product_id = shopify.create_product(product).product_id

        CommerceService.link_product(listing_id, product_id)
        CommerceService.mark_resolved(entry["id"], product_id)
        logger.info(f"Resolved manual sync for listing {listing_id} -> {product_id}")
        return product_id
