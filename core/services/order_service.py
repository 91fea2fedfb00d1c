# =============================================================================
# core/services/order_service.py - Order Recording and Sales Views
# =============================================================================
# Writes storefront orders delivered by Shopify's orders/create webhook and
# reads them back per creator.
#
# Recording flow (record_order):
# 1. Skip the order if shopify_order_id was already recorded
# 2. Match line items to live listings by Shopify product GID
# 3. Insert the orders row (a unique violation means another delivery won)
# 4. Insert order_line_items for matched items; the order row is removed
#    again if this fails so a redelivery can record it cleanly
# 5. Mark each matched listing sold, only while it is still live
# =============================================================================

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from app.exceptions import OrderNotFoundError, ValidationFailedError
from core.models.listing import ListingStatus
from core.models.order import (
    AdminSalesResponse,
    CreatorOrder,
    CreatorOrdersResponse,
    OrderIngestResult,
    OrderLineItem,
)
from core.services.payout_service import PayoutService, as_utc, summarize_sales
from lib.sanitize import clean_text, normalize_email, validate_email
from lib.shopify_webhooks import money_to_cents, product_gid
from lib.supabase_client import SupabaseClient
from lib.utils import is_valid_uuid, normalize_uuid

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
DEFAULT_CURRENCY = "USD"
MAX_ORDERS = 500

# Customer contact details and the raw payload stay out of creator views
CREATOR_ORDER_COLUMNS = (
    "id, shopify_order_id, order_number, order_name, currency, "
    "financial_status, fulfillment_status, processed_at, created_at"
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _quantity(value: Any) -> int:
    try:
        return max(1, int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 1


def _optional_str(value: Any, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = clean_text(str(value), max_length)
    return text or None


def _currency(value: Any) -> str:
    text = str(value or "").strip().upper()
    return text if len(text) == 3 and text.isalpha() else DEFAULT_CURRENCY


def _order_number(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def build_order_row(payload: dict[str, Any]) -> dict[str, Any]:
    """orders row for a validated orders/create payload."""
    customer = payload.get("customer") if isinstance(payload.get("customer"), dict) else {}
    email = normalize_email(payload.get("email") or customer.get("email"))
    name = " ".join(
        part for part in (customer.get("first_name"), customer.get("last_name")) if isinstance(part, str)
    ).strip()
    shipping = (
        (payload.get("total_shipping_price_set") or {}).get("shop_money") or {}
    ).get("amount")

    return {
        "shopify_order_id": str(payload["id"]),
        "order_number": _order_number(payload.get("order_number")),
        "order_name": _optional_str(payload.get("name"), 50),
        "customer_email": email if validate_email(email) else None,
        "customer_name": _optional_str(name, 200),
        "total_price_cents": money_to_cents(payload.get("total_price")),
        "subtotal_price_cents": money_to_cents(payload.get("subtotal_price")),
        "total_tax_cents": money_to_cents(payload.get("total_tax")),
        "total_shipping_cents": money_to_cents(shipping),
        "currency": _currency(payload.get("currency")),
        "financial_status": _optional_str(payload.get("financial_status"), 50),
        "fulfillment_status": _optional_str(payload.get("fulfillment_status"), 50),
        "processed_at": payload.get("processed_at"),
        "created_at": payload.get("created_at") or _now_iso(),
        "order_data": payload,
    }


def build_line_item_row(order_id: str, item: dict[str, Any], listing: dict[str, Any]) -> dict[str, Any]:
    """order_line_items row for one Shopify line item matched to a listing."""
    quantity = _quantity(item.get("quantity"))
    unit_price = money_to_cents(item.get("price"))
    subtotal = unit_price * quantity
    discount = money_to_cents(item.get("total_discount"))

    return {
        "order_id": order_id,
        "listing_id": listing["id"],
        "creator_id": listing["creator_id"],
        "shopify_line_item_id": _optional_str(item.get("id"), 50),
        "shopify_product_id": listing["shopify_product_id"],
        "shopify_variant_id": _optional_str(item.get("variant_id"), 50),
        "quantity": quantity,
        "unit_price_cents": unit_price,
        "line_subtotal_cents": subtotal,
        "line_total_cents": max(0, subtotal - discount),
        "product_title": _optional_str(item.get("title"), 255),
        "variant_title": _optional_str(item.get("variant_title"), 255),
    }


class OrderService:
    """Service for storefront orders and per-creator sales."""

    # =========================================================================
    # Recording
    # =========================================================================

    @staticmethod
    def find_order_id(shopify_order_id: str) -> str | None:
        client = SupabaseClient.get_client()
        rows = (
            client.table("orders")
            .select("id")
            .eq("shopify_order_id", shopify_order_id)
            .limit(1)
            .execute()
        ).data or []
        return rows[0]["id"] if rows else None

    @staticmethod
    def match_line_items(
        line_items: list[Any],
    ) -> tuple[list[tuple[dict[str, Any], dict[str, Any]]], int]:
        """
        Pair Shopify line items with live listings.

        Returns:
            ([(line_item, listing), ...], number of unmatched line items)
        """
        gids = {}
        for item in line_items:
            if isinstance(item, dict):
                gid = product_gid(item.get("product_id"))
                if gid:
                    gids[id(item)] = gid

        listings: dict[str, dict[str, Any]] = {}
        if gids:
            client = SupabaseClient.get_client()
            rows = (
                client.table("listings")
                .select("id, creator_id, shopify_product_id")
                .in_("shopify_product_id", sorted(set(gids.values())))
                .eq("status", ListingStatus.LIVE.value)
                .execute()
            ).data or []
            listings = {row["shopify_product_id"]: row for row in rows}

        matched = []
        for item in line_items:
            listing = listings.get(gids.get(id(item), ""))
            if listing is not None:
                matched.append((item, listing))
        return matched, len(line_items) - len(matched)

    @staticmethod
    def mark_listing_sold(listing_id: str) -> bool:
        """Flip a live listing to sold. Failures are logged, never raised."""
        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("listings")
                .update({"status": ListingStatus.SOLD.value, "sold_at": _now_iso()})
                .eq("id", listing_id)
                .eq("status", ListingStatus.LIVE.value)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to mark listing {listing_id} sold: {e}")
            return False
        return bool(response.data)

    @staticmethod
    def record_order(payload: dict[str, Any]) -> OrderIngestResult:
        """
        Record one orders/create delivery.

        Safe to call again for the same order: redeliveries are reported
        as duplicates and write nothing.

        Args:
            payload: Body already checked by parse_order_payload

        Raises:
            Exception: Database failures propagate so the delivery is retried
        """
        shopify_order_id = str(payload["id"])

        existing = OrderService.find_order_id(shopify_order_id)
        if existing:
            logger.info(f"Order {shopify_order_id} already recorded, skipping")
            return OrderIngestResult(shopify_order_id=shopify_order_id, order_id=existing, duplicate=True)

        line_items = payload.get("line_items") or []
        matched, unmatched = OrderService.match_line_items(line_items)
        if unmatched:
            logger.info(f"Order {shopify_order_id}: {unmatched} line item(s) not linked to a live listing")

        client = SupabaseClient.get_client()
        try:
            response = client.table("orders").insert(build_order_row(payload)).execute()
        except Exception as e:
            if UNIQUE_VIOLATION in str(e):
                logger.info(f"Order {shopify_order_id} recorded by a concurrent delivery")
                return OrderIngestResult(shopify_order_id=shopify_order_id, duplicate=True)
            raise
        order_id = response.data[0]["id"]

        rows = [build_line_item_row(order_id, item, listing) for item, listing in matched]
        if rows:
            try:
                client.table("order_line_items").insert(rows).execute()
            except Exception as e:
                logger.error(f"Failed to record line items for order {shopify_order_id}: {e}")
                try:
                    client.table("orders").delete().eq("id", order_id).execute()
                except Exception as cleanup_error:
                    logger.critical(
                        f"Order {shopify_order_id} saved without line items and could not be removed: "
                        f"{cleanup_error}. Manual intervention required."
                    )
                raise

        sold = []
        for listing_id in dict.fromkeys(row["listing_id"] for row in rows):
            if OrderService.mark_listing_sold(listing_id):
                sold.append(listing_id)

        logger.info(
            f"Recorded order {shopify_order_id} with {len(rows)} line item(s); "
            f"{len(sold)} listing(s) marked sold"
        )
        return OrderIngestResult(
            shopify_order_id=shopify_order_id,
            order_id=order_id,
            line_items_recorded=len(rows),
            unmatched_line_items=unmatched,
            listings_marked_sold=sold,
        )

    # =========================================================================
    # Creator Views
    # =========================================================================

    @staticmethod
    def list_creator_orders(
        creator_id: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        limit: int = 100,
    ) -> CreatorOrdersResponse:
        """
        Orders containing the creator's items, newest first.

        Each order carries only this creator's line items. The summary
        covers every matching line item, not just the returned orders.
        """
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        if start_date and end_date and start_date > end_date:
            raise ValidationFailedError(field_errors={"start_date": "Start date must be before end date"})
        limit = min(max(limit, 1), MAX_ORDERS)

        client = SupabaseClient.get_client()
        query = client.table("order_line_items").select("*").eq("creator_id", normalize_uuid(creator_id))
        if start_date is not None:
            query = query.gte("created_at", start_date.isoformat())
        if end_date is not None:
            query = query.lte("created_at", end_date.isoformat())
        items = query.order("created_at", desc=True).execute().data or []

        summary = summarize_sales(items)
        order_ids = list(dict.fromkeys(item["order_id"] for item in items if item.get("order_id")))[:limit]
        if not order_ids:
            return CreatorOrdersResponse(orders=[], summary=summary)

        rows = (
            client.table("orders")
            .select(CREATOR_ORDER_COLUMNS)
            .in_("id", order_ids)
            .order("created_at", desc=True)
            .execute()
        ).data or []

        by_order: dict[str, list[OrderLineItem]] = defaultdict(list)
        for item in items:
            by_order[item.get("order_id")].append(OrderLineItem(**item))

        orders = []
        for row in rows:
            line_items = by_order.get(row["id"], [])
            orders.append(CreatorOrder(
                **row,
                line_items=line_items,
                creator_total_cents=sum(i.line_total_cents for i in line_items),
            ))
        return CreatorOrdersResponse(orders=orders, summary=summary)

    @staticmethod
    def get_creator_order(creator_id: str, order_id: str) -> CreatorOrder:
        """
        One order with the creator's line items.

        Raises:
            OrderNotFoundError: Unknown id, or none of its items are the creator's
        """
        if not is_valid_uuid(order_id):
            raise OrderNotFoundError(order_id)
        order_id = normalize_uuid(order_id)

        client = SupabaseClient.get_client()
        items = (
            client.table("order_line_items")
            .select("*")
            .eq("order_id", order_id)
            .eq("creator_id", normalize_uuid(creator_id))
            .execute()
        ).data or []
        if not items:
            raise OrderNotFoundError(order_id)

        rows = (
            client.table("orders")
            .select(CREATOR_ORDER_COLUMNS)
            .eq("id", order_id)
            .limit(1)
            .execute()
        ).data or []
        if not rows:
            raise OrderNotFoundError(order_id)

        line_items = [OrderLineItem(**item) for item in items]
        return CreatorOrder(
            **rows[0],
            line_items=line_items,
            creator_total_cents=sum(i.line_total_cents for i in line_items),
        )

    # =========================================================================
    # Admin
    # =========================================================================

    @staticmethod
    def get_admin_sales(
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> AdminSalesResponse:
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        if start_date and end_date and start_date > end_date:
            raise ValidationFailedError(field_errors={"start_date": "Start date must be before end date"})

        items = PayoutService.fetch_line_items(None, start_date, end_date)
        creators = {item.get("creator_id") for item in items if item.get("creator_id")}
        return AdminSalesResponse(summary=summarize_sales(items), total_creators=len(creators))
