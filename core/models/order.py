# =============================================================================
# core/models/order.py - Order Schemas
# =============================================================================
# Orders are recorded from Shopify's orders/create webhook. Each order has
# one order_line_items row per purchased product that maps to a WornVault
# listing; line items carry the creator_id so sales roll up per creator.
# All money values are integer cents.
# =============================================================================

from datetime import datetime

from pydantic import BaseModel, Field

from core.models.payout import SalesSummary


class OrderLineItem(BaseModel):
    id: str | None = None
    order_id: str
    listing_id: str | None = None
    creator_id: str | None = None
    shopify_line_item_id: str | None = None
    shopify_product_id: str | None = None
    quantity: int = 1
    unit_price_cents: int = 0
    line_total_cents: int = 0
    product_title: str | None = None
    variant_title: str | None = None
    created_at: datetime | None = None

    model_config = {"extra": "ignore"}


class CreatorOrder(BaseModel):
    """
    An order as seen by one creator: only that creator's line items.

    Customer contact details are not included.

    Example:
        {
            "id": "5f0c...",
            "order_name": "#1001",
            "currency": "USD",
            "financial_status": "paid",
            "creator_total_cents": 15000,
            "line_items": [{"listing_id": "...", "quantity": 1, "line_total_cents": 15000}]
        }
    """
    id: str
    shopify_order_id: str
    order_number: int | None = None
    order_name: str | None = None
    currency: str = "USD"
    financial_status: str | None = None
    fulfillment_status: str | None = None
    processed_at: datetime | None = None
    created_at: datetime | None = None
    creator_total_cents: int = 0
    line_items: list[OrderLineItem] = Field(default_factory=list)

    model_config = {"extra": "ignore"}


class CreatorOrdersResponse(BaseModel):
    orders: list[CreatorOrder] = Field(default_factory=list)
    summary: SalesSummary


class OrderIngestResult(BaseModel):
    """Outcome of recording one orders/create delivery."""
    shopify_order_id: str
    order_id: str | None = None
    duplicate: bool = False
    line_items_recorded: int = 0
    unmatched_line_items: int = 0
    listings_marked_sold: list[str] = Field(default_factory=list)


class AdminSalesResponse(BaseModel):
    """Platform-wide sales totals plus the number of creators with sales."""
    summary: SalesSummary
    total_creators: int = 0
