# =============================================================================
# core/models/payout.py - Sales and Payout Schemas
# =============================================================================
# All money values are integer cents.
# =============================================================================

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PayoutStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


class SalesSummary(BaseModel):
    """
    Creator sales totals and the resulting payout.

    Example:
        {
            "gross_cents": 50000,
            "platform_fee_cents": 5000,
            "net_cents": 45000,
            "platform_fee_percent": 10.0,
            "items_sold": 3,
            "order_count": 2,
            "average_order_cents": 25000
        }
    """
    gross_cents: int = 0
    platform_fee_cents: int = 0
    net_cents: int = 0
    platform_fee_percent: float = 10.0
    items_sold: int = 0
    order_count: int = 0
    average_order_cents: int = 0


class PayoutRecord(BaseModel):
    id: str
    creator_id: str
    amount_cents: int
    status: PayoutStatus
    paypal_email: str | None = None
    created_at: datetime | None = None
    paid_at: datetime | None = None

    model_config = {"extra": "ignore"}


class CreatorPayoutsResponse(BaseModel):
    summary: SalesSummary
    pending: list[PayoutRecord] = Field(default_factory=list)
    completed: list[PayoutRecord] = Field(default_factory=list)


class AdminPayoutsResponse(BaseModel):
    sales: SalesSummary | None = None
    pending: list[PayoutRecord] = Field(default_factory=list)
    completed: list[PayoutRecord] = Field(default_factory=list)
    pending_total_cents: int = 0
