# =============================================================================
# core/services/payout_service.py - Sales Totals and Payouts
# =============================================================================
# Sales come from order_line_items (one row per sold product, written when
# a storefront order is recorded). The platform keeps a percentage fee; the
# remainder is the creator's payout.
# =============================================================================

import logging
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

from app.config import settings
from app.exceptions import PayoutNotFoundError, ValidationFailedError
from core.models.payout import (
    AdminPayoutsResponse,
    CreatorPayoutsResponse,
    PayoutRecord,
    PayoutStatus,
    SalesSummary,
)
from lib.supabase_client import SupabaseClient, is_not_found
from lib.utils import is_valid_uuid, normalize_uuid

logger = logging.getLogger(__name__)


def clamp_fee_percent(value: float | None) -> float:
    if value is None:
        return 10.0
    return min(max(float(value), 0.0), 100.0)


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def summarize_sales(line_items: list[dict[str, Any]], fee_percent: float | None = None) -> SalesSummary:
    """
    Totals for a set of order line items.

    Example:
        summarize_sales([{"order_id": "a", "quantity": 1, "line_total_cents": 15000}])
        # gross 15000, fee 1500, net 13500
    """
    fee = clamp_fee_percent(settings.PLATFORM_FEE_PERCENT if fee_percent is None else fee_percent)
    gross = sum(int(item.get("line_total_cents") or 0) for item in line_items)
    items_sold = sum(int(item.get("quantity") or 0) for item in line_items)
    orders = len({item.get("order_id") for item in line_items if item.get("order_id") is not None})

    fee_cents = _round_half_up(Decimal(gross) * Decimal(str(fee)) / 100)
    return SalesSummary(
        gross_cents=gross,
        platform_fee_cents=fee_cents,
        net_cents=gross - fee_cents,
        platform_fee_percent=fee,
        items_sold=items_sold,
        order_count=orders,
        average_order_cents=_round_half_up(Decimal(gross) / orders) if orders else 0,
    )


def as_utc(value: datetime | None) -> datetime | None:
    """Timezone-aware UTC datetime; naive values are taken as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _split(rows: list[dict[str, Any]]) -> tuple[list[PayoutRecord], list[PayoutRecord]]:
    records = [PayoutRecord(**row) for row in rows]
    pending = [r for r in records if r.status == PayoutStatus.PENDING]
    completed = [r for r in records if r.status == PayoutStatus.COMPLETED]
    return pending, completed


class PayoutService:
    """Service for creator sales and payout records."""

    @staticmethod
    def fetch_line_items(
        creator_id: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> list[dict[str, Any]]:
        client = SupabaseClient.get_client()
        query = client.table("order_line_items").select("line_total_cents, quantity, order_id, creator_id")
        if creator_id is not None:
            query = query.eq("creator_id", normalize_uuid(creator_id))
        if start_date is not None:
            query = query.gte("created_at", start_date.isoformat())
        if end_date is not None:
            query = query.lte("created_at", end_date.isoformat())
        return query.execute().data or []

    @staticmethod
    def get_creator_payouts(
        creator_id: str,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> CreatorPayoutsResponse:
        start_date, end_date = as_utc(start_date), as_utc(end_date)
        if start_date and end_date and start_date > end_date:
            raise ValidationFailedError(field_errors={"start_date": "Start date must be before end date"})

        summary = summarize_sales(PayoutService.fetch_line_items(creator_id, start_date, end_date))

        client = SupabaseClient.get_client()
        rows = (
            client.table("payouts")
            .select("*")
            .eq("creator_id", normalize_uuid(creator_id))
            .order("created_at", desc=True)
            .execute()
        ).data or []
        pending, completed = _split(rows)
        return CreatorPayoutsResponse(summary=summary, pending=pending, completed=completed)

    @staticmethod
    def get_admin_payouts() -> AdminPayoutsResponse:
        client = SupabaseClient.get_client()
        rows = (
            client.table("payouts")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        ).data or []
        pending, completed = _split(rows)
        return AdminPayoutsResponse(
            sales=summarize_sales(PayoutService.fetch_line_items()),
            pending=pending,
            completed=completed,
            pending_total_cents=sum(p.amount_cents for p in pending),
        )

    @staticmethod
    def complete_payout(payout_id: str) -> PayoutRecord:
        """
        Mark a pending payout as paid.

        Raises:
            PayoutNotFoundError: Unknown id, or the payout is not pending
        """
        if not is_valid_uuid(payout_id):
            raise PayoutNotFoundError(payout_id)

        client = SupabaseClient.get_client()
        try:
            response = (
                client.table("payouts")
                .update({
                    "status": PayoutStatus.COMPLETED.value,
                    "paid_at": datetime.now(timezone.utc).isoformat(),
                })
                .eq("id", normalize_uuid(payout_id))
                .eq("status", PayoutStatus.PENDING.value)
                .execute()
            )
        except Exception as e:
            if is_not_found(e):
                raise PayoutNotFoundError(payout_id)
            raise

        if not response.data:
            raise PayoutNotFoundError(payout_id)

        logger.info(f"Payout {payout_id} marked completed")
        return PayoutRecord(**response.data[0])
