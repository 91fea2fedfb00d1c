# =============================================================================
# tests/test_payouts.py - Sales Totals and Payout Tests
# =============================================================================

from datetime import datetime, timezone

import pytest

from app.exceptions import PayoutNotFoundError, ValidationFailedError
from core.models.payout import PayoutStatus
from core.services.payout_service import PayoutService, clamp_fee_percent, summarize_sales
from tests.conftest import CREATOR_ID, db_result

PAYOUT_ID = "55555555-5555-4555-8555-555555555555"


class TestSummarizeSales:
    """Tests for summarize_sales."""

    def test_totals(self):
        summary = summarize_sales([
            {"order_id": "o1", "quantity": 1, "line_total_cents": 15000},
            {"order_id": "o1", "quantity": 2, "line_total_cents": 20000},
            {"order_id": "o2", "quantity": 1, "line_total_cents": 15000},
        ], fee_percent=10)

        assert summary.gross_cents == 50000
        assert summary.platform_fee_cents == 5000
        assert summary.net_cents == 45000
        assert summary.items_sold == 4
        assert summary.order_count == 2
        assert summary.average_order_cents == 25000

    def test_fee_rounds_half_up(self):
        summary = summarize_sales([{"order_id": "o1", "quantity": 1, "line_total_cents": 10005}], fee_percent=10)

        # 1000.5 cents -> 1001
        assert summary.platform_fee_cents == 1001
        assert summary.net_cents == 9004

    def test_empty(self):
        summary = summarize_sales([], fee_percent=10)

        assert summary.gross_cents == 0
        assert summary.order_count == 0
        assert summary.average_order_cents == 0

    def test_missing_values_count_as_zero(self):
        summary = summarize_sales([{"order_id": None, "quantity": None, "line_total_cents": None}], fee_percent=10)

        assert summary.gross_cents == 0
        assert summary.order_count == 0

    def test_default_fee_from_settings(self):
        assert summarize_sales([], fee_percent=None).platform_fee_percent == 10.0

    @pytest.mark.parametrize("raw, expected", [(-5, 0.0), (150, 100.0), (12.5, 12.5), (None, 10.0)])
    def test_clamp_fee_percent(self, raw, expected):
        assert clamp_fee_percent(raw) == expected


class TestCreatorPayouts:
    """Tests for PayoutService.get_creator_payouts."""

    def test_split_by_status(self, supabase):
        supabase.tables["order_line_items"].select.return_value.eq.return_value.execute.return_value = db_result(
            [{"order_id": "o1", "quantity": 1, "line_total_cents": 15000}]
        )
        supabase.tables["payouts"].select.return_value.eq.return_value.order.return_value.execute.return_value = db_result([
            {"id": "p1", "creator_id": CREATOR_ID, "amount_cents": 13500, "status": "pending"},
            {"id": "p2", "creator_id": CREATOR_ID, "amount_cents": 9000, "status": "completed"},
        ])

        result = PayoutService.get_creator_payouts(CREATOR_ID)

        assert result.summary.gross_cents == 15000
        assert [p.id for p in result.pending] == ["p1"]
        assert [p.id for p in result.completed] == ["p2"]

    def test_date_range_filters(self, supabase):
        start = datetime(2026, 1, 1, tzinfo=timezone.utc)
        end = datetime(2026, 2, 1, tzinfo=timezone.utc)
        query = supabase.tables["order_line_items"].select.return_value.eq.return_value
        query.gte.return_value.lte.return_value.execute.return_value = db_result([])
        supabase.tables["payouts"].select.return_value.eq.return_value.order.return_value.execute.return_value = db_result([])

        PayoutService.get_creator_payouts(CREATOR_ID, start, end)

        query.gte.assert_called_once_with("created_at", start.isoformat())
        query.gte.return_value.lte.assert_called_once_with("created_at", end.isoformat())

    def test_inverted_range_rejected(self, supabase):
        with pytest.raises(ValidationFailedError):
            PayoutService.get_creator_payouts(
                CREATOR_ID,
                datetime(2026, 2, 1, tzinfo=timezone.utc),
                datetime(2026, 1, 1, tzinfo=timezone.utc),
            )


class TestCompletePayout:
    """Tests for PayoutService.complete_payout."""

    def _update_chain(self, supabase):
        return supabase.tables["payouts"].update.return_value.eq.return_value.eq.return_value

    def test_marks_completed(self, supabase):
        self._update_chain(supabase).execute.return_value = db_result([{
            "id": PAYOUT_ID, "creator_id": CREATOR_ID, "amount_cents": 13500,
            "status": "completed", "paid_at": "2026-03-01T12:00:00+00:00",
        }])

        record = PayoutService.complete_payout(PAYOUT_ID)

        assert record.status == PayoutStatus.COMPLETED
        update = supabase.tables["payouts"].update.call_args[0][0]
        assert update["status"] == "completed"
        assert update["paid_at"]
        supabase.tables["payouts"].update.return_value.eq.return_value.eq.assert_called_once_with("status", "pending")

    def test_not_pending_or_missing(self, supabase):
        self._update_chain(supabase).execute.return_value = db_result([])

        with pytest.raises(PayoutNotFoundError):
            PayoutService.complete_payout(PAYOUT_ID)

    def test_invalid_id(self, supabase):
        with pytest.raises(PayoutNotFoundError):
            PayoutService.complete_payout("not-a-uuid")

        supabase.tables["payouts"].update.assert_not_called()
