# =============================================================================
# tests/test_order_service.py - Order Recording and Sales View Tests
# =============================================================================

from datetime import datetime, timezone

import pytest

from app.exceptions import OrderNotFoundError, ValidationFailedError
from core.services.order_service import OrderService, build_line_item_row, build_order_row
from tests.conftest import CREATOR_ID, LISTING_ID, db_result

ORDER_ID = "66666666-6666-4666-8666-666666666666"
PRODUCT_GID = "gid://shopify/Product/632910392"


def order_payload(**overrides):
    payload = {
        "id": 820982911946154508,
        "order_number": 1001,
        "name": "#1001",
        "email": " Buyer@Example.com ",
        "customer": {"first_name": "Sam", "last_name": "Buyer"},
        "currency": "usd",
        "total_price": "165.00",
        "subtotal_price": "150.00",
        "total_tax": "15.00",
        "total_shipping_price_set": {"shop_money": {"amount": "0.00"}},
        "financial_status": "paid",
        "fulfillment_status": None,
        "created_at": "2024-05-01T12:00:00-04:00",
        "line_items": [
            {"id": 466157049, "product_id": 632910392, "variant_id": 39072856, "quantity": 1,
             "price": "150.00", "title": "Vintage denim jacket"},
            {"id": 466157050, "product_id": 999, "quantity": 1, "price": "10.00", "title": "Gift wrap"},
        ],
    }
    payload.update(overrides)
    return payload


def live_listing():
    return {"id": LISTING_ID, "creator_id": CREATOR_ID, "shopify_product_id": PRODUCT_GID}


def stub_recording(supabase, existing=None, listings=None):
    orders = supabase.tables["orders"]
    orders.select.return_value.eq.return_value.limit.return_value.execute.return_value = db_result(existing or [])
    orders.insert.return_value.execute.return_value = db_result([{"id": ORDER_ID}])
    lookup = supabase.tables["listings"].select.return_value.in_.return_value.eq.return_value
    lookup.execute.return_value = db_result(listings if listings is not None else [live_listing()])
    sold = supabase.tables["listings"].update.return_value.eq.return_value.eq.return_value
    sold.execute.return_value = db_result([{"id": LISTING_ID}])
    return orders


# =============================================================================
# Row Building
# =============================================================================

class TestBuildRows:
    """Tests for build_order_row and build_line_item_row."""

    def test_order_row(self):
        row = build_order_row(order_payload())

        assert row["shopify_order_id"] == "820982911946154508"
        assert row["order_name"] == "#1001"
        assert row["customer_email"] == "buyer@example.com"
        assert row["customer_name"] == "Sam Buyer"
        assert row["currency"] == "USD"
        assert row["total_price_cents"] == 16500
        assert row["subtotal_price_cents"] == 15000
        assert row["total_tax_cents"] == 1500
        assert row["total_shipping_cents"] == 0
        assert row["order_data"]["id"] == 820982911946154508

    def test_invalid_email_and_currency_dropped(self):
        row = build_order_row(order_payload(email="nope", customer=None, currency="dollars"))

        assert row["customer_email"] is None
        assert row["customer_name"] is None
        assert row["currency"] == "USD"

    def test_line_item_row(self):
        item = {"id": 1, "variant_id": 2, "quantity": 2.7, "price": "75.00", "total_discount": "10.00"}

        row = build_line_item_row(ORDER_ID, item, live_listing())

        assert row["quantity"] == 2
        assert row["unit_price_cents"] == 7500
        assert row["line_subtotal_cents"] == 15000
        assert row["line_total_cents"] == 14000
        assert row["creator_id"] == CREATOR_ID
        assert row["shopify_line_item_id"] == "1"

    @pytest.mark.parametrize("quantity", [0, -3, None, "x"])
    def test_quantity_at_least_one(self, quantity):
        row = build_line_item_row(ORDER_ID, {"quantity": quantity, "price": "10"}, live_listing())

        assert row["quantity"] == 1


# =============================================================================
# Recording
# =============================================================================

class TestRecordOrder:
    """Tests for OrderService.record_order."""

    def test_records_matched_items_and_marks_sold(self, supabase):
        stub_recording(supabase)

        result = OrderService.record_order(order_payload())

        rows = supabase.tables["order_line_items"].insert.call_args[0][0]
        assert result.order_id == ORDER_ID
        assert result.line_items_recorded == 1
        assert result.unmatched_line_items == 1
        assert result.listings_marked_sold == [LISTING_ID]
        assert [r["listing_id"] for r in rows] == [LISTING_ID]
        assert rows[0]["order_id"] == ORDER_ID
        assert rows[0]["line_total_cents"] == 15000

    def test_listing_lookup_uses_gids_and_live_status(self, supabase):
        stub_recording(supabase)

        OrderService.record_order(order_payload())

        select = supabase.tables["listings"].select.return_value
        select.in_.assert_called_once_with(
            "shopify_product_id", ["gid://shopify/Product/632910392", "gid://shopify/Product/999"]
        )
        select.in_.return_value.eq.assert_called_once_with("status", "live")

    def test_sold_update_guarded_by_live_status(self, supabase):
        stub_recording(supabase)

        OrderService.record_order(order_payload())

        update = supabase.tables["listings"].update
        assert update.call_args[0][0]["status"] == "sold"
        update.return_value.eq.return_value.eq.assert_called_once_with("status", "live")

    def test_already_recorded_skipped(self, supabase):
        orders = stub_recording(supabase, existing=[{"id": ORDER_ID}])

        result = OrderService.record_order(order_payload())

        assert result.duplicate is True
        assert result.order_id == ORDER_ID
        orders.insert.assert_not_called()
        supabase.tables["order_line_items"].insert.assert_not_called()

    def test_concurrent_insert_is_duplicate(self, supabase):
        orders = stub_recording(supabase)
        orders.insert.return_value.execute.side_effect = Exception(
            '23505 duplicate key value violates unique constraint "orders_shopify_order_id_key"'
        )

        result = OrderService.record_order(order_payload())

        assert result.duplicate is True
        supabase.tables["order_line_items"].insert.assert_not_called()

    def test_order_without_matches_still_recorded(self, supabase):
        orders = stub_recording(supabase, listings=[])

        result = OrderService.record_order(order_payload())

        orders.insert.assert_called_once()
        supabase.tables["order_line_items"].insert.assert_not_called()
        assert result.unmatched_line_items == 2

    def test_line_item_failure_removes_order(self, supabase):
        orders = stub_recording(supabase)
        supabase.tables["order_line_items"].insert.return_value.execute.side_effect = Exception("timeout")

        with pytest.raises(Exception, match="timeout"):
            OrderService.record_order(order_payload())

        orders.delete.return_value.eq.assert_called_once_with("id", ORDER_ID)
        supabase.tables["listings"].update.assert_not_called()

    def test_sold_update_failure_does_not_fail_order(self, supabase):
        stub_recording(supabase)
        supabase.tables["listings"].update.side_effect = Exception("db down")

        result = OrderService.record_order(order_payload())

        assert result.line_items_recorded == 1
        assert result.listings_marked_sold == []


# =============================================================================
# Creator Views
# =============================================================================

class TestCreatorOrders:
    """Tests for list_creator_orders and get_creator_order."""

    def test_list_groups_items_by_order(self, supabase):
        items = supabase.tables["order_line_items"].select.return_value.eq.return_value
        items.order.return_value.execute.return_value = db_result([
            {"order_id": ORDER_ID, "listing_id": LISTING_ID, "quantity": 1, "line_total_cents": 15000},
            {"order_id": ORDER_ID, "listing_id": "other", "quantity": 1, "line_total_cents": 5000},
        ])
        orders = supabase.tables["orders"].select.return_value.in_.return_value
        orders.order.return_value.execute.return_value = db_result([
            {"id": ORDER_ID, "shopify_order_id": "820982911946154508", "order_name": "#1001"},
        ])

        response = OrderService.list_creator_orders(CREATOR_ID)

        assert len(response.orders) == 1
        assert response.orders[0].creator_total_cents == 20000
        assert len(response.orders[0].line_items) == 2
        assert response.summary.gross_cents == 20000
        assert response.summary.order_count == 1
        supabase.tables["orders"].select.return_value.in_.assert_called_once_with("id", [ORDER_ID])

    def test_creator_view_excludes_customer_details(self, supabase):
        items = supabase.tables["order_line_items"].select.return_value.eq.return_value
        items.order.return_value.execute.return_value = db_result([{"order_id": ORDER_ID, "line_total_cents": 1}])

        OrderService.list_creator_orders(CREATOR_ID)

        columns = supabase.tables["orders"].select.call_args[0][0]
        assert "customer_email" not in columns
        assert "order_data" not in columns

    def test_no_sales(self, supabase):
        items = supabase.tables["order_line_items"].select.return_value.eq.return_value
        items.order.return_value.execute.return_value = db_result([])

        response = OrderService.list_creator_orders(CREATOR_ID)

        assert response.orders == []
        supabase.tables["orders"].select.assert_not_called()

    def test_inverted_range(self, supabase):
        with pytest.raises(ValidationFailedError):
            OrderService.list_creator_orders(
                CREATOR_ID,
                start_date=datetime(2024, 3, 1),
                end_date=datetime(2024, 2, 1, tzinfo=timezone.utc),
            )

    def test_detail(self, supabase):
        items = supabase.tables["order_line_items"].select.return_value.eq.return_value.eq.return_value
        items.execute.return_value = db_result([{"order_id": ORDER_ID, "quantity": 1, "line_total_cents": 15000}])
        order = supabase.tables["orders"].select.return_value.eq.return_value.limit.return_value
        order.execute.return_value = db_result([{"id": ORDER_ID, "shopify_order_id": "1", "currency": "USD"}])

        result = OrderService.get_creator_order(CREATOR_ID, ORDER_ID)

        assert result.id == ORDER_ID
        assert result.creator_total_cents == 15000

    def test_detail_of_other_creators_order(self, supabase):
        items = supabase.tables["order_line_items"].select.return_value.eq.return_value.eq.return_value
        items.execute.return_value = db_result([])

        with pytest.raises(OrderNotFoundError):
            OrderService.get_creator_order(CREATOR_ID, ORDER_ID)

        supabase.tables["orders"].select.assert_not_called()

    def test_detail_invalid_id(self, supabase):
        with pytest.raises(OrderNotFoundError):
            OrderService.get_creator_order(CREATOR_ID, "1001")


# =============================================================================
# Admin
# =============================================================================

class TestAdminSales:
    """Tests for OrderService.get_admin_sales."""

    def test_counts_distinct_creators(self, supabase):
        supabase.tables["order_line_items"].select.return_value.execute.return_value = db_result([
            {"order_id": "o1", "creator_id": CREATOR_ID, "quantity": 1, "line_total_cents": 10000},
            {"order_id": "o1", "creator_id": "c2", "quantity": 1, "line_total_cents": 5000},
            {"order_id": "o2", "creator_id": CREATOR_ID, "quantity": 1, "line_total_cents": 5000},
        ])

        result = OrderService.get_admin_sales()

        assert result.total_creators == 2
        assert result.summary.gross_cents == 20000
        assert result.summary.order_count == 2
