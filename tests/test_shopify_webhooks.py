# =============================================================================
# tests/test_shopify_webhooks.py - Webhook Signature and Payload Tests
# =============================================================================

import base64
import hashlib
import hmac
import json

import pytest

from lib.shopify_webhooks import (
    MAX_PAYLOAD_BYTES,
    WebhookPayloadError,
    money_to_cents,
    parse_order_payload,
    product_gid,
    sign_payload,
    verify_signature,
)

SECRET = "whsec-test"


class TestVerifySignature:
    """Tests for verify_signature."""

    def test_valid_signature(self):
        body = b'{"id": 1}'
        header = base64.b64encode(hmac.new(SECRET.encode(), body, hashlib.sha256).digest()).decode()

        assert verify_signature(body, header, SECRET) is True

    def test_sign_payload_matches(self):
        body = b'{"id": 1}'

        assert verify_signature(body, sign_payload(body, SECRET), SECRET) is True

    def test_tampered_body(self):
        header = sign_payload(b'{"id": 1}', SECRET)

        assert verify_signature(b'{"id": 2}', header, SECRET) is False

    def test_wrong_secret(self):
        body = b'{"id": 1}'

        assert verify_signature(body, sign_payload(body, "other"), SECRET) is False

    @pytest.mark.parametrize("header", [None, "", "not-base64-at-all", "é"])
    def test_missing_or_garbage_header(self, header):
        assert verify_signature(b"{}", header, SECRET) is False

    def test_unconfigured_secret_rejects(self):
        body = b"{}"

        assert verify_signature(body, sign_payload(body, ""), "") is False


class TestParseOrderPayload:
    """Tests for parse_order_payload."""

    def test_valid_order(self):
        payload = parse_order_payload(json.dumps({
            "id": 820982911946154508,
            "total_price": "150.00",
            "line_items": [],
        }).encode())

        assert payload["id"] == 820982911946154508

    def test_string_id_accepted(self):
        assert parse_order_payload(b'{"id": "42"}')["id"] == "42"

    @pytest.mark.parametrize("body, message", [
        (b"not json", "not valid JSON"),
        (b"[1, 2]", "JSON object"),
        (b'{"line_items": []}', "Order id"),
        (b'{"id": "gid://shopify/Order/1"}', "Order id"),
        (b'{"id": true}', "Order id"),
        (b'{"id": 1, "line_items": {}}', "line_items"),
        (b'{"id": 1, "total_price": "-1.00"}', "total_price"),
        (b'{"id": 1, "total_tax": "abc"}', "total_tax"),
        (b'{"id": 1, "subtotal_price": "Infinity"}', "subtotal_price"),
    ])
    def test_rejected(self, body, message):
        with pytest.raises(WebhookPayloadError, match=message):
            parse_order_payload(body)

    def test_oversized(self):
        with pytest.raises(WebhookPayloadError, match="too large"):
            parse_order_payload(b" " * (MAX_PAYLOAD_BYTES + 1))


class TestHelpers:
    """Tests for money and product id conversion."""

    @pytest.mark.parametrize("raw, cents", [
        ("150.00", 15000),
        ("0.125", 13),
        (99, 9900),
        (None, 0),
        ("-5.00", 0),
        ("abc", 0),
        (True, 0),
    ])
    def test_money_to_cents(self, raw, cents):
        assert money_to_cents(raw) == cents

    @pytest.mark.parametrize("raw, gid", [
        (632910392, "gid://shopify/Product/632910392"),
        ("632910392", "gid://shopify/Product/632910392"),
        ("gid://shopify/Product/7", "gid://shopify/Product/7"),
        ("gid://shopify/Variant/7", None),
        (None, None),
        ("", None),
    ])
    def test_product_gid(self, raw, gid):
        assert product_gid(raw) == gid
