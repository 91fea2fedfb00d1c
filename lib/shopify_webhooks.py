# =============================================================================
# lib/shopify_webhooks.py - Shopify Webhook Verification and Parsing
# =============================================================================
# Shopify signs each delivery with the app's webhook secret:
#
#   X-Shopify-Hmac-SHA256: base64(HMAC-SHA256(secret, raw request body))
#
# The signature must be checked against the raw bytes before the body is
# parsed. Order payloads are then shape-checked so malformed deliveries
# never reach the database.
# =============================================================================

import base64
import hashlib
import hmac
import json
import logging
import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from lib.utils import ApplicationError

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Shopify-Hmac-SHA256"
TOPIC_HEADER = "X-Shopify-Topic"
MAX_PAYLOAD_BYTES = 5 * 1024 * 1024

PRODUCT_GID_PREFIX = "gid://shopify/Product/"
NUMERIC_ID_RE = re.compile(r"^\d+$")
PRODUCT_GID_RE = re.compile(r"^gid://shopify/Product/(\d+)$")


class WebhookPayloadError(ApplicationError):
    """Raised when a webhook body is not a usable order payload."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="WEBHOOK_PAYLOAD_INVALID", **kwargs)


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """
    Check a delivery's HMAC header against the raw body.

    Returns False (never raises) for a missing secret, a missing header or
    a mismatch. The comparison is constant-time.
    """
    if not secret:
        logger.error("SHOPIFY_WEBHOOK_SECRET is not configured; rejecting webhook")
        return False
    if not signature:
        return False

    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    expected = base64.b64encode(digest).decode("ascii")
    return hmac.compare_digest(expected.encode("ascii"), signature.strip().encode("utf-8", "ignore"))


def sign_payload(body: bytes, secret: str) -> str:
    """The header value Shopify would send for body."""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _is_money(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and number >= 0


def parse_order_payload(body: bytes) -> dict[str, Any]:
    """
    Decode and shape-check an orders/create body.

    Raises:
        WebhookPayloadError: Oversized, not JSON, not an object, no numeric
            id, line_items not a list, or a negative/non-finite total
    """
    if len(body) > MAX_PAYLOAD_BYTES:
        raise WebhookPayloadError("Payload too large")

    try:
        payload = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        raise WebhookPayloadError("Payload is not valid JSON")

    if not isinstance(payload, dict):
        raise WebhookPayloadError("Payload must be a JSON object")

    order_id = payload.get("id")
    if order_id is None or isinstance(order_id, bool) or not NUMERIC_ID_RE.match(str(order_id)):
        raise WebhookPayloadError("Order id is missing or not numeric")

    line_items = payload.get("line_items")
    if line_items is not None and not isinstance(line_items, list):
        raise WebhookPayloadError("line_items must be a list")

    for name in ("total_price", "subtotal_price", "total_tax"):
        if not _is_money(payload.get(name)):
            raise WebhookPayloadError(f"{name} must be a non-negative number")

    return payload


def money_to_cents(value: Any) -> int:
    """Shopify money string ("150.00") to integer cents; bad values are 0."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        return 0
    if not amount.is_finite() or amount < 0:
        return 0
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def product_gid(product_id: Any) -> str | None:
    """
    Canonical product GID for a line item's product_id.

    Accepts the numeric REST id or an existing GID; anything else is None.
    """
    if product_id is None or isinstance(product_id, bool):
        return None
    text = str(product_id).strip()
    if NUMERIC_ID_RE.match(text):
        return f"{PRODUCT_GID_PREFIX}{text}"
    if PRODUCT_GID_RE.match(text):
        return text
    return None
