# =============================================================================
# app/routers/webhooks.py - Shopify Webhook Endpoints
# =============================================================================
# Endpoints:
#   POST /shopify/orders/create  - Record a storefront order
#
# Deliveries are authenticated by HMAC signature, not by a user session, so
# there is no CSRF check. The body is read raw because the signature covers
# the exact bytes Shopify sent.
# =============================================================================

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool

from app.config import settings
from app.dependencies import rate_limit
from app.exceptions import ValidationFailedError, WebhookSignatureError
from core.models.order import OrderIngestResult
from core.services.order_service import OrderService
from lib.shopify_webhooks import (
    MAX_PAYLOAD_BYTES,
    SIGNATURE_HEADER,
    WebhookPayloadError,
    parse_order_payload,
    verify_signature,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/shopify/orders/create",
    response_model=OrderIngestResult,
    dependencies=[Depends(rate_limit("webhook", "RATE_LIMIT_WEBHOOK", authenticated=False))],
)
async def shopify_order_created(request: Request):
    """
    Record an order from Shopify's orders/create webhook.

    - **401**: Signature missing or wrong
    - **400**: Body is not a usable order payload
    - **200**: Recorded, or already recorded (duplicate deliveries are no-ops)

    Database failures return 5xx so Shopify redelivers; recording is
    idempotent on the Shopify order id.
    """
    body = await request.body()
    if len(body) > MAX_PAYLOAD_BYTES:
        raise ValidationFailedError(message="Payload too large")

    if not verify_signature(body, request.headers.get(SIGNATURE_HEADER), settings.SHOPIFY_WEBHOOK_SECRET):
        logger.warning("Rejected Shopify webhook with invalid signature")
        raise WebhookSignatureError()

    try:
        payload = parse_order_payload(body)
    except WebhookPayloadError as e:
        logger.warning(f"Rejected Shopify order payload: {e.message}")
        raise ValidationFailedError(message=e.message)

    # Blocking: Supabase calls
    return await run_in_threadpool(OrderService.record_order, payload)
