# =============================================================================
# app/routers/admin.py - Admin Endpoints
# =============================================================================
# Listing moderation, creator oversight, payouts, sales totals and the
# manual sync queue.
# Every endpoint requires an email listed in ADMIN_EMAILS. State-changing
# endpoints also require a CSRF token and share the admin rate limit.
# =============================================================================

import logging
from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Form, Path, Query

from app.auth import AuthUser, require_admin
from app.dependencies import PayPalDep, rate_limit, require_csrf
from app.exceptions import UpstreamServiceError
from core.models.creator import CreatorProfile, PayoutSettingsResponse
from core.models.listing import ListingResponse, ListingStatus
from core.models.order import AdminSalesResponse
from core.models.payout import AdminPayoutsResponse, PayoutRecord
from core.services.commerce_service import CommerceService
from core.services.creator_service import CreatorService
from core.services.moderation_service import ModerationService
from core.services.order_service import OrderService
from core.services.payout_service import PayoutService

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])

admin_action_guards = [
    Depends(rate_limit("admin-action", "RATE_LIMIT_ADMIN_ACTIONS")),
    Depends(require_csrf),
]


# =============================================================================
# Listings
# =============================================================================

@router.get("/listings", response_model=list[ListingResponse])
async def list_listings(
    status: Annotated[Optional[ListingStatus], Query(description="Filter by status")] = None,
    limit: Annotated[int, Query(ge=1, le=500)] = 100,
):
    """All listings, newest first."""
    return ModerationService.list_listings(status, limit)


@router.get("/listings/{listing_id}")
async def get_listing(listing_id: Annotated[UUID, Path()]):
    """Listing with photos and the creator who submitted it."""
    return ModerationService.get_listing(str(listing_id))


@router.post(
    "/listings/{listing_id}/review",
    response_model=ListingResponse,
    dependencies=admin_action_guards,
)
async def review_listing(
    listing_id: Annotated[UUID, Path()],
    action: Annotated[str | None, Form(description='"approve" or "reject"')] = None,
    notes: Annotated[str | None, Form(description="Internal notes, HTML sanitized")] = None,
    admin: AuthUser = Depends(require_admin),
):
    """
    Approve or reject a listing.

    Only listings that are pending_approval, approved or rejected can be
    reviewed. Notes are sanitized and truncated to 1000 characters.
    """
    logger.info(f"Admin {admin.id} reviewing listing {listing_id}: {action}")
    return ModerationService.review_listing(str(listing_id), action, notes)


# =============================================================================
# Creators
# =============================================================================

@router.get("/creators", response_model=list[CreatorProfile])
async def list_creators():
    return CreatorService.list_all()


@router.get("/creators/{creator_id}")
async def get_creator(creator_id: Annotated[UUID, Path()]):
    """Creator profile, their listings and the latest verification record."""
    return CreatorService.get_admin_detail(str(creator_id))


@router.post(
    "/creators/{creator_id}/verify-paypal",
    response_model=PayoutSettingsResponse,
    dependencies=admin_action_guards,
)
def verify_creator_paypal(
    creator_id: Annotated[UUID, Path()],
    verifier: PayPalDep,
):
    """Re-run PayPal verification for the creator's stored email."""
    if verifier is None:
        raise UpstreamServiceError("paypal", "PayPal API credentials are not configured")
    return CreatorService.verify_paypal(str(creator_id), verifier)


# =============================================================================
# Payouts
# =============================================================================

@router.get("/payouts", response_model=AdminPayoutsResponse)
async def list_payouts():
    """All payouts split by status, with platform-wide sales totals."""
    return PayoutService.get_admin_payouts()


@router.get("/sales", response_model=AdminSalesResponse)
def sales_summary(
    start_date: Annotated[Optional[datetime], Query(description="Only count sales on or after")] = None,
    end_date: Annotated[Optional[datetime], Query(description="Only count sales on or before")] = None,
):
    """Platform-wide sales totals and how many creators made sales."""
    return OrderService.get_admin_sales(start_date, end_date)


@router.post(
    "/payouts/{payout_id}/complete",
    response_model=PayoutRecord,
    dependencies=admin_action_guards,
)
async def complete_payout(payout_id: Annotated[UUID, Path()]):
    """Mark a pending payout as paid."""
    return PayoutService.complete_payout(str(payout_id))


# =============================================================================
# Commerce Sync Queue
# =============================================================================

@router.get("/sync-queue")
async def list_sync_queue(
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> list[dict[str, Any]]:
    """
    Listings whose store product could not be created or linked.

    The retry_manual_syncs worker task resolves entries automatically when
    Shopify is reachable again.
    """
    return CommerceService.list_pending(limit)
