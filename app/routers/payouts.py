# =============================================================================
# app/routers/payouts.py - Creator Payout Endpoints
# =============================================================================

from datetime import datetime
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query

from app.auth import get_current_creator
from core.models.payout import CreatorPayoutsResponse
from core.services.payout_service import PayoutService

router = APIRouter()


@router.get("", response_model=CreatorPayoutsResponse)
async def get_payouts(
    creator: dict[str, Any] = Depends(get_current_creator),
    start_date: Annotated[Optional[datetime], Query(description="Only count sales on or after")] = None,
    end_date: Annotated[Optional[datetime], Query(description="Only count sales on or before")] = None,
):
    """
    Sales summary and payout history for the current creator.

    The summary covers `order_line_items` in the optional date range; the
    platform fee is PLATFORM_FEE_PERCENT of gross, rounded half-up.
    """
    return PayoutService.get_creator_payouts(creator["id"], start_date, end_date)
