# =============================================================================
# app/routers/orders.py - Creator Sales Endpoints
# =============================================================================

from datetime import datetime
from typing import Annotated, Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query

from app.auth import get_current_creator
from core.models.order import CreatorOrder, CreatorOrdersResponse
from core.services.order_service import MAX_ORDERS, OrderService

router = APIRouter()


@router.get("", response_model=CreatorOrdersResponse)
def list_orders(
    creator: dict[str, Any] = Depends(get_current_creator),
    start_date: Annotated[Optional[datetime], Query(description="Only orders on or after")] = None,
    end_date: Annotated[Optional[datetime], Query(description="Only orders on or before")] = None,
    limit: Annotated[int, Query(ge=1, le=MAX_ORDERS)] = 100,
):
    """Orders containing the current creator's items, newest first, with sales totals."""
    return OrderService.list_creator_orders(creator["id"], start_date, end_date, limit)


@router.get("/{order_id}", response_model=CreatorOrder)
def get_order(
    order_id: Annotated[UUID, Path()],
    creator: dict[str, Any] = Depends(get_current_creator),
):
    return OrderService.get_creator_order(creator["id"], str(order_id))
