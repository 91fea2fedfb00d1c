# =============================================================================
# app/routers/listings.py - Creator Listing Endpoints
# =============================================================================
# Listing submission (multipart: fields + photos), listing reads and edits.
# All endpoints require an authenticated creator; writes also require a
# CSRF token and are rate limited.
# =============================================================================

import logging
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Path, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.auth import get_current_creator
from app.dependencies import ShopifyDep, rate_limit, require_csrf
from app.uploads import read_images
from core.models.listing import ListingCreateResponse, ListingResponse
from core.services.listing_service import ListingService, validate_draft

logger = logging.getLogger(__name__)

router = APIRouter()

listing_write_guards = [
    Depends(rate_limit("listing-create", "RATE_LIMIT_LISTING_CREATE")),
    Depends(require_csrf),
]


# =============================================================================
# Endpoints
# =============================================================================

@router.post(
    "",
    response_model=ListingCreateResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=listing_write_guards,
)
async def create_listing(
    shopify: ShopifyDep,
    creator: dict[str, Any] = Depends(get_current_creator),
    title: Annotated[str | None, Form()] = None,
    story: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    condition: Annotated[str | None, Form()] = None,
    price: Annotated[str | None, Form(description="Price in dollars, minimum 100")] = None,
    photos: Annotated[list[UploadFile] | None, File(description="1-10 reference photos")] = None,
):
    """
    Submit a new listing for approval.

    The listing is stored as pending_approval together with its photos.
    When Shopify is configured a store product is created as well; if that
    fails the listing is still saved and queued for manual sync.

    Returns 201 with any non-fatal warnings (e.g. one photo failed).
    """
    draft = validate_draft({
        "title": title,
        "story": story,
        "category": category,
        "condition": condition,
        "price_cents": price,
    })
    images = await read_images(photos)
    # Blocking: Shopify HTTP calls and link retry backoff
    return await run_in_threadpool(ListingService.create_listing, creator, draft, images, shopify=shopify)


@router.get("", response_model=list[ListingResponse])
async def list_listings(
    creator: dict[str, Any] = Depends(get_current_creator),
):
    """
    List the creator's listings, newest first, with photo URLs.
    """
    return ListingService.list_for_creator(creator["id"])


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: Annotated[UUID, Path(description="Listing UUID")],
    creator: dict[str, Any] = Depends(get_current_creator),
):
    """
    Get one of the creator's listings.
    """
    return ListingService.get_for_creator(str(listing_id), creator["id"])


@router.patch(
    "/{listing_id}",
    response_model=ListingCreateResponse,
    dependencies=listing_write_guards,
)
async def update_listing(
    listing_id: Annotated[UUID, Path(description="Listing UUID")],
    creator: dict[str, Any] = Depends(get_current_creator),
    title: Annotated[str | None, Form()] = None,
    story: Annotated[str | None, Form()] = None,
    category: Annotated[str | None, Form()] = None,
    condition: Annotated[str | None, Form()] = None,
    price: Annotated[str | None, Form()] = None,
    delete_photo_ids: Annotated[list[str] | None, Form()] = None,
    photos: Annotated[list[UploadFile] | None, File()] = None,
):
    """
    Edit a draft or pending listing.

    Only submitted fields change. The listing returns to pending_approval.
    """
    images = await read_images(photos)
    return await run_in_threadpool(
        ListingService.update_listing,
        str(listing_id),
        creator,
        fields={
            "title": title,
            "story": story,
            "category": category,
            "condition": condition,
            "price": price,
        },
        new_images=images,
        delete_photo_ids=delete_photo_ids or [],
    )
