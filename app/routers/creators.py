# =============================================================================
# app/routers/creators.py - Public Storefront Endpoints
# =============================================================================
# Unauthenticated reads of a creator's public profile and approved listings.
# Only whitelisted columns are ever returned.
# =============================================================================

from fastapi import APIRouter

from app.dependencies import PlatformsDep
from core.models.creator import PublicCreatorProfile
from core.models.listing import ListingResponse
from core.services.creator_service import CreatorService
from core.services.listing_service import ListingService

router = APIRouter()


@router.get("/{handle}", response_model=PublicCreatorProfile)
async def get_creator(handle: str, platforms: PlatformsDep):
    """Public creator profile by handle."""
    profile, _ = CreatorService.get_public_profile(handle, platforms)
    return profile


@router.get("/{handle}/listings", response_model=list[ListingResponse])
async def get_creator_listings(handle: str, platforms: PlatformsDep):
    """Approved and live listings for a creator's storefront."""
    _, creator_id = CreatorService.get_public_profile(handle, platforms)
    return ListingService.list_public_for_creator(creator_id)
