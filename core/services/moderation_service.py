# =============================================================================
# core/services/moderation_service.py - Admin Listing Review
# =============================================================================

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from app.exceptions import ListingNotFoundError, ValidationFailedError
from core.models.creator import CreatorProfile
from core.models.listing import ListingResponse, ListingStatus
from core.services.listing_service import ListingService
from lib.sanitize import sanitize_html
from lib.supabase_client import SupabaseClient
from lib.utils import is_valid_uuid, normalize_uuid

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 1000

# Live and sold listings are past moderation
REVIEWABLE_STATUSES = frozenset({
    ListingStatus.PENDING_APPROVAL.value,
    ListingStatus.APPROVED.value,
    ListingStatus.REJECTED.value,
})


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def status(self) -> ListingStatus:
        return ListingStatus.APPROVED if self is ReviewAction.APPROVE else ListingStatus.REJECTED


def clean_admin_notes(notes: str | None) -> str:
    """HTML-sanitize and truncate internal review notes."""
    return sanitize_html((notes or "").strip())[:MAX_NOTES_LENGTH]


class ModerationService:
    """Admin views of listings and the approve / reject decision."""

    @staticmethod
    def list_listings(status: ListingStatus | None = None, limit: int = 100) -> list[ListingResponse]:
        client = SupabaseClient.get_client()
        query = client.table("listings").select(
            "*, listing_photos(id, storage_path, photo_type, created_at)"
        )
        if status is not None:
            query = query.eq("status", status.value)
        response = query.order("created_at", desc=True).limit(limit).execute()
        return [
            ListingService.to_response(row, row.pop("listing_photos", None) or [])
            for row in response.data or []
        ]

    @staticmethod
    def get_listing(listing_id: str) -> dict[str, Any]:
        """
        Listing with photos and its creator.

        Raises:
            ListingNotFoundError: Unknown or malformed id
        """
        if not is_valid_uuid(listing_id):
            raise ListingNotFoundError(listing_id)
        listing = SupabaseClient.fetch_listing(listing_id)
        if not listing:
            raise ListingNotFoundError(listing_id)

        creator = SupabaseClient.fetch_creator(listing["creator_id"])
        return {
            "listing": ListingService.to_response(listing, SupabaseClient.fetch_listing_photos(listing_id)),
            "creator": CreatorProfile(**creator) if creator else None,
        }

    @staticmethod
    def review_listing(
        listing_id: str,
        action: str | None,
        notes: str | None,
    ) -> ListingResponse:
        """
        Approve or reject a listing.

        Raises:
            ValidationFailedError: Invalid action or listing not reviewable
            ListingNotFoundError: Unknown listing
        """
        try:
            decision = ReviewAction((action or "").strip().lower())
        except ValueError:
            raise ValidationFailedError(
                field_errors={"action": 'Invalid action. Must be "approve" or "reject".'}
            )

        if not is_valid_uuid(listing_id):
            raise ListingNotFoundError(listing_id)
        listing = SupabaseClient.fetch_listing(listing_id)
        if not listing:
            raise ListingNotFoundError(listing_id)
        if listing.get("status") not in REVIEWABLE_STATUSES:
            raise ValidationFailedError(
                message=f"Listings that are {listing.get('status')} cannot be reviewed"
            )

        client = SupabaseClient.get_client()
        response = (
            client.table("listings")
            .update({
                "status": decision.status.value,
                "admin_notes": clean_admin_notes(notes) or None,
                "reviewed_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", normalize_uuid(listing_id))
            .execute()
        )
        if not response.data:
            raise ListingNotFoundError(listing_id)

        logger.info(f"Listing {listing_id} {decision.status.value} by admin")
        return ListingService.to_response(response.data[0], SupabaseClient.fetch_listing_photos(listing_id))
