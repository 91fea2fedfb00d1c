# =============================================================================
# core/models/creator.py - Creator Schemas
# =============================================================================
# - CreatorProfile: what a creator sees about themselves
# - PublicCreatorProfile: storefront-safe subset (no email, payout data)
# - PayoutMethod / PayoutSettingsResponse: payout preferences
# =============================================================================

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class VerificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PayoutMethod(str, Enum):
    """Only PayPal payouts are supported."""
    PAYPAL = "paypal"


class CreatorProfile(BaseModel):
    """Full creator profile (owner and admin views)."""

    id: str
    email: str | None = None
    handle: str | None = None
    display_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    cover_image_storage_path: str | None = None
    verification_status: str | None = None
    payout_method: str | None = None
    paypal_email: str | None = None
    paypal_email_verified: bool = False
    created_at: datetime | None = None

    model_config = {"extra": "ignore"}


# Columns safe to expose on public storefront pages
PUBLIC_CREATOR_COLUMNS = (
    "id, handle, display_name, bio, profile_image_url, cover_image_storage_path, "
    "instagram_url, facebook_url, tiktok_url, x_url, youtube_url, twitch_url, created_at"
)


class PublicCreatorProfile(BaseModel):
    """Storefront view of a creator."""

    id: str
    handle: str
    display_name: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None
    cover_image_url: str | None = None
    social_links: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any], cover_image_url: str | None, platforms) -> "PublicCreatorProfile":
        return cls(
            id=str(row["id"]),
            handle=row.get("handle") or "",
            display_name=row.get("display_name"),
            bio=row.get("bio"),
            profile_image_url=row.get("profile_image_url"),
            cover_image_url=cover_image_url,
            social_links={
                platform.key: row[platform.url_field]
                for platform in platforms
                if row.get(platform.url_field)
            },
        )


class ProfileUpdateResponse(BaseModel):
    success: bool = True
    profile: CreatorProfile


class PayoutSettingsResponse(BaseModel):
    success: bool = True
    payout_method: PayoutMethod = PayoutMethod.PAYPAL
    paypal_email: str
    paypal_email_verified: bool = False
    verification_message: str | None = None
