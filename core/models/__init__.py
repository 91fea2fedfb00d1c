# =============================================================================
# core/models/ - Pydantic Data Models
# =============================================================================
# This package contains Pydantic schemas for data validation:
# - listing.py: Listing input validation, enums, categories, output shapes
# - creator.py: Creator profiles (private and storefront views)
# - social.py: Social link and OAuth verification responses
# - payout.py: Sales summaries and payout records
# - order.py: Recorded storefront orders and creator sales views
#
# These models define the "contract" between API and clients.
# =============================================================================

# -----------------------------------------------------------------------------
# Listing Models
# -----------------------------------------------------------------------------
from .listing import (
    LISTING_CATEGORIES,
    ListingCondition,
    ListingCreateResponse,
    ListingDraft,
    ListingPhoto,
    ListingResponse,
    ListingStatus,
    category_type,
    parse_price_to_cents,
)

# -----------------------------------------------------------------------------
# Creator Models
# -----------------------------------------------------------------------------
from .creator import (
    CreatorProfile,
    PayoutMethod,
    PayoutSettingsResponse,
    ProfileUpdateResponse,
    PublicCreatorProfile,
    VerificationStatus,
)

# -----------------------------------------------------------------------------
# Social Models
# -----------------------------------------------------------------------------
from .social import (
    DisconnectResponse,
    SaveSocialLinksResponse,
    SocialLink,
    SocialLinksResponse,
    VerifyStartResponse,
)

# -----------------------------------------------------------------------------
# Payout Models
# -----------------------------------------------------------------------------
from .payout import (
    AdminPayoutsResponse,
    CreatorPayoutsResponse,
    PayoutRecord,
    PayoutStatus,
    SalesSummary,
)

# -----------------------------------------------------------------------------
# Order Models
# -----------------------------------------------------------------------------
from .order import (
    AdminSalesResponse,
    CreatorOrder,
    CreatorOrdersResponse,
    OrderIngestResult,
    OrderLineItem,
)

__all__ = [
    # Listing
    "LISTING_CATEGORIES",
    "ListingCondition",
    "ListingCreateResponse",
    "ListingDraft",
    "ListingPhoto",
    "ListingResponse",
    "ListingStatus",
    "category_type",
    "parse_price_to_cents",
    # Creator
    "CreatorProfile",
    "PayoutMethod",
    "PayoutSettingsResponse",
    "ProfileUpdateResponse",
    "PublicCreatorProfile",
    "VerificationStatus",
    # Social
    "DisconnectResponse",
    "SaveSocialLinksResponse",
    "SocialLink",
    "SocialLinksResponse",
    "VerifyStartResponse",
    # Payout
    "AdminPayoutsResponse",
    "CreatorPayoutsResponse",
    "PayoutRecord",
    "PayoutStatus",
    "SalesSummary",
    # Order
    "AdminSalesResponse",
    "CreatorOrder",
    "CreatorOrdersResponse",
    "OrderIngestResult",
    "OrderLineItem",
]
