# =============================================================================
# core/services/__init__.py - Service Layer Exports
# =============================================================================

from .storage_service import StorageService
from .commerce_service import CommerceService
from .listing_service import ListingService, validate_draft
from .creator_service import CreatorService
from .oauth_service import OAuthStateService
from .social_link_service import SocialLinkService
from .payout_service import PayoutService
from .order_service import OrderService
from .moderation_service import ModerationService

__all__ = [
    "StorageService",
    "CommerceService",
    "ListingService",
    "validate_draft",
    "CreatorService",
    "OAuthStateService",
    "SocialLinkService",
    "PayoutService",
    "OrderService",
    "ModerationService",
]
