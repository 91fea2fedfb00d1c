# =============================================================================
# app/routers/ - API Route Definitions
# =============================================================================
# This package contains FastAPI routers organized by feature:
# - health.py: Health check endpoints
# - csrf.py: CSRF token issuance
# - listings.py: Creator listing submission and edits
# - social_links.py: Social links and OAuth verification
# - settings.py: Profile and payout settings
# - payouts.py: Creator sales and payout history
# - orders.py: Creator order list and detail
# - webhooks.py: Shopify order webhooks (HMAC-signed)
# - admin.py: Moderation, creators, payouts, sync queue
# - creators.py: Public storefronts
#
# Each router is mounted in main.py with a URL prefix.
# =============================================================================

from . import health
from . import csrf
from . import listings
from . import social_links
from . import settings
from . import payouts
from . import orders
from . import webhooks
from . import admin
from . import creators

__all__ = [
    "health",
    "csrf",
    "listings",
    "social_links",
    "settings",
    "payouts",
    "orders",
    "webhooks",
    "admin",
    "creators",
]
