# =============================================================================
# lib/ - Standalone Utility Modules
# =============================================================================
# This package contains reusable utilities:
# - supabase_client.py: Typed Supabase wrapper for shared lookups
# - redis_client.py: Shared Redis connection
# - sanitize.py: Field sanitizers and validators (names, usernames, HTML)
# - file_validation.py: Content-sniffed image validation (UploadedImage)
# - platforms.py: Immutable social platform registry + profile URL checks
# - rate_limit.py: Fixed-window Redis rate limiter
# - csrf.py: One-time CSRF tokens
# - saga.py: Ordered steps with reverse-order compensation
# - shopify_admin.py: Shopify Admin API client
# - paypal.py: PayPal email verification
# - oauth_client.py: Social OAuth code exchange and profile lookup
# - utils.py: Shared utilities (errors, UUIDs, retry)
#
# These modules are self-contained and can be tested in isolation.
# =============================================================================

from lib.supabase_client import SupabaseClient, SupabaseClientError
from lib.saga import Saga, SagaError, SagaStep
from lib.utils import ApplicationError, is_valid_uuid, normalize_uuid, retry_with_backoff

__all__ = [
    # Supabase
    "SupabaseClient",
    "SupabaseClientError",
    # Saga
    "Saga",
    "SagaError",
    "SagaStep",
    # Utils
    "ApplicationError",
    "is_valid_uuid",
    "normalize_uuid",
    "retry_with_backoff",
]
