# =============================================================================
# tests/ - Test Suite
# =============================================================================
# Unit tests for lib/ and core/services, plus router tests through
# FastAPI's TestClient. Supabase, Redis, Shopify and the OAuth/PayPal HTTP
# endpoints are all faked; no network access is needed.
#
# Run tests with: pytest
# =============================================================================
