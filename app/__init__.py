# =============================================================================
# app/ - FastAPI Application Package
# =============================================================================
# HTTP layer of the WornVault API:
# - main.py: App entry point, middleware setup, error handlers
# - config.py: Environment variable loading and settings
# - exceptions.py: Error taxonomy and JSON error rendering
# - auth/: Supabase JWT verification, creator and admin dependencies
# - dependencies.py: Rate limiting, CSRF, platform registry, API clients
# - uploads.py: Multipart image reading and validation
# - routers/: API endpoint definitions organized by feature
#
# Handlers parse and guard requests, then delegate to core/services.
# =============================================================================
