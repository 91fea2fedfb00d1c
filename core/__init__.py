# =============================================================================
# core/ - Marketplace Business Logic
# =============================================================================
# - models/: Pydantic schemas (listings, creators, social links, payouts)
# - services/: Listing saga, commerce sync, social verification, settings,
#   payouts and moderation, as classes of static methods
#
# Services raise app.exceptions errors but never import FastAPI or Celery,
# so routers and workers share them.
# =============================================================================
