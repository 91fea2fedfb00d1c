# =============================================================================
# workers/ - Celery Background Task Workers
# =============================================================================
# This package contains the Celery configuration and periodic maintenance
# tasks.
#
# Components:
# - celery_app.py: Celery application configuration
# - tasks.py: Manual sync retry, OAuth state cleanup
# - config.py: Worker-specific settings and beat schedule
#
# Usage:
#   # Start worker with beat
#   celery -A workers.celery_app worker --beat --loglevel=info
#
#   # Trigger a sweep by hand
#   from workers.tasks import retry_manual_syncs
#   result = retry_manual_syncs.delay()
# =============================================================================

from .celery_app import celery_app
from . import tasks

__all__ = [
    "celery_app",
    "tasks",
]
