# =============================================================================
# workers/config.py - Celery Worker Configuration
# =============================================================================
# Settings specific to Celery workers, including the periodic schedule.
# =============================================================================

from app.config import settings

# Periodic task intervals (seconds)
MANUAL_SYNC_RETRY_INTERVAL = 15 * 60
OAUTH_STATE_CLEANUP_INTERVAL = 60 * 60


class CeleryConfig:
    """
    Celery configuration settings.

    These are applied to the Celery app via app.config_from_object().
    """

    # -------------------------------------------------------------------------
    # Broker Settings (Redis)
    # -------------------------------------------------------------------------

    broker_url = settings.REDIS_URL
    result_backend = settings.REDIS_URL

    # -------------------------------------------------------------------------
    # Task Settings
    # -------------------------------------------------------------------------

    # Acknowledge tasks after they complete (not before)
    task_acks_late = True

    # Only prefetch one task at a time
    worker_prefetch_multiplier = 1

    # Task results expire after 1 hour
    result_expires = 3600

    # Hard and soft limits for one sweep
    task_time_limit = 600
    task_soft_time_limit = 540

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    task_serializer = "json"
    result_serializer = "json"
    accept_content = ["json"]

    # -------------------------------------------------------------------------
    # Task Routing
    # -------------------------------------------------------------------------

    task_queues = {
        "default": {
            "exchange": "default",
            "routing_key": "default",
        },
        "commerce": {
            "exchange": "commerce",
            "routing_key": "commerce",
        },
    }

    # Shopify calls run on their own queue
    task_routes = {
        "workers.tasks.retry_manual_syncs": {"queue": "commerce"},
    }

    task_default_queue = "default"

    # -------------------------------------------------------------------------
    # Periodic Tasks (celery beat)
    # -------------------------------------------------------------------------

    beat_schedule = {
        "retry-manual-syncs": {
            "task": "workers.tasks.retry_manual_syncs",
            "schedule": MANUAL_SYNC_RETRY_INTERVAL,
        },
        "cleanup-expired-oauth-states": {
            "task": "workers.tasks.cleanup_expired_oauth_states",
            "schedule": OAUTH_STATE_CLEANUP_INTERVAL,
        },
    }

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    worker_send_task_events = True
    task_send_sent_event = True

    # -------------------------------------------------------------------------
    # Timezone
    # -------------------------------------------------------------------------

    timezone = "UTC"
    enable_utc = True
