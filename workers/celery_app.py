# =============================================================================
# workers/celery_app.py - Celery Application
# =============================================================================
# Broker and result backend are the same Redis instance the API uses for
# CSRF tokens and rate limits.
#
# Usage:
#   # Worker with the periodic scheduler embedded
#   celery -A workers.celery_app worker --beat -Q default,commerce --loglevel=info
#
#   # Run a sweep now
#   celery -A workers.celery_app call workers.tasks.retry_manual_syncs
# =============================================================================

import logging

from celery import Celery
from celery.signals import task_failure, task_postrun
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from app.config import settings  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def create_celery_app() -> Celery:
    redis_url = settings.REDIS_URL

    app = Celery(
        "wornvault_worker",
        broker=redis_url,
        backend=redis_url,
        include=["workers.tasks"],
    )
    app.config_from_object("workers.config:CeleryConfig")

    # Never log credentials embedded in the URL
    logger.info(f"Celery app created with broker: {redis_url.split('@')[-1]}")
    return app


celery_app = create_celery_app()


# =============================================================================
# Celery Signals
# =============================================================================

@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, retval=None, state=None, **extra):
    """Log each task's outcome; sweeps return their counts."""
    summary = f" {retval}" if isinstance(retval, dict) else ""
    logger.info(f"Task {task.name} [{task_id}] finished: {state}{summary}")


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, **extra):
    """A crashed sweep leaves the manual sync queue growing, so it is escalated."""
    if sender is not None and sender.name == "workers.tasks.retry_manual_syncs":
        logger.critical(f"Manual sync sweep crashed [{task_id}]: {exception}")
    else:
        logger.error(f"Task failed: {getattr(sender, 'name', '?')} [{task_id}] - Error: {exception}")


if __name__ == "__main__":
    celery_app.start()
