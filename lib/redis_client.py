# =============================================================================
# lib/redis_client.py - Shared Redis Connection
# =============================================================================
# Singleton Redis client used for rate-limit counters and CSRF tokens.
# Celery talks to the same REDIS_URL through its own connection pool.
#
# Usage:
#   from lib.redis_client import RedisClient
#   RedisClient.get_client().ping()
# =============================================================================

import logging

import redis

from app.config import settings

logger = logging.getLogger(__name__)


class RedisClient:
    """Lazily created, process-wide redis.Redis instance."""

    _instance: redis.Redis | None = None

    @classmethod
    def get_client(cls) -> redis.Redis:
        if cls._instance is None:
            cls._instance = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_timeout=5,
                socket_connect_timeout=5,
            )
            safe_url = settings.REDIS_URL.split("@")[-1]
            logger.info(f"Redis client initialized for {safe_url}")
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None
