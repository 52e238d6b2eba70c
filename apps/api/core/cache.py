"""
Redis client access.

Used to remember which recalculation job ids were handed to the broker,
so a Celery PENDING state can be told apart from an unknown id.
Degrades gracefully if Redis is unavailable.
"""
import logging
from typing import Optional
import redis
from redis.exceptions import ConnectionError, TimeoutError, RedisError
from core.config import settings

logger = logging.getLogger(__name__)

# Redis connection pool (singleton)
_redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client with connection pooling. Returns None if Redis unavailable."""
    global _redis_client

    if _redis_client is not None:
        return _redis_client

    try:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
            retry_on_timeout=True,
            health_check_interval=30
        )
        # Test connection
        _redis_client.ping()
        logger.info("Redis connection established")
        return _redis_client
    except (ConnectionError, TimeoutError, RedisError) as e:
        logger.warning(f"Redis unavailable: {e}. Job tracking disabled.")
        _redis_client = None
        return None


def cache_key(prefix: str, *args) -> str:
    """Generate a namespaced key from prefix and arguments (None values skipped)."""
    return ":".join([prefix] + [str(a) for a in args if a is not None])
