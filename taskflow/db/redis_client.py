import logging
from typing import Optional

import redis

from taskflow.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[redis.Redis] = None


def get_redis() -> Optional[redis.Redis]:
    """
    Shared redis client, or ``None`` when no ``REDIS_URL`` is configured.

    Callers treat redis purely as a cache: every read has a database fallback.
    """
    global _client
    if not settings.REDIS_URL:
        return None
    if _client is None:
        _client = redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)
        logger.info("Redis cache enabled")
    return _client
