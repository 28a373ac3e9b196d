import json
import logging
from typing import Any, Optional

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

_redis_client = None


def get_redis_client():
    global _redis_client
    if _redis_client is None:
        # Use simple redis client (synchronous) for lightweight operations
        _redis_client = redis.Redis.from_url(
            settings.redis_url, decode_responses=True, socket_timeout=1
        )
    return _redis_client


def cache_get_json(key: str) -> Optional[Any]:
    """Read a cached JSON value. Cache errors are logged and treated as a miss."""
    if not settings.cache_enabled:
        return None
    try:
        raw = get_redis_client().get(key)
    except redis.RedisError as e:
        logger.warning(f"Cache read failed for {key}: {e}")
        return None
    return json.loads(raw) if raw else None


def cache_set_json(key: str, value: Any, ttl: int) -> None:
    if not settings.cache_enabled:
        return
    try:
        get_redis_client().set(key, json.dumps(value, default=str), ex=ttl)
    except redis.RedisError as e:
        logger.warning(f"Cache write failed for {key}: {e}")


def cache_delete(key: str) -> None:
    if not settings.cache_enabled:
        return
    try:
        get_redis_client().delete(key)
    except redis.RedisError as e:
        logger.warning(f"Cache delete failed for {key}: {e}")
