"""
Redis cache for short-lived integration data (LawPay tokens).
Redis is optional: without REDIS_URL every call is a no-op and the
database stays the source of truth.
"""
import json
import logging
from typing import Any, Optional

import redis

from .config import REDIS_URL

logger = logging.getLogger(__name__)

redis_client: Optional[redis.Redis] = None


def get_redis_client() -> Optional[redis.Redis]:
    """Get or create the Redis client, None when REDIS_URL is not configured"""
    global redis_client

    if redis_client is None and REDIS_URL:
        # Mask password in URL for logging
        masked_url = f"****@{REDIS_URL.split('@')[1]}" if "@" in REDIS_URL else "****"
        logger.info(f"📡 Using Redis URL connection: {masked_url}")
        redis_client = redis.from_url(
            REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
            retry_on_timeout=True,
        )

    return redis_client


class Cache:
    """Redis cache wrapper with JSON serialization. Failures are logged, never raised."""

    def __init__(self, client_factory=get_redis_client):
        self._client_factory = client_factory
        self.redis_client = None

    def _get_client(self):
        if self.redis_client is None:
            try:
                self.redis_client = self._client_factory()
            except redis.RedisError as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except redis.RedisError as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL in seconds"""
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(*keys)
            logger.debug(f"✅ Cache DELETE: {', '.join(keys)}")
            return True
        except redis.RedisError as e:
            logger.error(f"❌ Cache delete error for {keys}: {e}")
            return False


# Global cache instance
cache = Cache()
