"""Recommendation cache using Redis"""

import json
import redis
from typing import List, Optional

from ..config import settings
from ..schemas.recommendation import RecommendationResponse
from ..utils.logging import get_logger
from ..utils.metrics import increment_cache_hit, increment_cache_miss

logger = get_logger(__name__)


class RecommendationCache:
    """
    Redis cache of persisted recommendation lists

    Entries are keyed by user and limit. Any Redis error is logged and
    treated as a miss; the database stays the source of truth.
    """

    def __init__(self, client: Optional[redis.Redis] = None, ttl: Optional[int] = None):
        self.redis_client = client or redis.Redis(
            host=settings.REDIS_HOST,
            port=settings.REDIS_PORT,
            db=settings.REDIS_DB,
            password=settings.REDIS_PASSWORD,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )
        self.cache_ttl = ttl or settings.CACHE_TTL

    def get(self, user_id: int, limit: int) -> Optional[List[RecommendationResponse]]:
        """
        Get cached recommendations for a user

        Returns:
            List of recommendations or None on a miss
        """

        try:
            value = self.redis_client.get(self._get_cache_key(user_id, limit))
        except redis.RedisError as e:
            logger.warning("Cache read failed", user_id=user_id, error=str(e))
            increment_cache_miss()
            return None

        if value is None:
            increment_cache_miss()
            return None

        increment_cache_hit()
        return [RecommendationResponse.model_validate(entry) for entry in json.loads(value)]

    def set(self, user_id: int, limit: int, recommendations: List[RecommendationResponse]) -> bool:
        """Cache recommendations for a user; False if Redis is unavailable"""

        value = json.dumps([rec.model_dump(mode="json") for rec in recommendations])
        try:
            self.redis_client.setex(self._get_cache_key(user_id, limit), self.cache_ttl, value)
            return True
        except redis.RedisError as e:
            logger.warning("Cache write failed", user_id=user_id, error=str(e))
            return False

    def invalidate_user(self, user_id: int) -> bool:
        """
        Invalidate all cached recommendations for a user

        Called when recommendations are regenerated, viewed, or the user
        produces new behavior.
        """

        try:
            keys = list(self.redis_client.scan_iter(match=f"recs:user:{user_id}:*"))
            if keys:
                self.redis_client.delete(*keys)
            return True
        except redis.RedisError as e:
            logger.warning("Cache invalidation failed", user_id=user_id, error=str(e))
            return False

    def health_check(self) -> bool:
        """
        Check if Redis connection is healthy

        Returns:
            True if healthy, False otherwise
        """

        try:
            return bool(self.redis_client.ping())
        except redis.RedisError:
            return False

    def _get_cache_key(self, user_id: int, limit: int) -> str:
        """Generate cache key for recommendations"""
        return f"recs:user:{user_id}:limit:{limit}"


_cache: Optional[RecommendationCache] = None


def get_cache() -> Optional[RecommendationCache]:
    """Shared cache instance (FastAPI dependency)"""

    global _cache
    if _cache is None:
        _cache = RecommendationCache()
    return _cache
