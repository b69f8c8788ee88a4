"""
Redis cache utility for generated quizzes
"""
import redis
import json
import logging
import hashlib
from typing import Optional, Any
from quizgenius.config import settings

logger = logging.getLogger(__name__)


class CacheService:
    """Redis-based caching service for quiz generation"""

    def __init__(self, url: Optional[str] = None, enabled: bool = True):
        self.redis_client = None
        if not enabled:
            logger.info("Caching disabled by configuration")
            return

        try:
            self.redis_client = redis.from_url(
                url or settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5
            )
            # Test connection
            self.redis_client.ping()
            logger.info("Redis connection established")
        except Exception as e:
            logger.warning(f"Redis connection failed: {str(e)}. Caching disabled.")
            self.redis_client = None

    def generate_cache_key(
        self,
        topic: str,
        difficulty: str,
        number_of_questions: int,
        preferred_style: str
    ) -> str:
        """
        Generate deterministic cache key for quiz parameters

        Topic is case and whitespace folded, then hashed so arbitrary
        user text never ends up in a Redis key.
        """
        normalized_topic = " ".join(topic.split()).lower()
        key_string = f"{normalized_topic}|{difficulty}|{number_of_questions}|{preferred_style}"
        digest = hashlib.sha256(key_string.encode()).hexdigest()
        return f"quiz:{digest}"

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        if not self.redis_client:
            return None

        try:
            value = self.redis_client.get(key)
            if value:
                logger.info(f"Cache hit: {key}")
                return json.loads(value)
            logger.info(f"Cache miss: {key}")
            return None
        except Exception as e:
            logger.error(f"Cache get error: {str(e)}")
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: int = None
    ) -> bool:
        """
        Set value in cache

        Args:
            key: Cache key
            value: Value to cache (must be JSON serializable)
            ttl: Time to live in seconds (default from settings)

        Returns:
            Success status
        """
        if not self.redis_client:
            return False

        try:
            ttl = ttl or settings.DEFAULT_QUIZ_CACHE_TTL
            serialized = json.dumps(value)
            self.redis_client.setex(key, ttl, serialized)
            logger.info(f"Cache set: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"Cache set error: {str(e)}")
            return False


# Global instance
cache_service = CacheService(enabled=settings.CACHE_ENABLED)
