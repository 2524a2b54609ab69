"""
Redis-backed key-value store for daily quizzes and the topic backlog
"""
import redis
import json
import logging
from typing import Any, Callable, Optional

from app.exceptions import ConflictError, StoreError

logger = logging.getLogger(__name__)


class CacheStore:
    """
    JSON key-value store over a Redis client

    - Values are JSON-encoded on write and decoded on read
    - Every Redis failure surfaces as StoreError
    - update() is a WATCH/MULTI optimistic read-modify-write
    """

    PROBE_KEY = "test_connection"

    def __init__(self, redis_client: redis.Redis, cas_retries: int = 3):
        self.redis_client = redis_client
        self.cas_retries = cas_retries

    @classmethod
    def from_url(
        cls,
        url: str,
        socket_timeout: int = 5,
        cas_retries: int = 3
    ) -> "CacheStore":
        """
        Build a store from a Redis URL

        The connection is checked once; a failed ping is logged, not raised,
        so the API can still start and report the outage on /health/redis.
        """
        client = redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=socket_timeout,
            socket_timeout=socket_timeout
        )
        try:
            client.ping()
            logger.info("Redis connection established")
        except redis.RedisError as e:
            logger.warning(f"Redis connection failed: {str(e)}. Requests will fail until it recovers.")
        return cls(client, cas_retries=cas_retries)

    def _decode(self, key: str, raw: Any) -> Optional[Any]:
        if raw is None:
            return None
        # Some clients hand back already-decoded JSON
        if isinstance(raw, (dict, list)):
            return raw
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.error(f"Cache decode error for {key}: {str(e)}")
            raise StoreError(f"Corrupt value stored under {key}", details=str(e)) from e

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value for {key} is not JSON serializable", details=str(e)) from e

    def get(self, key: str) -> Optional[Any]:
        """
        Get value from cache

        Returns:
            Decoded value, or None when the key is absent or expired
        """
        try:
            raw = self.redis_client.get(key)
        except redis.RedisError as e:
            logger.error(f"Cache get error for {key}: {str(e)}")
            raise StoreError(f"Failed to read {key}", details=str(e)) from e

        if raw is None:
            logger.info(f"Cache miss: {key}")
            return None
        logger.info(f"Cache hit: {key}")
        return self._decode(key, raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Set value in cache

        Args:
            key: Cache key
            value: JSON serializable value
            ttl: Time to live in seconds; no expiry when omitted
        """
        serialized = self._encode(key, value)
        try:
            if ttl:
                self.redis_client.setex(key, ttl, serialized)
            else:
                self.redis_client.set(key, serialized)
        except redis.RedisError as e:
            logger.error(f"Cache set error for {key}: {str(e)}")
            raise StoreError(f"Failed to write {key}", details=str(e)) from e
        logger.info(f"Cache set: {key} (TTL: {ttl or 'none'})")

    def expire(self, key: str, ttl: int) -> bool:
        """Set a TTL on an existing key. Returns False if the key is absent."""
        try:
            return bool(self.redis_client.expire(key, ttl))
        except redis.RedisError as e:
            logger.error(f"Cache expire error for {key}: {str(e)}")
            raise StoreError(f"Failed to set expiry on {key}", details=str(e)) from e

    def ttl(self, key: str) -> int:
        """Remaining TTL in seconds, -1 if no expiry, -2 if the key doesn't exist"""
        try:
            return self.redis_client.ttl(key)
        except redis.RedisError as e:
            raise StoreError(f"Failed to read TTL of {key}", details=str(e)) from e

    def delete(self, key: str) -> None:
        """Delete key from cache (absent keys are fine)"""
        try:
            self.redis_client.delete(key)
        except redis.RedisError as e:
            logger.error(f"Cache delete error for {key}: {str(e)}")
            raise StoreError(f"Failed to delete {key}", details=str(e)) from e
        logger.info(f"Cache delete: {key}")

    def update(
        self,
        key: str,
        mutate: Callable[[Optional[Any]], Any],
        ttl: Optional[int] = None
    ) -> Any:
        """
        Optimistic read-modify-write of a single key

        The key is WATCHed while mutate() computes the new value from the
        current one; if another writer touches the key before EXEC the whole
        cycle is retried, up to cas_retries times.

        Args:
            key: Cache key
            mutate: Receives the decoded current value (or None) and returns
                the new value. Exceptions it raises propagate unchanged.
            ttl: Time to live for the written value

        Returns:
            The value written

        Raises:
            ConflictError: every attempt lost the race
            StoreError: Redis failure
        """
        for attempt in range(1, self.cas_retries + 1):
            try:
                with self.redis_client.pipeline() as pipe:
                    pipe.watch(key)
                    current = self._decode(key, pipe.get(key))
                    new_value = mutate(current)
                    serialized = self._encode(key, new_value)
                    pipe.multi()
                    if ttl:
                        pipe.setex(key, ttl, serialized)
                    else:
                        pipe.set(key, serialized)
                    pipe.execute()
                    return new_value
            except redis.WatchError:
                logger.warning(f"Concurrent write on {key}, retrying ({attempt}/{self.cas_retries})")
            except redis.RedisError as e:
                logger.error(f"Cache update error for {key}: {str(e)}")
                raise StoreError(f"Failed to update {key}", details=str(e)) from e

        raise ConflictError(
            f"Concurrent updates to {key}, please retry",
            details=f"gave up after {self.cas_retries} attempts"
        )

    def incr_window(self, key: str, window_seconds: int) -> int:
        """
        Increment a counter that expires window_seconds after its first hit

        A counter found without a TTL (e.g. a failed EXPIRE on an earlier
        hit) gets one on the next hit, so no window outlives its length.
        """
        try:
            with self.redis_client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                pipe.ttl(key)
                count, remaining = pipe.execute()
            if remaining == -1:
                self.redis_client.expire(key, window_seconds)
            return count
        except redis.RedisError as e:
            raise StoreError(f"Failed to increment {key}", details=str(e)) from e

    def ping(self) -> bool:
        try:
            return bool(self.redis_client.ping())
        except redis.RedisError as e:
            logger.error(f"Redis ping failed: {str(e)}")
            return False

    def test_connection(self) -> bool:
        """Round-trip a probe value through set/get/delete"""
        try:
            self.set(self.PROBE_KEY, {"test": True})
            result = self.get(self.PROBE_KEY)
            self.delete(self.PROBE_KEY)
        except StoreError as e:
            logger.error(f"Redis connection test failed: {e.message}")
            return False
        return bool(result)

    def close(self) -> None:
        try:
            self.redis_client.close()
        except redis.RedisError as e:
            logger.warning(f"Error closing Redis connection: {str(e)}")
