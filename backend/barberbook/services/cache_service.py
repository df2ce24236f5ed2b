# backend/barberbook/services/cache_service.py
"""
Cache Service for the booking core

Centralizes caching with key management and invalidation patterns. Redis is used when ``REDIS_URL`` is configured; otherwise an
in-process dictionary stands in. A circuit breaker keeps a failing Redis
from slowing down booking mutations.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
import fnmatch
import json
import logging
import threading
from typing import Any, Callable, Dict, Optional, TypeVar, Union

import redis
from redis import Redis
from redis.exceptions import RedisError

from barberbook.core.config import Settings, settings as default_settings

from .base import BaseService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing, reject calls
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitBreaker:
    """
    Circuit breaker for cache calls.

    Prevents cascading failures when the cache is unavailable.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        expected_exception: type[BaseException] = RedisError,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception

        self._failure_count: int = 0
        self._last_failure_time: Optional[datetime] = None
        self._state: CircuitState = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def failure_count(self) -> int:
        return self._failure_count

    @property
    def state(self) -> CircuitState:
        """Get current circuit state."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._last_failure_time:
                time_since_failure = (datetime.now() - self._last_failure_time).total_seconds()
                if time_since_failure >= self.recovery_timeout:
                    self._state = CircuitState.HALF_OPEN
            return self._state

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> Optional[T]:
        """
        Execute ``func`` with circuit breaker protection.

        Returns:
            Function result, or None if the circuit is open
        """
        if self.state == CircuitState.OPEN:
            logger.warning("Circuit breaker is OPEN, skipping %s", func.__name__)
            return None

        try:
            result = func(*args, **kwargs)
            self._on_success()
            return result
        except self.expected_exception:
            self._on_failure()
            if self.state == CircuitState.CLOSED:
                # Still under threshold, propagate error
                raise
            return None

    def _on_success(self) -> None:
        with self._lock:
            self._failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("Circuit breaker recovered, closing circuit")

    def _on_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = datetime.now()

            if self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.warning("Circuit breaker opened after %s failures", self._failure_count)


class CacheKeyBuilder:
    """Standardized cache key generation."""

    # Key prefixes for different domains
    PREFIXES = {
        "provider": "prov",
        "availability": "avail",
        "booking": "book",
    }

    @staticmethod
    def build(*parts: Union[str, int, date, datetime, time]) -> str:
        """
        Build a cache key from parts.

        Examples:
            build('availability', 5, date(2024, 1, 15)) -> 'avail:5:2024-01-15'
        """
        formatted_parts = []
        for part in parts:
            if isinstance(part, (date, datetime, time)):
                formatted_parts.append(part.isoformat())
            else:
                formatted_parts.append(str(part))

        # Use prefix if first part is a known domain
        if parts:
            first = parts[0]
            if isinstance(first, str) and first in CacheKeyBuilder.PREFIXES:
                formatted_parts[0] = CacheKeyBuilder.PREFIXES[first]

        return ":".join(formatted_parts)


class CacheService(BaseService):
    """
    Caching service with Redis and an in-memory fallback.

    Features:
    - JSON serialization
    - TTL defaulting to ``provider_cache_ttl_seconds``
    - Invalidation by key and by pattern
    """

    def __init__(
        self,
        redis_client: Optional[Redis] = None,
        app_settings: Optional[Settings] = None,
    ):
        super().__init__(None)
        self.settings = app_settings or default_settings
        self.logger = logging.getLogger(__name__)

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=5, recovery_timeout=60, expected_exception=RedisError
        )
        self.key_builder = CacheKeyBuilder()

        # In-memory fallback
        self._memory_cache: Dict[str, Any] = {}
        self._memory_expiry: Dict[str, datetime] = {}

        self.redis: Optional[Redis] = redis_client
        self._setup_redis_connection()

    def _setup_redis_connection(self) -> None:
        """Connect to Redis when configured, otherwise stay in memory."""
        if self.redis is not None or not self.settings.redis_url:
            return
        try:
            self.redis = redis.from_url(
                self.settings.redis_url,
                decode_responses=True,
                socket_keepalive=True,
                socket_connect_timeout=5,
                retry_on_timeout=True,
                health_check_interval=30,
            )
            self.redis.ping()
            logger.info("Connected to Redis cache")
        except (RedisError, ConnectionError) as e:
            logger.warning("Redis not available: %s. Using in-memory fallback.", e)
            self.redis = None
            self._memory_cache.clear()
            self._memory_expiry.clear()

    @property
    def backend(self) -> str:
        return "redis" if self.redis is not None else "memory"

    # Core Cache Operations

    @BaseService.measure_operation("cache_get")
    def get(self, key: str) -> Optional[Any]:
        """Get value from cache with circuit breaker protection."""
        redis_client = self.redis

        def _get_from_redis() -> Optional[Any]:
            assert redis_client is not None
            value = redis_client.get(key)
            if value is not None:
                return json.loads(value)
            return None

        try:
            if redis_client is not None:
                if self.circuit_breaker.state != CircuitState.OPEN:
                    value = self.circuit_breaker.call(_get_from_redis)
                    if value is not None:
                        return value
            elif key in self._memory_cache:
                expires_at = self._memory_expiry.get(key)
                if expires_at is None or datetime.now() < expires_at:
                    return self._memory_cache[key]
                # Expired
                self._memory_cache.pop(key, None)
                self._memory_expiry.pop(key, None)

            return None
        except RedisError as e:
            logger.error("Cache get error for key %s: %s", key, e)
            return None

    @BaseService.measure_operation("cache_set")
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache; ``ttl`` defaults to the provider cache TTL."""
        redis_client = self.redis
        if ttl is None:
            ttl = self.settings.provider_cache_ttl_seconds
        serialized = json.dumps(value, default=str)

        def _set_in_redis() -> bool:
            assert redis_client is not None
            redis_client.setex(key, ttl, serialized)
            return True

        try:
            if redis_client is not None:
                if self.circuit_breaker.state == CircuitState.OPEN:
                    return False
                return bool(self.circuit_breaker.call(_set_in_redis))

            # Store the decoded copy so memory and Redis return identical shapes
            self._memory_cache[key] = json.loads(serialized)
            self._memory_expiry[key] = datetime.now() + timedelta(seconds=ttl)
            return True
        except RedisError as e:
            logger.error("Cache set error for key %s: %s", key, e)
            return False

    @BaseService.measure_operation("cache_delete")
    def delete(self, key: str) -> bool:
        """Delete a key from cache with circuit breaker protection."""
        redis_client = self.redis

        def _delete_from_redis() -> bool:
            assert redis_client is not None
            return bool(redis_client.delete(key))

        try:
            if redis_client is not None:
                if self.circuit_breaker.state == CircuitState.OPEN:
                    return False
                result = bool(self.circuit_breaker.call(_delete_from_redis))
            else:
                result = key in self._memory_cache
                self._memory_cache.pop(key, None)
                self._memory_expiry.pop(key, None)

            return result
        except RedisError as e:
            logger.error("Cache delete error for key %s: %s", key, e)
            return False

    @BaseService.measure_operation("cache_delete_pattern")
    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching a glob pattern."""
        try:
            if self.redis is not None:
                count = self._delete_pattern_redis(pattern)
            else:
                count = self._delete_pattern_memory(pattern)

            logger.debug("Deleted %s keys matching pattern: %s", count, pattern)
            return count
        except RedisError as e:
            logger.error("Cache delete pattern error: %s", e)
            return 0

    def _delete_pattern_redis(self, pattern: str) -> int:
        """Delete pattern from Redis using SCAN."""
        count = 0
        redis_client = self.redis
        if redis_client is None:
            return 0
        for key in redis_client.scan_iter(match=pattern):
            if redis_client.delete(key):
                count += 1
        return count

    def _delete_pattern_memory(self, pattern: str) -> int:
        keys_to_delete = [k for k in self._memory_cache if fnmatch.fnmatch(k, pattern)]
        for key in keys_to_delete:
            self._memory_cache.pop(key, None)
            self._memory_expiry.pop(key, None)
        return len(keys_to_delete)

    # Domain-Specific Methods

    def provider_keys(self, provider_id: int) -> tuple[str, ...]:
        return (
            self.key_builder.build("provider", provider_id),
            self.key_builder.build("availability", provider_id),
        )

    def provider_patterns(self, provider_id: int) -> tuple[str, ...]:
        """Derived keys such as ``avail:5:2024-01-15`` and ``prov:5:stats:...``."""
        return (
            f"{self.key_builder.build('provider', provider_id)}:*",
            f"{self.key_builder.build('availability', provider_id)}:*",
        )

    def provider_stats_key(self, provider_id: int, *parts: Union[str, int, date, datetime]) -> str:
        return self.key_builder.build("provider", provider_id, "stats", *parts)

    @BaseService.measure_operation("invalidate_provider")
    def invalidate_provider(self, provider_id: int) -> int:
        """Drop every cached entry derived from a provider's schedule."""
        total = sum(1 for key in self.provider_keys(provider_id) if self.delete(key))
        total += sum(self.delete_pattern(pattern) for pattern in self.provider_patterns(provider_id))
        logger.info("Invalidated %s cache entries for provider %s", total, provider_id)
        return total

