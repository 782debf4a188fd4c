"""
Serenity Backend — Cache Manager
================================

What:  Thin JSON wrapper around an async Redis client, used for leaderboard
       and weekly-progress results.
Why:   Leaderboard aggregation scans the whole points ledger; caching it for
       a few minutes keeps the endpoint cheap under load.
How:   redis.asyncio client created lazily from settings.redis_url. Every
       call is retried by tenacity on connection/timeout errors and guarded
       by a CircuitBreaker. Values are stored as JSON under
       "{cache_namespace}:{key}".

Failure policy:
    The cache never fails a request. Errors are logged, counted in
    cache_stats_service and reported to the caller as a miss (get) or a
    no-op (set/delete). With REDIS_URL unset the manager is disabled and
    records nothing.

Cache key scheme (category = text before the first ":"):
    leaderboard:{period}:{category}:{limit}
    rank:{user_id}:{period}:{category}
    weekly_progress:{user_id}
    top_achievers:{limit}
"""

import json
import logging
import time
from typing import Any, Optional

from redis import asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from serenity.config import settings
from serenity.exceptions import CircuitBreakerOpenError
from serenity.services.cache_stats_service import cache_stats_service
from serenity.services.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


def key_category(key: str) -> str:
    return key.split(":", 1)[0]


class CacheManager:
    def __init__(self, redis_url: Optional[str] = None, namespace: Optional[str] = None):
        self.redis_url = settings.redis_url if redis_url is None else redis_url
        self.namespace = namespace or settings.cache_namespace
        self._client = None
        self.circuit_breaker = CircuitBreaker(
            name="cache",
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.redis_url)

    def _client_or_create(self):
        if self._client is None:
            self._client = aioredis.from_url(self.redis_url, decode_responses=True)
        return self._client

    def _k(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    @retry(
        retry=retry_if_exception_type((RedisConnectionError, RedisTimeoutError)),
        stop=stop_after_attempt(settings.retry_max_attempts),
        wait=wait_exponential_jitter(
            multiplier=settings.retry_min_wait,
            max=settings.retry_max_wait,
            jitter=settings.retry_min_wait,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async def _call(self, op: str, *args, **kwargs):
        client = self._client_or_create()
        return await getattr(client, op)(*args, **kwargs)

    async def _guarded(self, op: str, key: str, *args, **kwargs):
        """
        Run one Redis command behind the circuit breaker.

        Raises:
            CircuitBreakerOpenError: breaker is open
            RedisError / OSError: the command failed after retries
        """
        self.circuit_breaker.can_execute()
        try:
            result = await self._call(op, self._k(key), *args, **kwargs)
        except (RedisError, OSError):
            self.circuit_breaker.record_failure()
            raise
        self.circuit_breaker.record_success()
        return result

    def _degrade(self, op: str, key: str, error: Exception) -> None:
        category = key_category(key)
        cache_stats_service.record_error(category)
        if isinstance(error, CircuitBreakerOpenError):
            logger.debug("Cache %s skipped for %s: circuit open", op, key)
        else:
            logger.warning("Cache %s failed for %s: %s", op, key, str(error))

    # ── Public API ────────────────────────────────────────────────────────
    async def get(self, key: str) -> Optional[Any]:
        if not self.enabled:
            return None
        start = time.perf_counter()
        try:
            raw = await self._guarded("get", key)
            value = json.loads(raw) if raw is not None else None
        except (CircuitBreakerOpenError, RedisError, OSError, ValueError) as e:
            self._degrade("get", key, e)
            return None

        latency_ms = (time.perf_counter() - start) * 1000
        if value is None:
            cache_stats_service.record_miss(key_category(key), latency_ms)
        else:
            cache_stats_service.record_hit(key_category(key), latency_ms)
        return value

    async def set(self, key: str, value: Any, ttl: int = 300) -> None:
        if not self.enabled:
            return
        start = time.perf_counter()
        try:
            payload = json.dumps(value, default=str)
            await self._guarded("set", key, payload, ex=ttl)
        except (CircuitBreakerOpenError, RedisError, OSError, TypeError) as e:
            self._degrade("set", key, e)
            return
        latency_ms = (time.perf_counter() - start) * 1000
        cache_stats_service.record_set(key_category(key), len(payload.encode("utf-8")), latency_ms)

    async def delete(self, key: str) -> None:
        if not self.enabled:
            return
        start = time.perf_counter()
        try:
            await self._guarded("delete", key)
        except (CircuitBreakerOpenError, RedisError, OSError) as e:
            self._degrade("delete", key, e)
            return
        latency_ms = (time.perf_counter() - start) * 1000
        cache_stats_service.record_invalidation(key_category(key), latency_ms)

    async def health_check(self) -> str:
        """disabled | circuit_open | available | unavailable"""
        if not self.enabled:
            return "disabled"
        if self.circuit_breaker.is_open:
            return "circuit_open"
        try:
            await self._client_or_create().ping()
            return "available"
        except (RedisError, OSError) as e:
            logger.warning("Cache health check failed: %s", str(e))
            return "unavailable"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


cache_manager = CacheManager()
