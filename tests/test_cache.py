"""
Serenity Backend — Cache Layer Unit Tests (Mocked Redis)
========================================================

What:  Tests for CircuitBreaker, CacheStatsService and CacheManager.
How:   The Redis client is replaced by an AsyncMock; no server needed.

What we test:
    ✅ Circuit breaker state machine
    ✅ Hit/miss/set/invalidation counters and hit rate
    ✅ Cache failures degrade to misses and open the breaker
    ✅ Health check states
    ❌ A real Redis server (use integration tests for that)
"""

import json
import time
from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import select

from serenity.config import settings
from serenity.exceptions import CircuitBreakerOpenError
from serenity.models.analytics import CacheStatsSnapshot
from serenity.services.cache_manager import CacheManager, key_category
from serenity.services.cache_stats_service import CacheStatsService
from serenity.services.circuit_breaker import CircuitBreaker


class TestCircuitBreaker:
    """Tests for the CircuitBreaker resilience pattern."""

    def test_initial_state_is_closed(self):
        cb = CircuitBreaker("cache", failure_threshold=5, recovery_timeout=60)
        assert cb.state == "closed"
        assert cb.failure_count == 0

    def test_stays_closed_under_threshold(self):
        cb = CircuitBreaker("cache", failure_threshold=5, recovery_timeout=60)
        for _ in range(4):
            cb.record_failure()
        assert cb.state == "closed"
        assert cb.can_execute() is True

    def test_open_circuit_rejects_calls(self):
        cb = CircuitBreaker("cache", failure_threshold=2, recovery_timeout=60)
        cb.record_failure()
        cb.record_failure()
        assert cb.is_open
        with pytest.raises(CircuitBreakerOpenError) as exc:
            cb.can_execute()
        assert exc.value.recovery_time <= 60

    def test_half_open_after_recovery_timeout(self):
        cb = CircuitBreaker("cache", failure_threshold=1, recovery_timeout=10)
        cb.record_failure()
        cb.last_failure_time = time.time() - 11
        assert cb.can_execute() is True
        assert cb.state == "half_open"

    def test_half_open_failure_reopens(self):
        cb = CircuitBreaker("cache", failure_threshold=3, recovery_timeout=10)
        cb.state = cb.HALF_OPEN
        cb.record_failure()
        assert cb.state == "open"

    def test_success_closes_and_resets(self):
        cb = CircuitBreaker("cache", failure_threshold=3, recovery_timeout=10)
        cb.state = cb.HALF_OPEN
        cb.failure_count = 3
        cb.record_success()
        assert cb.state == "closed"
        assert cb.failure_count == 0


class TestCacheStats:
    def setup_method(self):
        self.stats = CacheStatsService()

    def test_hit_rate(self):
        self.stats.record_hit("leaderboard", 2.0)
        self.stats.record_hit("leaderboard", 4.0)
        self.stats.record_miss("leaderboard", 3.0)
        self.stats.record_miss("rank", 1.0)

        assert self.stats.get_hit_rate() == 50.0
        assert self.stats.get_hit_rate(category="leaderboard") == pytest.approx(66.67)
        assert self.stats.get_hit_rate(cache_type="memory") == 0.0

    def test_running_average_latency(self):
        self.stats.record_hit("leaderboard", 2.0)
        self.stats.record_miss("leaderboard", 4.0)
        entry = self.stats.get_category_stats("redis", "leaderboard")
        assert entry["avg_latency"] == pytest.approx(3.0)

    def test_set_and_invalidate_track_keys(self):
        self.stats.record_set("rank", 120, 1.0)
        self.stats.record_set("rank", 80, 1.0)
        self.stats.record_invalidation("rank", 1.0)
        self.stats.record_invalidation("rank", 1.0)
        self.stats.record_invalidation("rank", 1.0)

        entry = self.stats.get_category_stats("redis", "rank")
        assert entry["bytes_stored"] == 200
        assert entry["key_count"] == 0
        assert entry["invalidations"] == 3

    def test_errors_do_not_touch_latency(self):
        self.stats.record_error("rank")
        entry = self.stats.get_category_stats("redis", "rank")
        assert entry["errors"] == 1
        assert entry["avg_latency"] == 0.0

    def test_reset(self):
        self.stats.record_hit("rank", 1.0)
        self.stats.reset()
        assert self.stats.get_stats() == []

    @pytest.mark.asyncio
    async def test_persist_and_history(self, db_session):
        self.stats.record_hit("leaderboard", 1.0)
        self.stats.record_miss("weekly_progress", 1.0)

        assert await self.stats.persist_stats(db_session) == 2

        rows = (await db_session.execute(select(CacheStatsSnapshot))).scalars().all()
        assert {r.category for r in rows} == {"leaderboard", "weekly_progress"}
        history = await self.stats.get_historical_stats(db_session, cache_type="redis", hours=1)
        assert len(history) == 2


class TestCacheManager:
    def setup_method(self):
        self.stats = CacheStatsService()
        self.patcher = patch("serenity.services.cache_manager.cache_stats_service", self.stats)
        self.patcher.start()
        self.manager = CacheManager(redis_url="redis://localhost:6379/0", namespace="test")
        self.client = AsyncMock()
        self.manager._client = self.client

    def teardown_method(self):
        self.patcher.stop()

    def test_key_category(self):
        assert key_category("rank:abc:weekly:total") == "rank"
        assert key_category("plain") == "plain"

    def test_retry_backoff_follows_settings(self):
        wait = CacheManager._call.retry.wait
        assert wait.multiplier == settings.retry_min_wait
        assert wait.max == settings.retry_max_wait
        assert wait.jitter == settings.retry_min_wait

    @pytest.mark.asyncio
    async def test_disabled_without_url(self):
        manager = CacheManager(redis_url="")
        assert manager.enabled is False
        assert await manager.get("leaderboard:x") is None
        await manager.set("leaderboard:x", [1])
        assert await manager.health_check() == "disabled"
        assert self.stats.get_stats() == []

    @pytest.mark.asyncio
    async def test_get_hit(self):
        self.client.get.return_value = json.dumps([{"rank": 1}])
        value = await self.manager.get("leaderboard:all-time:total:10")
        assert value == [{"rank": 1}]
        self.client.get.assert_awaited_once_with("test:leaderboard:all-time:total:10")
        assert self.stats.get_category_stats("redis", "leaderboard")["hits"] == 1

    @pytest.mark.asyncio
    async def test_get_miss(self):
        self.client.get.return_value = None
        assert await self.manager.get("rank:u1:weekly:total") is None
        assert self.stats.get_category_stats("redis", "rank")["misses"] == 1

    @pytest.mark.asyncio
    async def test_set_serializes_with_ttl(self):
        await self.manager.set("weekly_progress:u1", {"current_week": 10}, ttl=60)
        self.client.set.assert_awaited_once_with(
            "test:weekly_progress:u1", json.dumps({"current_week": 10}), ex=60
        )
        entry = self.stats.get_category_stats("redis", "weekly_progress")
        assert entry["sets"] == 1
        assert entry["key_count"] == 1

    @pytest.mark.asyncio
    async def test_failure_degrades_to_miss(self):
        self.client.get.side_effect = RedisConnectionError("connection refused")
        assert await self.manager.get("leaderboard:x") is None
        # retried before giving up
        assert self.client.get.await_count == 3
        assert self.stats.get_category_stats("redis", "leaderboard")["errors"] == 1
        assert self.manager.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_breaker_opens_and_skips_redis(self):
        self.client.get.side_effect = RedisConnectionError("connection refused")
        for _ in range(self.manager.circuit_breaker.failure_threshold):
            await self.manager.get("leaderboard:x")
        assert self.manager.circuit_breaker.is_open

        calls = self.client.get.await_count
        assert await self.manager.get("leaderboard:x") is None
        assert self.client.get.await_count == calls
        assert await self.manager.health_check() == "circuit_open"

    @pytest.mark.asyncio
    async def test_health_check(self):
        assert await self.manager.health_check() == "available"
        self.client.ping.side_effect = RedisConnectionError("down")
        assert await self.manager.health_check() == "unavailable"

    @pytest.mark.asyncio
    async def test_close(self):
        await self.manager.close()
        self.client.aclose.assert_awaited_once()
        assert self.manager._client is None
