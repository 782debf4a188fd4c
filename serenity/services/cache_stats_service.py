"""
Serenity Backend — Cache Statistics
===================================

What:  In-process counters for cache traffic, bucketed by
       (cache_type, category), plus periodic snapshots to the database.
How:   CacheManager calls record_* after every operation. The category is
       the key prefix before the first ":" (e.g. "leaderboard").
Who:   Read by GET /api/cache-stats; snapshots by POST /api/cache-stats/persist.

Counters live in process memory: they reset on restart and are per worker.
"""

import logging
from datetime import timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import utcnow
from serenity.exceptions import DatabaseError
from serenity.models.analytics import CacheStatsSnapshot

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TYPE = "redis"


class StatsBucket:
    """Counters for one (cache_type, category) pair."""

    __slots__ = (
        "cache_type",
        "category",
        "hits",
        "misses",
        "sets",
        "invalidations",
        "errors",
        "avg_latency",
        "bytes_stored",
        "key_count",
    )

    def __init__(self, cache_type: str, category: str):
        self.cache_type = cache_type
        self.category = category
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.invalidations = 0
        self.errors = 0
        self.avg_latency = 0.0
        self.bytes_stored = 0
        self.key_count = 0

    @property
    def operations(self) -> int:
        return self.hits + self.misses + self.sets + self.invalidations

    @property
    def hit_rate(self) -> float:
        reads = self.hits + self.misses
        return round(self.hits / reads * 100, 2) if reads else 0.0

    def observe_latency(self, latency_ms: float) -> None:
        # Called after the operation counter was bumped, so operations >= 1.
        n = self.operations
        self.avg_latency += (latency_ms - self.avg_latency) / n

    def to_dict(self) -> dict:
        return {
            "cache_type": self.cache_type,
            "category": self.category,
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "invalidations": self.invalidations,
            "errors": self.errors,
            "avg_latency": round(self.avg_latency, 3),
            "bytes_stored": self.bytes_stored,
            "key_count": self.key_count,
            "hit_rate": self.hit_rate,
        }


class CacheStatsService:
    def __init__(self):
        self._buckets: Dict[Tuple[str, str], StatsBucket] = {}

    def _bucket(self, cache_type: str, category: str) -> StatsBucket:
        key = (cache_type, category)
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = StatsBucket(cache_type, category)
            self._buckets[key] = bucket
        return bucket

    # ── Recording ─────────────────────────────────────────────────────────
    def record_hit(self, category: str, latency_ms: float, cache_type: str = DEFAULT_CACHE_TYPE) -> None:
        bucket = self._bucket(cache_type, category)
        bucket.hits += 1
        bucket.observe_latency(latency_ms)

    def record_miss(self, category: str, latency_ms: float, cache_type: str = DEFAULT_CACHE_TYPE) -> None:
        bucket = self._bucket(cache_type, category)
        bucket.misses += 1
        bucket.observe_latency(latency_ms)

    def record_set(
        self, category: str, size_bytes: int, latency_ms: float, cache_type: str = DEFAULT_CACHE_TYPE
    ) -> None:
        bucket = self._bucket(cache_type, category)
        bucket.sets += 1
        bucket.bytes_stored += size_bytes
        bucket.key_count += 1
        bucket.observe_latency(latency_ms)

    def record_invalidation(
        self, category: str, latency_ms: float, cache_type: str = DEFAULT_CACHE_TYPE
    ) -> None:
        bucket = self._bucket(cache_type, category)
        bucket.invalidations += 1
        bucket.key_count = max(0, bucket.key_count - 1)
        bucket.observe_latency(latency_ms)

    def record_error(self, category: str, cache_type: str = DEFAULT_CACHE_TYPE) -> None:
        self._bucket(cache_type, category).errors += 1

    # ── Reading ───────────────────────────────────────────────────────────
    def get_stats(self, cache_type: Optional[str] = None) -> List[dict]:
        return [
            bucket.to_dict()
            for (ctype, _), bucket in sorted(self._buckets.items())
            if cache_type is None or ctype == cache_type
        ]

    def get_category_stats(self, cache_type: str, category: str) -> Optional[dict]:
        bucket = self._buckets.get((cache_type, category))
        return bucket.to_dict() if bucket else None

    def get_hit_rate(self, cache_type: Optional[str] = None, category: Optional[str] = None) -> float:
        hits = misses = 0
        for (ctype, cat), bucket in self._buckets.items():
            if cache_type is not None and ctype != cache_type:
                continue
            if category is not None and cat != category:
                continue
            hits += bucket.hits
            misses += bucket.misses
        reads = hits + misses
        return round(hits / reads * 100, 2) if reads else 0.0

    def reset(self) -> None:
        self._buckets.clear()
        logger.info("Cache statistics reset")

    # ── Persistence ───────────────────────────────────────────────────────
    async def persist_stats(self, db: AsyncSession) -> int:
        """Write one snapshot row per bucket; returns the number written."""
        now = utcnow()
        try:
            for bucket in self._buckets.values():
                db.add(
                    CacheStatsSnapshot(
                        timestamp=now,
                        cache_type=bucket.cache_type,
                        category=bucket.category,
                        hits=bucket.hits,
                        misses=bucket.misses,
                        sets=bucket.sets,
                        invalidations=bucket.invalidations,
                        errors=bucket.errors,
                        avg_latency=bucket.avg_latency,
                        bytes_stored=bucket.bytes_stored,
                        key_count=bucket.key_count,
                    )
                )
            await db.flush()
        except Exception as e:
            logger.error("Failed to persist cache stats: %s", str(e), exc_info=True)
            raise DatabaseError(context={"error_type": type(e).__name__})
        logger.info("Persisted %d cache stats snapshots", len(self._buckets))
        return len(self._buckets)

    async def get_historical_stats(
        self, db: AsyncSession, cache_type: Optional[str] = None, hours: int = 24
    ) -> List[CacheStatsSnapshot]:
        since = utcnow() - timedelta(hours=hours)
        query = select(CacheStatsSnapshot).where(CacheStatsSnapshot.timestamp >= since)
        if cache_type:
            query = query.where(CacheStatsSnapshot.cache_type == cache_type)
        result = await db.execute(query.order_by(CacheStatsSnapshot.timestamp.asc()))
        return list(result.scalars().all())


cache_stats_service = CacheStatsService()
