"""Cache hit/miss statistics: live counters, history snapshots and reset."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.schemas.analytics import CacheSnapshotResponse, CacheStatsEntry, HitRateResponse
from serenity.schemas.common import MessageResponse
from serenity.services.auth_service import get_current_user
from serenity.services.cache_stats_service import cache_stats_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/cache-stats",
    tags=["Cache Stats"],
    dependencies=[Depends(get_current_user)],
)


@router.get("", response_model=List[CacheStatsEntry], summary="Live counters per cache and category")
async def get_stats(cache_type: Optional[str] = Query(default=None)) -> List[CacheStatsEntry]:
    return cache_stats_service.get_stats(cache_type)


@router.get("/hit-rate", response_model=HitRateResponse, summary="Hit rate as a percentage")
async def get_hit_rate(
    cache_type: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
) -> HitRateResponse:
    return HitRateResponse(hit_rate=cache_stats_service.get_hit_rate(cache_type, category))


@router.get("/history", response_model=List[CacheSnapshotResponse], summary="Persisted snapshots, oldest first")
async def get_history(
    cache_type: Optional[str] = Query(default=None),
    hours: int = Query(default=24, ge=1, le=720),
    db: AsyncSession = Depends(get_db_session),
) -> List[CacheSnapshotResponse]:
    return await cache_stats_service.get_historical_stats(db, cache_type=cache_type, hours=hours)


@router.post("/persist", response_model=MessageResponse, summary="Write a snapshot of the live counters")
async def persist(db: AsyncSession = Depends(get_db_session)) -> MessageResponse:
    count = await cache_stats_service.persist_stats(db)
    return MessageResponse(message=f"Persisted {count} cache stats entries")


@router.post("/reset", response_model=MessageResponse, summary="Clear the live counters")
async def reset() -> MessageResponse:
    cache_stats_service.reset()
    return MessageResponse(message="Cache statistics reset")
