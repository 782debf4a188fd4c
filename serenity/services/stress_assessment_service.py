"""Stress assessment CRUD and simple averages."""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import utcnow
from serenity.exceptions import AuthorizationError, NotFoundError
from serenity.models.stress import StressAssessment
from serenity.models.user import User

logger = logging.getLogger(__name__)


class StressAssessmentService:
    async def create(self, db: AsyncSession, user: User, data: Dict[str, Any]) -> StressAssessment:
        values = {k: v for k, v in data.items() if v is not None}
        assessment = StressAssessment(user_id=user.id, **values)
        db.add(assessment)
        await db.flush()
        return assessment

    async def get(self, db: AsyncSession, user: User, assessment_id: uuid.UUID) -> StressAssessment:
        assessment = await db.get(StressAssessment, assessment_id)
        if assessment is None:
            raise NotFoundError(resource="stress assessment", resource_id=str(assessment_id))
        if assessment.user_id != user.id:
            raise AuthorizationError()
        return assessment

    async def list(
        self,
        db: AsyncSession,
        user: User,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 30,
    ) -> List[StressAssessment]:
        query = select(StressAssessment).where(StressAssessment.user_id == user.id)
        if start_date:
            query = query.where(StressAssessment.date >= start_date)
        if end_date:
            query = query.where(StressAssessment.date <= end_date)
        result = await db.execute(query.order_by(StressAssessment.date.desc()).limit(limit))
        return list(result.scalars().all())

    async def update(
        self, db: AsyncSession, user: User, assessment_id: uuid.UUID, changes: Dict[str, Any]
    ) -> StressAssessment:
        assessment = await self.get(db, user, assessment_id)
        for field, value in changes.items():
            if value is not None:
                setattr(assessment, field, value)
        await db.flush()
        return assessment

    async def delete(self, db: AsyncSession, user: User, assessment_id: uuid.UUID) -> None:
        assessment = await self.get(db, user, assessment_id)
        await db.delete(assessment)
        await db.flush()

    async def get_latest(self, db: AsyncSession, user: User) -> Optional[StressAssessment]:
        result = await db.execute(
            select(StressAssessment)
            .where(StressAssessment.user_id == user.id)
            .order_by(StressAssessment.date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_average_stress_level(self, db: AsyncSession, user: User, days: int = 30) -> float:
        since = utcnow() - timedelta(days=days)
        result = await db.execute(
            select(func.avg(StressAssessment.stress_level)).where(
                StressAssessment.user_id == user.id, StressAssessment.date >= since
            )
        )
        average = result.scalar()
        return round(float(average), 1) if average is not None else 0.0


stress_assessment_service = StressAssessmentService()
