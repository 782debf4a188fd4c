"""
Serenity Backend — Stress Level Service
=======================================

What:  Questionnaire scoring, technique recommendations and the quick
       analytics (trend, peak hours, weekday/time-of-day patterns) over a
       user's last 30 stress assessments.

Scoring:
    score = 0.25·physical + 0.30·emotional + 0.20·behavioral + 0.25·cognitive
    (each answer 0-10, missing answers count as 0)

    score < 3 → LOW      score < 7 → MODERATE      otherwise → HIGH
"""

import logging
from collections import Counter, defaultdict
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import as_utc
from serenity.exceptions import ValidationError
from serenity.models.stress import StressAssessment
from serenity.models.user import User

logger = logging.getLogger(__name__)

LOW, MODERATE, HIGH = "LOW", "MODERATE", "HIGH"
LEVEL_ORDINAL = {LOW: 1, MODERATE: 2, HIGH: 3}

SYMPTOM_WEIGHTS = {
    "physical": 0.25,
    "emotional": 0.30,
    "behavioral": 0.20,
    "cognitive": 0.25,
}

WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

TECHNIQUE_RECOMMENDATIONS = [
    {
        "title": "Calming Breath Exercise",
        "technique": "4-7-8 Breathing",
        "duration": 5,
        "description": "A simple breathing technique to reduce anxiety",
    },
    {
        "title": "Body Awareness Meditation",
        "technique": "Body Scan",
        "duration": 10,
        "description": "A meditation focusing on body sensations",
    },
    {
        "title": "Tension Release",
        "technique": "Progressive Muscle Relaxation",
        "duration": 15,
        "description": "Systematically tense and relax muscle groups",
    },
    {
        "title": "Quick Grounding Exercise",
        "technique": "Square Breathing",
        "duration": 2,
        "description": "A short breathing pattern to quickly reduce stress",
    },
]

HISTORY_LIMIT = 30


def level_from_number(level: int) -> str:
    """Map a 1-10 reading to LOW (≤3), MODERATE (≤7) or HIGH."""
    if level <= 3:
        return LOW
    if level <= 7:
        return MODERATE
    return HIGH


def time_slot(hour: int) -> str:
    if 5 <= hour < 12:
        return "Morning"
    if 12 <= hour < 17:
        return "Afternoon"
    if 17 <= hour < 22:
        return "Evening"
    return "Night"


class StressManagementService:
    # ── Scoring ───────────────────────────────────────────────────────────
    def calculate_stress_score(
        self,
        physical: Optional[float] = None,
        emotional: Optional[float] = None,
        behavioral: Optional[float] = None,
        cognitive: Optional[float] = None,
    ) -> float:
        answers = {
            "physical": physical,
            "emotional": emotional,
            "behavioral": behavioral,
            "cognitive": cognitive,
        }
        score = 0.0
        for name, value in answers.items():
            value = value or 0
            if not 0 <= value <= 10:
                raise ValidationError(f"{name} must be between 0 and 10", field=name)
            score += value * SYMPTOM_WEIGHTS[name]
        return round(score, 2)

    def determine_stress_level(self, score: float) -> str:
        if score < 3:
            return LOW
        if score < 7:
            return MODERATE
        return HIGH

    async def assess_stress_level(self, db: AsyncSession, user: User, symptoms: Dict[str, Optional[float]]) -> dict:
        score = self.calculate_stress_score(**symptoms)
        level = self.determine_stress_level(score)

        assessment = StressAssessment(
            user_id=user.id,
            stress_level=max(1, min(10, round(score))),
            score=score,
            source="questionnaire",
        )
        db.add(assessment)
        await db.flush()
        logger.info("Stress assessed for user %s: %s (%.2f)", user.id, level, score)
        return {"level": level, "score": score, "assessment_id": assessment.id}

    # ── Recommendations ───────────────────────────────────────────────────
    async def get_recommendations(self, db: AsyncSession, user: User, level: Optional[str] = None) -> dict:
        if level is None:
            latest = await self._latest(db, user)
            level = level_from_number(latest.stress_level) if latest else MODERATE
        return {"level": level, "recommendations": [dict(r) for r in TECHNIQUE_RECOMMENDATIONS]}

    def record_stress_change(self, user: User, before: str, after: str, technique: str) -> dict:
        if before not in LEVEL_ORDINAL or after not in LEVEL_ORDINAL:
            raise ValidationError("Stress levels must be LOW, MODERATE or HIGH")
        if not technique:
            raise ValidationError("Technique is required", field="technique")
        logger.info("User %s stress change: %s -> %s using %s", user.id, before, after, technique)
        return {
            "before": before,
            "after": after,
            "technique": technique,
            "reduction": LEVEL_ORDINAL[before] - LEVEL_ORDINAL[after],
        }

    # ── History & analytics ───────────────────────────────────────────────
    async def _latest(self, db: AsyncSession, user: User) -> Optional[StressAssessment]:
        result = await db.execute(
            select(StressAssessment)
            .where(StressAssessment.user_id == user.id)
            .order_by(StressAssessment.date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_stress_history(self, db: AsyncSession, user: User) -> List[StressAssessment]:
        result = await db.execute(
            select(StressAssessment)
            .where(StressAssessment.user_id == user.id)
            .order_by(StressAssessment.date.desc())
            .limit(HISTORY_LIMIT)
        )
        return list(result.scalars().all())

    async def get_stress_analytics(self, db: AsyncSession, user: User) -> dict:
        history = await self.get_stress_history(db, user)
        levels = [a.stress_level for a in history]
        return {
            "average_level": round(sum(levels) / len(levels), 2) if levels else 0.0,
            "trend": self.analyze_trend(list(reversed(history))),
            "peak_stress_times": self.find_peak_stress_times(history),
        }

    async def get_peak_stress_hours(self, db: AsyncSession, user: User) -> List[str]:
        return self.find_peak_stress_times(await self.get_stress_history(db, user))

    async def get_stress_patterns(self, db: AsyncSession, user: User) -> dict:
        history = await self.get_stress_history(db, user)

        weekday: Dict[str, List[int]] = defaultdict(list)
        slots: Dict[str, List[int]] = defaultdict(list)
        triggers: Counter = Counter()
        for a in history:
            when = as_utc(a.date)
            weekday[WEEKDAYS[when.weekday()]].append(a.stress_level)
            slots[time_slot(when.hour)].append(a.stress_level)
            triggers.update(a.triggers or [])

        return {
            "weekday_patterns": {d: round(sum(v) / len(v), 2) for d, v in weekday.items()},
            "time_of_day_patterns": {s: round(sum(v) / len(v), 2) for s, v in slots.items()},
            "common_triggers": [t for t, _ in triggers.most_common(3)],
        }

    def analyze_trend(self, chronological: List[StressAssessment]) -> str:
        """Compare the older half with the newer half of the readings."""
        if len(chronological) < 2:
            return "STABLE"
        mid = len(chronological) // 2
        first = [a.stress_level for a in chronological[:mid]]
        second = [a.stress_level for a in chronological[mid:]]
        first_avg = sum(first) / len(first)
        second_avg = sum(second) / len(second)
        if second_avg <= first_avg - 0.5:
            return "IMPROVING"
        if second_avg >= first_avg + 0.5:
            return "WORSENING"
        return "STABLE"

    def find_peak_stress_times(self, history: List[StressAssessment]) -> List[str]:
        hourly: Counter = Counter()
        for a in history:
            hourly[as_utc(a.date).hour] += a.stress_level
        return [f"{hour}:00" for hour, _ in hourly.most_common(3)]


stress_management_service = StressManagementService()
