"""
Serenity Backend — Stress Analysis Service
==========================================

What:  Longer-range analysis of stress assessments over a date window:
       average, trend label, most common triggers and symptoms, peak hours
       and a list of plain-language insights.

Trend labelling (readings sorted oldest → newest):
    fewer than 3 readings                → INSUFFICIENT_DATA
    population std-dev > 2.5             → FLUCTUATING
    avg(last third) − avg(first third)
        ≤ −1                             → IMPROVING
        ≥ +1                             → WORSENING
        otherwise                        → STABLE
    Thirds are n // 3 long; the last third takes the remainder.
"""

import logging
import statistics
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import as_utc, utcnow
from serenity.models.stress import StressAssessment
from serenity.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_DAYS = 30
MIN_ASSESSMENTS_FOR_TRIGGERS = 5
MIN_TRIGGER_OCCURRENCES = 2

TREND_INSIGHTS = {
    "IMPROVING": (
        "Your stress levels have been improving over time. "
        "Your current strategies appear to be working well."
    ),
    "WORSENING": (
        "Your stress levels have been increasing over time. "
        "Consider reviewing and adjusting your stress management approach."
    ),
    "FLUCTUATING": (
        "Your stress levels fluctuate significantly. "
        "Try to identify patterns and prepare for high-stress periods."
    ),
}


def format_hour(hour: int) -> str:
    """0 → "12:00 AM", 13 → "1:00 PM"."""
    suffix = "AM" if hour < 12 else "PM"
    display = hour % 12 or 12
    return f"{display}:00 {suffix}"


class StressAnalysisService:
    async def _assessments(
        self, db: AsyncSession, user: User, start: datetime, end: datetime
    ) -> List[StressAssessment]:
        result = await db.execute(
            select(StressAssessment)
            .where(
                StressAssessment.user_id == user.id,
                StressAssessment.date >= start,
                StressAssessment.date <= end,
            )
            .order_by(StressAssessment.date.asc())
        )
        return list(result.scalars().all())

    async def analyze_stress_data(
        self,
        db: AsyncSession,
        user: User,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict:
        end = end or utcnow()
        start = start or end - timedelta(days=DEFAULT_WINDOW_DAYS)
        assessments = await self._assessments(db, user, start, end)

        if not assessments:
            return {
                "average_stress_level": 0,
                "stress_trend": "INSUFFICIENT_DATA",
                "common_triggers": [],
                "common_symptoms": [],
                "peak_stress_times": [],
                "insights": ["No stress data available for the specified period."],
            }

        levels = [a.stress_level for a in assessments]
        average = round(sum(levels) / len(levels), 1)
        trend = self.calculate_trend(levels)

        triggers = Counter()
        symptoms = Counter()
        for a in assessments:
            triggers.update(a.triggers or [])
            symptoms.update((a.physical_symptoms or []) + (a.emotional_symptoms or []))
        common_triggers = [{"name": n, "count": c} for n, c in triggers.most_common(5)]
        common_symptoms = [{"name": n, "count": c} for n, c in symptoms.most_common(5)]

        peak_times = self.find_peak_stress_times(assessments)
        insights = self.generate_insights(assessments, average, trend, common_triggers, peak_times)

        return {
            "average_stress_level": average,
            "stress_trend": trend,
            "common_triggers": common_triggers,
            "common_symptoms": common_symptoms,
            "peak_stress_times": peak_times,
            "insights": insights,
        }

    def calculate_trend(self, levels: List[int]) -> str:
        n = len(levels)
        if n < 3:
            return "INSUFFICIENT_DATA"

        if statistics.pstdev(levels) > 2.5:
            return "FLUCTUATING"

        third = n // 3
        first = levels[:third]
        last = levels[2 * third:]
        delta = sum(last) / len(last) - sum(first) / len(first)
        if delta <= -1:
            return "IMPROVING"
        if delta >= 1:
            return "WORSENING"
        return "STABLE"

    def find_peak_stress_times(self, assessments: List[StressAssessment]) -> List[dict]:
        by_hour: Dict[int, List[int]] = defaultdict(list)
        for a in assessments:
            by_hour[as_utc(a.date).hour].append(a.stress_level)

        hours = [
            {
                "hour": hour,
                "average_stress": round(sum(values) / len(values), 1),
                "assessment_count": len(values),
                "time_of_day": format_hour(hour),
            }
            for hour, values in by_hour.items()
        ]
        hours.sort(key=lambda h: h["average_stress"], reverse=True)
        return hours[:3]

    def generate_insights(
        self,
        assessments: List[StressAssessment],
        average: float,
        trend: str,
        common_triggers: List[dict],
        peak_times: List[dict],
    ) -> List[str]:
        insights = []

        if average >= 7:
            insights.append(
                "Your average stress level is high. Consider incorporating more "
                "stress management techniques into your daily routine."
            )
        elif average >= 4:
            insights.append(
                "Your stress levels are moderate. Regular mindfulness practice can help maintain balance."
            )
        else:
            insights.append(
                "Your stress levels are generally low. Keep up your current stress management practices."
            )

        if trend in TREND_INSIGHTS:
            insights.append(TREND_INSIGHTS[trend])

        if common_triggers:
            top = common_triggers[0]
            insights.append(
                f'"{top["name"]}" is your most common stress trigger. Consider developing '
                "specific strategies to address this source of stress."
            )
            if len(common_triggers) > 1:
                second = common_triggers[1]
                if top["count"] > 2 * second["count"]:
                    insights.append(
                        f'"{top["name"]}" triggers stress much more frequently than other factors. '
                        "Focusing on this area could significantly reduce your overall stress."
                    )
                else:
                    insights.append(
                        f'Both "{top["name"]}" and "{second["name"]}" are significant sources of stress for you.'
                    )

        if peak_times:
            insights.append(
                f"Your stress tends to peak around {peak_times[0]['time_of_day']}. "
                "Consider scheduling stress management activities before this time."
            )

        weekday = [a.stress_level for a in assessments if as_utc(a.date).weekday() < 5]
        weekend = [a.stress_level for a in assessments if as_utc(a.date).weekday() >= 5]
        if weekday and weekend:
            diff = sum(weekday) / len(weekday) - sum(weekend) / len(weekend)
            if diff > 1.5:
                insights.append(
                    "Your stress levels are significantly higher on weekdays compared to weekends. "
                    "Work-related stress may be a key factor."
                )
            elif diff < -1.5:
                insights.append(
                    "Your stress levels are higher on weekends than weekdays. Consider examining "
                    "your weekend activities and responsibilities."
                )

        return insights

    async def identify_stress_triggers(self, db: AsyncSession, user: User, limit: int = 5) -> List[dict]:
        result = await db.execute(
            select(StressAssessment).where(StressAssessment.user_id == user.id)
        )
        assessments = list(result.scalars().all())
        if len(assessments) < MIN_ASSESSMENTS_FOR_TRIGGERS:
            return []

        levels_by_trigger: Dict[str, List[int]] = defaultdict(list)
        for a in assessments:
            for trigger in a.triggers or []:
                levels_by_trigger[trigger].append(a.stress_level)

        stats = [
            {
                "trigger": trigger,
                "count": len(levels),
                "average_stress": round(sum(levels) / len(levels), 1),
            }
            for trigger, levels in levels_by_trigger.items()
            if len(levels) >= MIN_TRIGGER_OCCURRENCES
        ]
        stats.sort(key=lambda s: s["average_stress"], reverse=True)
        return stats[:limit]


stress_analysis_service = StressAnalysisService()
