"""
Serenity Backend — Recommendation Service
=========================================

What:  Suggests what to practise next.
How:   Each source below contributes candidates with a priority (1-10).
       Candidates are sorted by priority, highest first, keeping insertion
       order for ties, and the first `limit` are returned.

Sources, in insertion order:
    1. stress level of the latest assessment
    2. the first two triggers of the latest assessment
    3. the last HISTORY_SIZE meditation sessions (most frequent type, unfinished session)
    4. time of day (UTC)
    5. variety, when there are more than three meditation sessions
    6. stored preferences (technique, preferred time window)

Recommendations are advisory: any failure is logged and yields [].
"""

import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import utcnow
from serenity.models.stress import StressAssessment
from serenity.models.user import User
from serenity.models.wellness_session import MeditationSession, SessionStatus

logger = logging.getLogger(__name__)

HISTORY_SIZE = 10


def _rec(type_, title, duration, category, reason, priority, session_id=None) -> dict:
    rec = {
        "type": type_,
        "title": title,
        "duration": duration,
        "category": category,
        "reason": reason,
        "priority": priority,
    }
    if session_id is not None:
        rec["session_id"] = session_id
    return rec


TRIGGER_RECOMMENDATIONS = {
    "work": _rec("meditation", "Work Stress Relief", 10, "stress-reduction",
                 "Targeted for work-related stress", 9),
    "family": _rec("meditation", "Family Harmony Meditation", 15, "relationships",
                   "Helps with family-related stress", 8),
    "health": _rec("meditation", "Health Anxiety Relief", 12, "anxiety",
                   "Focused on health-related concerns", 9),
    "financial": _rec("breathing", "Financial Stress Breathing", 8, "stress-reduction",
                      "Helps manage financial stress", 8),
    "social": _rec("meditation", "Social Anxiety Meditation", 15, "anxiety",
                   "Designed for social anxiety", 7),
    "time": _rec("breathing", "Quick Time Management Reset", 5, "focus",
                 "Brief session for time-related stress", 8),
}

TECHNIQUE_TITLES = {
    "4-7-8": "4-7-8 Breathing Technique",
    "BOX_BREATHING": "Box Breathing Exercise",
    "ALTERNATE_NOSTRIL": "Alternate Nostril Breathing",
    "GUIDED": "Guided Meditation",
    "MINDFULNESS": "Mindfulness Meditation",
    "BODY_SCAN": "Body Scan Meditation",
    "PROGRESSIVE_RELAXATION": "Progressive Muscle Relaxation",
    "STRETCHING": "Mindful Stretching",
    "WALKING": "Walking Meditation",
    "GROUNDING": "Grounding Exercise",
    "VISUALIZATION": "Visualization Meditation",
    "QUICK_BREATH": "Quick Breathing Reset",
}

TECHNIQUE_TYPES = {
    "4-7-8": "breathing",
    "BOX_BREATHING": "breathing",
    "ALTERNATE_NOSTRIL": "breathing",
    "GUIDED": "guided",
    "MINDFULNESS": "meditation",
    "BODY_SCAN": "body-scan",
    "PROGRESSIVE_RELAXATION": "body-scan",
    "STRETCHING": "movement",
    "WALKING": "movement",
    "GROUNDING": "meditation",
    "VISUALIZATION": "meditation",
    "QUICK_BREATH": "breathing",
}

# Inclusive hour ranges; NIGHT wraps past midnight.
TIME_WINDOWS = {
    "MORNING": (5, 11),
    "AFTERNOON": (12, 17),
    "EVENING": (18, 22),
    "NIGHT": (23, 4),
}


def in_time_window(hour: int, window: str) -> bool:
    bounds = TIME_WINDOWS.get(window)
    if bounds is None:
        return False
    start, end = bounds
    if start <= end:
        return start <= hour <= end
    return hour >= start or hour <= end


def stress_level_recommendations(level: float) -> List[dict]:
    if level >= 7:
        return [
            _rec("meditation", "Stress Relief Meditation", 10, "stress-reduction",
                 "Based on your recent stress levels", 10),
            _rec("breathing", "Quick Stress Relief Breathing", 5, "stress-reduction",
                 "For immediate stress relief", 9),
        ]
    if level >= 4:
        return [
            _rec("meditation", "Calming Meditation", 15, "calm", "To help maintain balance", 8),
            _rec("body-scan", "Tension Release Body Scan", 12, "relaxation",
                 "To release physical tension", 7),
        ]
    return [
        _rec("meditation", "Mindfulness Practice", 20, "mindfulness",
             "To enhance your mindfulness practice", 6),
        _rec("meditation", "Gratitude Meditation", 15, "positive", "To cultivate positive emotions", 5),
    ]


def trigger_recommendations(triggers: List[str]) -> List[dict]:
    recs = []
    for trigger in triggers[:2]:
        known = TRIGGER_RECOMMENDATIONS.get(trigger.lower())
        if known is not None:
            recs.append(dict(known))
        else:
            recs.append(
                _rec("meditation", "Stress Trigger Relief", 10, "stress-reduction",
                     f"Helps with your identified stress trigger: {trigger}", 7)
            )
    return recs


def time_of_day_recommendations(hour: int) -> List[dict]:
    if 5 <= hour <= 8:
        return [_rec("meditation", "Morning Energizing Meditation", 10, "energy",
                     "Great way to start your day", 8 if 6 <= hour <= 8 else 5)]
    if 12 <= hour <= 13:
        return [_rec("breathing", "Midday Breathing Exercise", 5, "breathing", "Quick midday reset", 6)]
    if hour >= 21 or hour < 1:
        return [_rec("meditation", "Evening Wind Down", 15, "sleep",
                     "Prepare for restful sleep", 9 if hour >= 22 else 7)]
    return []


def preference_recommendations(preferences: dict, hour: int) -> List[dict]:
    recs = []
    duration = preferences.get("preferred_duration") or 15

    techniques = preferences.get("preferred_techniques") or []
    if techniques:
        technique = techniques[0]
        recs.append(
            _rec(TECHNIQUE_TYPES.get(technique, "meditation"),
                 TECHNIQUE_TITLES.get(technique, "Personalized Meditation"),
                 duration, "preferred", "Based on your preferred techniques", 8)
        )

    windows = (preferences.get("time_preferences") or {}).get("preferred_time") or []
    if any(in_time_window(hour, w) for w in windows):
        recs.append(
            _rec("meditation", "Preferred Time Session", duration, "preferred",
                 "Now is your preferred meditation time", 9)
        )
    return recs


class RecommendationService:
    def _history_recommendations(self, sessions: List[MeditationSession]) -> List[dict]:
        recs = []
        types = [s.session_type for s in sessions]
        most_common = Counter(types).most_common(1)[0][0]
        average = sum(s.duration or 0 for s in sessions) / len(sessions)
        duration = int(round(average / 5) * 5) or 15
        recs.append(
            _rec(most_common, f"{most_common[:1].upper()}{most_common[1:]} Session", duration,
                 most_common, "Based on your session history", 7)
        )

        unfinished = next(
            (s for s in sessions if s.status in (SessionStatus.ACTIVE, SessionStatus.PAUSED)), None
        )
        if unfinished is not None:
            recs.append(
                _rec(unfinished.session_type,
                     unfinished.title or "Continue Your Practice",
                     unfinished.duration or 10, "general", "Continue your previous session", 9,
                     session_id=unfinished.id)
            )
        return recs

    def _variety_recommendations(self, sessions: List[MeditationSession]) -> List[dict]:
        if len(sessions) <= 3:
            return []
        # History holds meditation sessions only; the alternative is breathing.
        return [_rec("breathing", "Try Breathing", 10, "variety", "Add variety to your practice", 7)]

    async def get_personalized_recommendations(
        self, db: AsyncSession, user: User, limit: int = 3, now: Optional[datetime] = None
    ) -> List[dict]:
        try:
            hour = (now or utcnow()).hour

            latest = await db.execute(
                select(StressAssessment)
                .where(StressAssessment.user_id == user.id)
                .order_by(StressAssessment.date.desc())
                .limit(1)
            )
            assessment = latest.scalar_one_or_none()

            history = await db.execute(
                select(MeditationSession)
                .where(MeditationSession.user_id == user.id)
                .order_by(MeditationSession.start_time.desc())
                .limit(HISTORY_SIZE)
            )
            sessions = list(history.scalars().all())

            recs: List[dict] = []
            if assessment is not None:
                recs.extend(stress_level_recommendations(assessment.stress_level))
                recs.extend(trigger_recommendations(list(assessment.triggers or [])))
            if sessions:
                recs.extend(self._history_recommendations(sessions))
            recs.extend(time_of_day_recommendations(hour))
            recs.extend(self._variety_recommendations(sessions))
            recs.extend(preference_recommendations(user.preferences or {}, hour))

            recs.sort(key=lambda r: r["priority"], reverse=True)
            return recs[:limit]
        except Exception:
            logger.exception("Failed to build recommendations for user %s", user.id)
            return []


recommendation_service = RecommendationService()
