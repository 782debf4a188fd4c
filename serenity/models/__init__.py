"""
ORM models. Importing this package registers every table on Base.metadata,
which Alembic and the test suite's create_all rely on.
"""

from serenity.models.user import User
from serenity.models.meditation import Meditation
from serenity.models.wellness_session import (
    BreathingSession,
    MeditationSession,
    PMRSession,
    SessionStatus,
    StressManagementSession,
    WellnessSession,
)
from serenity.models.stress import StressAssessment, StressTechnique
from serenity.models.journal import Journal
from serenity.models.achievement import Achievement, PointsHistory, UserPoints
from serenity.models.social import ChatMessage, FriendRequest, GroupSession, GroupSessionParticipant, UserBlock
from serenity.models.notification import Notification
from serenity.models.analytics import CacheStatsSnapshot, SessionAnalytics
from serenity.models.exercise import BreathingPattern, MuscleGroup

__all__ = [
    "Achievement",
    "BreathingPattern",
    "BreathingSession",
    "CacheStatsSnapshot",
    "ChatMessage",
    "FriendRequest",
    "GroupSession",
    "GroupSessionParticipant",
    "Journal",
    "Meditation",
    "MeditationSession",
    "MuscleGroup",
    "Notification",
    "PMRSession",
    "PointsHistory",
    "SessionAnalytics",
    "SessionStatus",
    "StressAssessment",
    "StressManagementSession",
    "StressTechnique",
    "User",
    "UserBlock",
    "UserPoints",
    "WellnessSession",
]
