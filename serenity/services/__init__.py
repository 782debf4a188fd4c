# Services package init
"""
Serenity Backend — Services Layer
=================================

What:  Business logic between routes (HTTP) and the database.
How:   Each service is a class with a module-level singleton. Methods take
       the request's AsyncSession and the acting User, flush their writes,
       and leave commit/rollback to get_db_session.

Service Inventory:
    - auth_service:              password hashing, JWT issue/verify, current user
    - user_service:              profile and password updates, user stats
    - meditation_service:        meditation catalogue and ratings
    - meditation_session_service: session state machine, stats, streaks
    - completion:                shared side effects of finishing any session
    - stress_*_service:          assessments, scoring, analysis, techniques, sessions
    - breathing_service / pmr_service: guided exercise sessions
    - journal_service:           journal entries and mood summaries
    - achievement_service / points_service: progress tracking and rewards
    - friend_service / group_session_service: social features
    - chat_service:              group session chat and system messages
    - leaderboard_service:       rankings, cached through cache_manager
    - notification_service:      in-app notifications and preferences
    - recommendation_service:    personalized practice suggestions
    - session_analytics_service: per-session analytics
    - export_service:            JSON and CSV exports
    - cache_manager / cache_stats_service / circuit_breaker: Redis cache layer
"""
