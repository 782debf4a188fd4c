# Routes package init
"""
Serenity Backend — API Routes Package
=====================================

What:  HTTP route handlers, one module per resource.
How:   Each module exposes an APIRouter; main.create_app() mounts them all.

Route Inventory:
    - auth.py:                /api/auth                 (register, login, refresh, me)
    - users.py:               /api/users/me             (profile, password, stats)
    - meditations.py:         /api/meditations          (catalogue CRUD, start)
    - meditation_sessions.py: /api/meditation-sessions  (lifecycle, stats, streaks)
    - stress_management.py:   /api/stress-management    (sessions, analytics, triggers)
    - stress_assessments.py:  /api/stress-assessments   (CRUD, latest, average)
    - stress_techniques.py:   /api/stress-techniques    (catalogue, search, recommended)
    - breathing.py:           /api/breathing            (patterns, sessions)
    - pmr.py:                 /api/pmr                  (muscle groups, sessions)
    - journals.py:            /api/journals             (entries, mood summary)
    - achievements.py:        /api/achievements         (progress, points)
    - friends.py:             /api/friends              (requests, blocking)
    - group_sessions.py:      /api/group-sessions       (schedule, join, run, chat)
    - leaderboard.py:         /api/leaderboard          (rankings, weekly progress)
    - notifications.py:       /api/notifications        (inbox, preferences)
    - recommendations.py:     /api/recommendations
    - session_analytics.py:   /api/session-analytics
    - cache_stats.py:         /api/cache-stats
    - export.py:              /api/export               (JSON or CSV downloads)
    - health.py:              /health

Routes stay thin: parse the request, call a service, shape the response.
Business rules and ownership checks live in the services.
"""
