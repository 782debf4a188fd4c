"""
Serenity Backend — Application Package
======================================

What: Wellness and meditation tracking API (sessions, stress, journaling,
      achievements, friends and group practice).
Who:  Imported by uvicorn (`serenity.main:app`), Alembic and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← state machine, scoring, analytics
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

Routes never touch the ORM directly; services never build HTTP responses.
"""

__version__ = "1.0.0"
