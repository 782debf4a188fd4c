"""
Serenity Backend — Auth and User Schemas
========================================

What:  Registration, login and profile payloads.
How:   Shape checks (lengths, email syntax) happen here and fail with 422;
       uniqueness and credential checks happen in the services.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from serenity.config import settings


def _check_password_length(value: str) -> str:
    if len(value) < settings.password_min_length:
        raise ValueError(
            f"Password must be at least {settings.password_min_length} characters"
        )
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(max_length=128)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("Username must be at least 3 characters")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_length(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    preferences: Optional[Dict[str, Any]] = None


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str = Field(max_length=128)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password_length(v)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """Public view of a user. The password hash is never exposed."""
    id: uuid.UUID
    username: str
    email: str
    preferences: Dict[str, Any] = Field(default_factory=dict)
    current_streak: int = 0
    longest_streak: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    id: uuid.UUID
    username: str

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    token: str = Field(description="Bearer access token (JWT)")
    user: UserResponse


class UserStatsResponse(BaseModel):
    total_sessions: int
    total_minutes: int
    current_streak: int
    longest_streak: int
    total_points: int
    completed_achievements: int
