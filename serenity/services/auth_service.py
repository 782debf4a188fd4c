"""
Serenity Backend — Authentication Service
=========================================

What:  Password hashing, JWT issuing/validation, register/login/refresh, and
       the `get_current_user` FastAPI dependency.
How:   bcrypt for password hashes (cost from settings.bcrypt_rounds), PyJWT
       HS256 for access tokens. Hashing runs in a worker thread so a login
       does not stall the event loop.

Token claims:
    sub       user id (UUID string)
    username  display name at issue time
    iat/exp   issued-at / expiry (settings.jwt_expiration_hours)
"""

import asyncio
import logging
import uuid
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.config import settings
from serenity.database import get_db_session, utcnow
from serenity.exceptions import AuthenticationError, ValidationError
from serenity.models.user import User

logger = logging.getLogger(__name__)

# auto_error=False: a missing header becomes our AuthenticationError (401
# with the standard error body) instead of FastAPI's bare 403.
security = HTTPBearer(auto_error=False)


# ── Password hashing ──────────────────────────────────────────────────────
def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


# ── Tokens ────────────────────────────────────────────────────────────────
def create_access_token(user: User) -> str:
    now = utcnow()
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expiration_hours),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Invalid token")


def token_subject(token: str) -> Optional[str]:
    """Return the `sub` claim of a valid token, or None. Never raises."""
    try:
        return decode_token(token).get("sub")
    except AuthenticationError:
        return None


class AuthService:
    """Account creation and credential checks."""

    async def register(
        self, db: AsyncSession, username: str, email: str, password: str
    ) -> dict:
        email = email.lower()
        result = await db.execute(
            select(User).where(or_(User.email == email, User.username == username))
        )
        if result.scalars().first() is not None:
            raise ValidationError("User already exists")

        password_hash = await asyncio.to_thread(hash_password, password)
        user = User(username=username, email=email, password_hash=password_hash)
        db.add(user)
        await db.flush()
        logger.info("User registered: %s", user.id)
        return {"token": create_access_token(user), "user": user}

    async def login(self, db: AsyncSession, email: str, password: str) -> dict:
        result = await db.execute(select(User).where(User.email == email.lower()))
        user = result.scalar_one_or_none()
        if user is None or not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info("Failed login attempt")
            raise AuthenticationError("Invalid credentials")
        return {"token": create_access_token(user), "user": user}

    async def refresh_token(self, user: User) -> dict:
        return {"token": create_access_token(user), "user": user}


auth_service = AuthService()


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """FastAPI dependency: resolve the bearer token to a User or raise 401."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")

    payload = decode_token(credentials.credentials)
    subject = payload.get("sub")
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError:
        raise AuthenticationError("Invalid token payload")

    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError("User not found")

    # Picked up by the access log.
    request.state.user_id = str(user.id)
    return user
