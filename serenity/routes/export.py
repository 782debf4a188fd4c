"""
Serenity Backend — Export Routes
================================

What:  Download a user's own data as JSON or CSV.
How:   JSON responses carry the records directly. CSV responses are
       text/csv with a Content-Disposition attachment filename.
"""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.services.auth_service import get_current_user
from serenity.services.export_service import export_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/export", tags=["Export"])

ExportFormat = Literal["json", "csv"]


def _respond(payload, fmt: str, name: str, user: User) -> Response:
    if fmt == "csv":
        return Response(
            content=payload,
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{name}-{user.id}.csv"'},
        )
    return JSONResponse(content=payload)


@router.get("/achievements", summary="Export my achievements")
async def export_achievements(
    format: ExportFormat = Query(default="json"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    data = await export_service.export_achievements(db, user, format, start_date, end_date)
    return _respond(data, format, "achievements", user)


@router.get("/meditations", summary="Export my meditation sessions")
async def export_meditations(
    format: ExportFormat = Query(default="json"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    data = await export_service.export_meditations(db, user, format, start_date, end_date)
    return _respond(data, format, "meditations", user)


@router.get("/stress-levels", summary="Export my stress assessments")
async def export_stress_levels(
    format: ExportFormat = Query(default="json"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    data = await export_service.export_stress_levels(db, user, format, start_date, end_date)
    return _respond(data, format, "stress-levels", user)


@router.get("/user-data", summary="Export everything")
async def export_user_data(
    format: ExportFormat = Query(default="json"),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    data = await export_service.export_user_data(db, user, format, start_date, end_date)
    return _respond(data, format, "user-data", user)
