"""Stress technique catalogue: browse, search, preference-based picks and edits."""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from serenity.database import get_db_session
from serenity.models.user import User
from serenity.schemas.common import ErrorResponse
from serenity.schemas.stress import (
    StressTechniqueCreate,
    StressTechniqueResponse,
    StressTechniqueUpdate,
    TechniqueCategory,
    TechniqueDifficulty,
)
from serenity.services.auth_service import get_current_user
from serenity.services.stress_technique_service import stress_technique_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/stress-techniques",
    tags=["Stress Techniques"],
    dependencies=[Depends(get_current_user)],
)

_not_found = {404: {"description": "Technique not found", "model": ErrorResponse}}


@router.get("", response_model=List[StressTechniqueResponse], summary="List techniques by name")
async def list_techniques(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
) -> List[StressTechniqueResponse]:
    return await stress_technique_service.list(db, page=page, limit=limit)


@router.get("/search", response_model=List[StressTechniqueResponse], summary="Search techniques")
async def search_techniques(
    q: str = Query(min_length=1, max_length=100, description="Matches name, description or tags"),
    db: AsyncSession = Depends(get_db_session),
) -> List[StressTechniqueResponse]:
    return await stress_technique_service.search(db, q)


@router.get(
    "/recommendations",
    response_model=List[StressTechniqueResponse],
    summary="Techniques matching my preferences",
)
async def recommended_techniques(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db_session),
) -> List[StressTechniqueResponse]:
    return await stress_technique_service.recommended_for(db, user)


@router.get("/category/{category}", response_model=List[StressTechniqueResponse])
async def techniques_by_category(
    category: TechniqueCategory,
    db: AsyncSession = Depends(get_db_session),
) -> List[StressTechniqueResponse]:
    return await stress_technique_service.by_category(db, category)


@router.get("/difficulty/{difficulty}", response_model=List[StressTechniqueResponse])
async def techniques_by_difficulty(
    difficulty: TechniqueDifficulty,
    db: AsyncSession = Depends(get_db_session),
) -> List[StressTechniqueResponse]:
    return await stress_technique_service.by_difficulty(db, difficulty)


@router.get("/{technique_id}", response_model=StressTechniqueResponse, responses=_not_found)
async def get_technique(
    technique_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> StressTechniqueResponse:
    return await stress_technique_service.get(db, technique_id)


@router.post(
    "",
    response_model=StressTechniqueResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Name already exists", "model": ErrorResponse}},
    summary="Add a technique",
)
async def create_technique(
    payload: StressTechniqueCreate,
    db: AsyncSession = Depends(get_db_session),
) -> StressTechniqueResponse:
    return await stress_technique_service.create(db, payload.model_dump())


@router.put(
    "/{technique_id}",
    response_model=StressTechniqueResponse,
    responses={**_not_found, 409: {"description": "Name already exists", "model": ErrorResponse}},
)
async def update_technique(
    technique_id: UUID,
    payload: StressTechniqueUpdate,
    db: AsyncSession = Depends(get_db_session),
) -> StressTechniqueResponse:
    return await stress_technique_service.update(db, technique_id, payload.model_dump(exclude_unset=True))


@router.delete("/{technique_id}", status_code=status.HTTP_204_NO_CONTENT, responses=_not_found)
async def delete_technique(
    technique_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    await stress_technique_service.delete(db, technique_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
