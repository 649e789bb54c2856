from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import GradeLookupResponse, ScaleValidationResponse
from . import service

router = APIRouter(prefix="/api/v1/grading", tags=["grading"])


@router.get("/{curriculum}/grade", response_model=GradeLookupResponse)
async def grade_for(
    curriculum: str,
    score: float = Query(..., ge=0),
    db: AsyncSession = Depends(get_db),
) -> GradeLookupResponse:
    """Grade and remarks for a score. 409 when the curriculum's bands have a gap or overlap at that score."""
    try:
        result = await service.grade_for(db, curriculum, score)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return GradeLookupResponse(curriculum=curriculum, score=score, grade=result.grade, remarks=result.remarks)


@router.get("/{curriculum}/validate", response_model=ScaleValidationResponse)
async def validate_scale(
    curriculum: str,
    db: AsyncSession = Depends(get_db),
) -> ScaleValidationResponse:
    scale = await service.load_scale(db, curriculum)
    problems = scale.problems()
    return ScaleValidationResponse(
        curriculum=curriculum,
        valid=not problems,
        pass_threshold=scale.pass_threshold(),
        problems=problems,
    )
