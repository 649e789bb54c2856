from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import (
    ClassMeritList,
    ImprovedStudent,
    MostImprovedQuery,
    StudentComparison,
    SubjectMeritList,
    TermTrend,
)
from . import service

router = APIRouter(prefix="/api/v1/merit-lists", tags=["merit-lists"])


@router.get("/exams/{exam_id}/subjects/{subject_id}", response_model=SubjectMeritList)
async def subject_merit_list(
    exam_id: UUID,
    subject_id: UUID,
    stream_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> SubjectMeritList:
    """Ranked list for one subject; ties ordered by admission number."""
    try:
        return await service.subject_merit_list(db, exam_id, subject_id, stream_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/exams/{exam_id}/streams/{stream_id}", response_model=ClassMeritList)
async def class_merit_list(
    exam_id: UUID,
    stream_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ClassMeritList:
    try:
        return await service.class_merit_list(db, exam_id, stream_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/most-improved", response_model=List[ImprovedStudent])
async def most_improved(
    payload: MostImprovedQuery,
    db: AsyncSession = Depends(get_db),
) -> List[ImprovedStudent]:
    try:
        return await service.most_improved(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/comparison", response_model=StudentComparison)
async def student_comparison(
    student_id: UUID,
    current_academic_year_id: UUID = Query(...),
    current_term_id: UUID = Query(...),
    comparison_academic_year_id: UUID = Query(...),
    comparison_term_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> StudentComparison:
    try:
        return await service.student_comparison(
            db,
            student_id,
            current_academic_year_id,
            current_term_id,
            comparison_academic_year_id,
            comparison_term_id,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/trends", response_model=List[TermTrend])
async def performance_trends(
    student_id: UUID,
    academic_year_id: UUID = Query(...),
    number_of_terms: int = Query(3, ge=1),
    db: AsyncSession = Depends(get_db),
) -> List[TermTrend]:
    """Term-by-term averages for the student within one academic year, newest first."""
    try:
        return await service.performance_trends(db, student_id, academic_year_id, number_of_terms)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
