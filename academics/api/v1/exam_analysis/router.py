from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import StrugglingStudent, StudentPerformance, SubjectAnalysis, SubjectDifficulty
from . import service

router = APIRouter(prefix="/api/v1/exam-analysis", tags=["exam-analysis"])


@router.get("/exams/{exam_id}/subjects/{subject_id}", response_model=SubjectAnalysis)
async def subject_analysis(
    exam_id: UUID,
    subject_id: UUID,
    stream_id: Optional[UUID] = Query(None, description="Restrict to students enrolled in this stream"),
    db: AsyncSession = Depends(get_db),
) -> SubjectAnalysis:
    try:
        return await service.subject_analysis(db, exam_id, subject_id, stream_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/exams/{exam_id}/subjects", response_model=List[SubjectAnalysis])
async def analyze_all_subjects(
    exam_id: UUID,
    stream_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[SubjectAnalysis]:
    try:
        return await service.analyze_all_subjects(db, exam_id, stream_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/exams/{exam_id}/subjects/{subject_id}/difficulty", response_model=SubjectDifficulty)
async def subject_difficulty(
    exam_id: UUID,
    subject_id: UUID,
    stream_id: Optional[UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> SubjectDifficulty:
    """Item analysis: pass rate, difficulty index and discrimination index (null below minimum sample)."""
    try:
        return await service.subject_difficulty(db, exam_id, subject_id, stream_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/exams/{exam_id}/students/{student_id}", response_model=StudentPerformance)
async def student_performance(
    exam_id: UUID,
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentPerformance:
    try:
        return await service.student_performance(db, student_id, exam_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/exams/{exam_id}/struggling", response_model=List[StrugglingStudent])
async def struggling_students(
    exam_id: UUID,
    stream_id: Optional[UUID] = Query(None),
    fail_threshold: Optional[float] = Query(None, ge=0),
    db: AsyncSession = Depends(get_db),
) -> List[StrugglingStudent]:
    try:
        return await service.struggling_students(db, exam_id, stream_id, fail_threshold)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
