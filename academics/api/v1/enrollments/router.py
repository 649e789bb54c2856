from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import EnrollmentResolution, EnrollmentResponse, RosterStudent, StreamRoster
from . import service

router = APIRouter(prefix="/api/v1/enrollments", tags=["enrollments"])


def _to_response(enrollment) -> EnrollmentResponse:
    return EnrollmentResponse(
        id=enrollment.id,
        student_id=enrollment.student_id,
        academic_year_id=enrollment.academic_year_id,
        term_id=enrollment.term_id,
        stream_id=enrollment.stream_id,
        stream_name=enrollment.stream.name if enrollment.stream else None,
        status=enrollment.status,
        created_at=enrollment.created_at,
    )


@router.get("/resolve", response_model=EnrollmentResolution)
async def resolve_enrollment(
    student_id: UUID = Query(...),
    academic_year_id: UUID = Query(...),
    term_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> EnrollmentResolution:
    """Authoritative enrollment for a student in (year, term); enrolled=false when none is ACTIVE."""
    try:
        enrollment = await service.resolve_enrollment(db, student_id, academic_year_id, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return EnrollmentResolution(
        student_id=student_id,
        academic_year_id=academic_year_id,
        term_id=term_id,
        enrolled=enrollment is not None,
        enrollment=_to_response(enrollment) if enrollment else None,
    )


@router.get("/streams/{stream_id}/roster", response_model=StreamRoster)
async def stream_roster(
    stream_id: UUID,
    academic_year_id: UUID = Query(...),
    term_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> StreamRoster:
    """Students actively enrolled in the stream for (year, term), ordered by admission number."""
    try:
        roster = await service.resolve_enrollments_for_stream(db, stream_id, academic_year_id, term_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    students = sorted(
        (
            RosterStudent(
                student_id=entry.student.id,
                admission_number=entry.student.admission_number,
                student_name=entry.student.full_name,
                enrollment_id=entry.enrollment.id,
            )
            for entry in roster.values()
        ),
        key=lambda s: s.admission_number,
    )
    return StreamRoster(
        stream_id=stream_id,
        academic_year_id=academic_year_id,
        term_id=term_id,
        student_count=len(students),
        students=students,
    )


@router.get("/students/{student_id}/history", response_model=List[EnrollmentResponse])
async def enrollment_history(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[EnrollmentResponse]:
    """Full enrollment history for a student, newest first, including superseded rows."""
    rows = await service.enrollment_history(db, student_id)
    return [_to_response(r) for r in rows]
