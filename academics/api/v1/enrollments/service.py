"""
Enrollment resolution. The only place that decides which enrollment row is
authoritative for a student in a period; every other component calls in here.

Rule: among rows for (student, academic_year, term) keep those with status ACTIVE;
if several remain (a correction left a duplicate) the most recently created wins;
if none remain the student is not enrolled (None). Non-active rows are never used
as a fallback.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.enums import EnrollmentStatus
from academics.core.exceptions import InvalidPeriod
from academics.core.models import AcademicYear, Enrollment, Student, Term

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Period:
    academic_year_id: UUID
    term_id: Optional[UUID]


@dataclass(frozen=True)
class RosterEntry:
    student: Student
    enrollment: Enrollment


def _latest_first():
    return (Enrollment.created_at.desc(), Enrollment.updated_at.desc())


async def validate_period(
    db: AsyncSession,
    academic_year_id: UUID,
    term_id: Optional[UUID] = None,
) -> Period:
    """Raise InvalidPeriod unless the year exists and (if given) the term belongs to it."""
    year = await db.get(AcademicYear, academic_year_id)
    if year is None:
        raise InvalidPeriod(f"Academic year {academic_year_id} not found")
    if term_id is None:
        return Period(academic_year_id=academic_year_id, term_id=None)
    term = await db.get(Term, term_id)
    if term is None:
        raise InvalidPeriod(f"Term {term_id} not found")
    if term.academic_year_id != academic_year_id:
        raise InvalidPeriod(f"Term {term_id} does not belong to academic year {academic_year_id}")
    return Period(academic_year_id=academic_year_id, term_id=term_id)


def _pick_latest(rows: List[Enrollment]) -> Optional[Enrollment]:
    """rows must already be ordered newest first."""
    if not rows:
        return None
    if len(rows) > 1:
        logger.warning(
            "duplicate_active_enrollment",
            student_id=str(rows[0].student_id),
            academic_year_id=str(rows[0].academic_year_id),
            term_id=str(rows[0].term_id),
            count=len(rows),
            chosen=str(rows[0].id),
        )
    return rows[0]


async def resolve_enrollment(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: UUID,
    term_id: UUID,
) -> Optional[Enrollment]:
    """Authoritative enrollment for the student in (year, term), or None when not enrolled."""
    await validate_period(db, academic_year_id, term_id)
    result = await db.execute(
        select(Enrollment)
        .where(
            Enrollment.student_id == student_id,
            Enrollment.academic_year_id == academic_year_id,
            Enrollment.term_id == term_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        .order_by(*_latest_first())
    )
    return _pick_latest(list(result.scalars().unique().all()))


async def resolve_year_enrollment(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: UUID,
    stream_id: Optional[UUID] = None,
) -> Optional[Enrollment]:
    """Latest ACTIVE enrollment in any term of the year, optionally restricted to one stream."""
    stmt = select(Enrollment).where(
        Enrollment.student_id == student_id,
        Enrollment.academic_year_id == academic_year_id,
        Enrollment.status == EnrollmentStatus.ACTIVE.value,
    )
    if stream_id is not None:
        stmt = stmt.where(Enrollment.stream_id == stream_id)
    result = await db.execute(stmt.order_by(*_latest_first()).limit(1))
    return result.scalars().first()


async def resolve_enrollments_for_period(
    db: AsyncSession,
    academic_year_id: UUID,
    term_id: UUID,
    stream_id: Optional[UUID] = None,
) -> Dict[UUID, RosterEntry]:
    """
    Resolve every student's authoritative enrollment for (year, term), keyed by student_id.
    With stream_id, keep only students whose resolved enrollment is in that stream, so a
    student whose latest ACTIVE row moved them elsewhere is not counted in both streams.
    """
    await validate_period(db, academic_year_id, term_id)
    result = await db.execute(
        select(Enrollment, Student)
        .join(Student, Enrollment.student_id == Student.id)
        .where(
            Enrollment.academic_year_id == academic_year_id,
            Enrollment.term_id == term_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        .order_by(*_latest_first())
    )
    grouped: Dict[UUID, List[Enrollment]] = {}
    students: Dict[UUID, Student] = {}
    for enrollment, student in result.unique().all():
        grouped.setdefault(student.id, []).append(enrollment)
        students[student.id] = student

    roster: Dict[UUID, RosterEntry] = {}
    for sid, rows in grouped.items():
        chosen = _pick_latest(rows)
        if stream_id is not None and chosen.stream_id != stream_id:
            continue
        roster[sid] = RosterEntry(student=students[sid], enrollment=chosen)
    return roster


async def resolve_enrollments_for_stream(
    db: AsyncSession,
    stream_id: UUID,
    academic_year_id: UUID,
    term_id: UUID,
) -> Dict[UUID, RosterEntry]:
    """Roster of a stream for (year, term). Empty dict is a valid answer, not an error."""
    return await resolve_enrollments_for_period(db, academic_year_id, term_id, stream_id=stream_id)


async def enrollment_history(db: AsyncSession, student_id: UUID) -> List[Enrollment]:
    """Every enrollment row for the student, newest first (includes superseded rows)."""
    result = await db.execute(
        select(Enrollment).where(Enrollment.student_id == student_id).order_by(*_latest_first())
    )
    return list(result.scalars().unique().all())


async def resolve_year_enrollments_for_stream(
    db: AsyncSession,
    stream_id: UUID,
    academic_year_id: UUID,
) -> Dict[UUID, RosterEntry]:
    """
    Batch form of resolve_year_enrollment(stream_id=...): each student's latest ACTIVE
    row in the stream during the year. These are the rows a promotion would supersede.
    """
    await validate_period(db, academic_year_id)
    result = await db.execute(
        select(Enrollment, Student)
        .join(Student, Enrollment.student_id == Student.id)
        .where(
            Enrollment.academic_year_id == academic_year_id,
            Enrollment.stream_id == stream_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        .order_by(*_latest_first())
    )
    roster: Dict[UUID, RosterEntry] = {}
    for enrollment, student in result.unique().all():
        if student.id not in roster:
            roster[student.id] = RosterEntry(student=student, enrollment=enrollment)
    return roster
