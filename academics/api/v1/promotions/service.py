"""
Batch promotion. Each student moves in its own transaction:

    PENDING -> PROMOTED   source rows flipped ACTIVE -> PROMOTED, new ACTIVE row inserted, audit entry
    PENDING -> FAILED     nothing written; reason reported

One student's failure never rolls back another's commit. Re-running a batch fails
students promoted earlier with NOT_ENROLLED_REASON because their source rows are no
longer ACTIVE.

Concurrent submissions: the source rows are flipped with
UPDATE ... WHERE student_id = :sid AND stream_id = :from_stream AND status = 'ACTIVE'.
If another transaction got there first no row matches and the student fails with
NOT_ENROLLED_REASON instead of gaining a second destination row.
"""

from typing import List, Optional
from uuid import UUID

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.enrollments import service as enrollment_service
from academics.core.enums import EnrollmentStatus
from academics.core.exceptions import InvalidPromotion, NotFoundError
from academics.core.models import AuditLog, Enrollment, Stream, Student

from .audit_service import log_audit
from .schemas import (
    AuditLogEntry,
    BatchPromote,
    PromotionBatchResult,
    PromotionCandidate,
    PromotionFailure,
    StreamResponse,
)

logger = structlog.get_logger(__name__)

NOT_ENROLLED_REASON = "not currently enrolled in source class"
ALREADY_ENROLLED_REASON = "already enrolled in destination period"
STUDENT_NOT_FOUND_REASON = "student not found"


class PromotionRejected(Exception):
    """Raised inside a single student's transition; always caught by the batch loop."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


async def _get_stream(db: AsyncSession, stream_id: UUID) -> Stream:
    stream = await db.get(Stream, stream_id)
    if stream is None:
        raise NotFoundError(f"Stream {stream_id} not found")
    return stream


async def _transition(db: AsyncSession, student_id: UUID, payload: BatchPromote) -> Enrollment:
    source = await enrollment_service.resolve_year_enrollment(
        db, student_id, payload.from_academic_year_id, stream_id=payload.from_stream_id
    )
    if source is None:
        raise PromotionRejected(NOT_ENROLLED_REASON)

    existing = await enrollment_service.resolve_enrollment(
        db, student_id, payload.to_academic_year_id, payload.to_term_id
    )
    if existing is not None:
        raise PromotionRejected(ALREADY_ENROLLED_REASON)

    # Every ACTIVE row for the source class in that year is retired, so a re-run finds nothing.
    flipped = await db.execute(
        update(Enrollment)
        .where(
            Enrollment.student_id == student_id,
            Enrollment.academic_year_id == payload.from_academic_year_id,
            Enrollment.stream_id == payload.from_stream_id,
            Enrollment.status == EnrollmentStatus.ACTIVE.value,
        )
        .values(status=EnrollmentStatus.PROMOTED.value)
    )
    if flipped.rowcount < 1:
        raise PromotionRejected(NOT_ENROLLED_REASON)

    new_enrollment = Enrollment(
        student_id=student_id,
        academic_year_id=payload.to_academic_year_id,
        term_id=payload.to_term_id,
        stream_id=payload.to_stream_id,
        status=EnrollmentStatus.ACTIVE.value,
    )
    db.add(new_enrollment)
    await db.flush()
    await log_audit(
        db,
        entity_type="enrollment",
        entity_id=source.id,
        action="PROMOTE",
        from_status=EnrollmentStatus.ACTIVE.value,
        to_status=EnrollmentStatus.PROMOTED.value,
        performed_by=payload.actor_id,
        remarks=(
            f"new_enrollment={new_enrollment.id} stream {payload.from_stream_id} -> {payload.to_stream_id}, "
            f"year {payload.from_academic_year_id} -> {payload.to_academic_year_id}"
        ),
    )
    return new_enrollment


async def promote_batch(db: AsyncSession, payload: BatchPromote) -> PromotionBatchResult:
    """
    Promote each student independently. Only argument errors (unknown year, term or stream, repeated student)
    and lost storage connections abort the call; everything per-student is reported.
    """
    if len(set(payload.student_ids)) != len(payload.student_ids):
        raise InvalidPromotion("Each student may appear only once in a promotion batch")
    await enrollment_service.validate_period(db, payload.from_academic_year_id)
    await enrollment_service.validate_period(db, payload.to_academic_year_id, payload.to_term_id)
    await _get_stream(db, payload.from_stream_id)
    await _get_stream(db, payload.to_stream_id)
    # Release the validation reads so each student starts a fresh transaction.
    await db.commit()

    promoted_ids: List[UUID] = []
    failures: List[PromotionFailure] = []
    for student_id in payload.student_ids:
        student = await db.get(Student, student_id)
        student_name: Optional[str] = student.full_name if student else None
        admission_number: Optional[str] = student.admission_number if student else None
        try:
            if student is None:
                raise PromotionRejected(STUDENT_NOT_FOUND_REASON)
            await _transition(db, student_id, payload)
            await db.commit()
        except PromotionRejected as e:
            await db.rollback()
            failures.append(
                PromotionFailure(
                    student_id=student_id,
                    student_name=student_name,
                    admission_number=admission_number,
                    reason=e.reason,
                )
            )
            logger.warning("promotion_failed", student_id=str(student_id), reason=e.reason)
            continue
        except (OperationalError, InterfaceError):
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            await db.rollback()
            reason = f"database error: {e.__class__.__name__}"
            failures.append(
                PromotionFailure(
                    student_id=student_id,
                    student_name=student_name,
                    admission_number=admission_number,
                    reason=reason,
                )
            )
            logger.warning("promotion_failed", student_id=str(student_id), reason=reason, exc_info=True)
            continue
        promoted_ids.append(student_id)
        logger.info(
            "student_promoted",
            student_id=str(student_id),
            to_stream_id=str(payload.to_stream_id),
            to_academic_year_id=str(payload.to_academic_year_id),
            actor_id=str(payload.actor_id) if payload.actor_id else None,
        )

    result = PromotionBatchResult(
        success=not failures,
        attempted=len(payload.student_ids),
        promoted=len(promoted_ids),
        failed=len(failures),
        promoted_ids=promoted_ids,
        errors=[
            f"{f.admission_number or f.student_id} {f.student_name or ''}".rstrip() + f": {f.reason}"
            for f in failures
        ],
        failure_details=failures,
    )
    logger.info(
        "promotion_batch_completed",
        attempted=result.attempted,
        promoted=result.promoted,
        failed=result.failed,
    )
    return result


async def promote_student(
    db: AsyncSession,
    student_id: UUID,
    from_stream_id: UUID,
    to_stream_id: UUID,
    from_academic_year_id: UUID,
    to_academic_year_id: UUID,
    to_term_id: UUID,
    actor_id: Optional[UUID] = None,
) -> PromotionBatchResult:
    """Single-student promotion; same rules and result shape as a batch of one."""
    return await promote_batch(
        db,
        BatchPromote(
            student_ids=[student_id],
            from_stream_id=from_stream_id,
            to_stream_id=to_stream_id,
            from_academic_year_id=from_academic_year_id,
            to_academic_year_id=to_academic_year_id,
            to_term_id=to_term_id,
            actor_id=actor_id,
        ),
    )


async def promotion_candidates(
    db: AsyncSession,
    stream_id: UUID,
    academic_year_id: UUID,
) -> List[PromotionCandidate]:
    """Students with an ACTIVE enrollment in the stream during the year, by name."""
    await _get_stream(db, stream_id)
    roster = await enrollment_service.resolve_year_enrollments_for_stream(db, stream_id, academic_year_id)
    candidates = [
        PromotionCandidate(
            student_id=entry.student.id,
            admission_number=entry.student.admission_number,
            student_name=entry.student.full_name,
            enrollment_id=entry.enrollment.id,
            term_id=entry.enrollment.term_id,
            status=entry.enrollment.status,
        )
        for entry in roster.values()
        if entry.student.is_active
    ]
    candidates.sort(key=lambda c: (c.student_name, c.admission_number))
    return candidates


async def next_stream(db: AsyncSession, stream_id: UUID) -> Optional[StreamResponse]:
    """Next active stream by level_order, for suggesting a promotion target."""
    current = await _get_stream(db, stream_id)
    result = await db.execute(
        select(Stream)
        .where(Stream.level_order > current.level_order, Stream.is_active.is_(True))
        .order_by(Stream.level_order.asc(), Stream.name.asc())
        .limit(1)
    )
    stream = result.scalar_one_or_none()
    return StreamResponse.model_validate(stream) if stream else None


async def promotion_history(db: AsyncSession, student_id: UUID) -> List[AuditLogEntry]:
    """Audit entries for the student's retired enrollments, oldest first."""
    result = await db.execute(
        select(AuditLog)
        .join(Enrollment, AuditLog.entity_id == Enrollment.id)
        .where(AuditLog.entity_type == "enrollment", Enrollment.student_id == student_id)
        .order_by(AuditLog.timestamp.asc())
    )
    return [AuditLogEntry.model_validate(row) for row in result.scalars().all()]
