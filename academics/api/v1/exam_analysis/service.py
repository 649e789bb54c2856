"""
Exam statistics scoped to enrolled students.

Every query here starts from the roster resolved for the exam's (year, term) and
joins results to it. A result row for a student who is not actively enrolled in
the stream for that period is ignored, even though it references the exam.
"""

from typing import Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.enrollments import service as enrollment_service
from academics.api.v1.enrollments.service import RosterEntry
from academics.api.v1.grading import service as grading_service
from academics.api.v1.grading.service import GradingScaleResolver, graded_mark
from academics.core.config import settings
from academics.core.enums import INSUFFICIENT_SAMPLE, PerformanceTrend
from academics.core.exceptions import NotFoundError
from academics.core.models import Exam, ExamResult, Stream, Student, Subject, Term

from . import calculations
from .schemas import (
    StrugglingStudent,
    StudentPerformance,
    SubjectAnalysis,
    SubjectDifficulty,
    SubjectScore,
)

logger = structlog.get_logger(__name__)

TREND_MARGIN = 5.0


class ScaleCache:
    """Loads each curriculum's bands once per computation."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._scales: Dict[str, GradingScaleResolver] = {}

    async def get(self, curriculum: str) -> GradingScaleResolver:
        if curriculum not in self._scales:
            self._scales[curriculum] = await grading_service.load_scale(self.db, curriculum)
        return self._scales[curriculum]


async def get_exam(db: AsyncSession, exam_id: UUID) -> Exam:
    exam = await db.get(Exam, exam_id)
    if exam is None:
        raise NotFoundError(f"Exam {exam_id} not found")
    return exam


async def get_subject(db: AsyncSession, subject_id: UUID) -> Subject:
    subject = await db.get(Subject, subject_id)
    if subject is None:
        raise NotFoundError(f"Subject {subject_id} not found")
    return subject


def exam_max_score(exam: Exam) -> float:
    return float(exam.max_score or settings.default_max_score)


async def stream_curriculum(db: AsyncSession, stream_id: Optional[UUID]) -> str:
    if stream_id is None:
        return settings.default_curriculum
    stream = await db.get(Stream, stream_id)
    if stream is None or not stream.curriculum:
        return settings.default_curriculum
    return stream.curriculum


async def exam_roster(
    db: AsyncSession,
    exam: Exam,
    stream_id: Optional[UUID] = None,
) -> Dict[UUID, RosterEntry]:
    """Students actively enrolled (in the stream, if given) during the exam's period."""
    return await enrollment_service.resolve_enrollments_for_period(
        db, exam.academic_year_id, exam.term_id, stream_id=stream_id
    )


async def enrolled_results(
    db: AsyncSession,
    exam: Exam,
    roster: Dict[UUID, RosterEntry],
    subject_id: Optional[UUID] = None,
) -> List[Tuple[ExamResult, Subject]]:
    """Non-null results for the exam restricted to roster students."""
    if not roster:
        return []
    stmt = (
        select(ExamResult, Subject)
        .join(Subject, ExamResult.subject_id == Subject.id)
        .where(
            ExamResult.exam_id == exam.id,
            ExamResult.student_id.in_(list(roster.keys())),
            ExamResult.score.is_not(None),
        )
    )
    if subject_id is not None:
        stmt = stmt.where(ExamResult.subject_id == subject_id)
    result = await db.execute(stmt)
    return list(result.all())


async def subject_scores(
    db: AsyncSession,
    exam: Exam,
    subject_id: UUID,
    stream_id: Optional[UUID] = None,
) -> List[Tuple[Student, float]]:
    """(student, score) for enrolled students with a score in the subject."""
    roster = await exam_roster(db, exam, stream_id)
    rows = await enrolled_results(db, exam, roster, subject_id=subject_id)
    return [(roster[r.student_id].student, r.score) for r, _ in rows]


def _discrimination(scores: List[float], max_score: float) -> Tuple[Optional[float], str]:
    index = calculations.discrimination_index(
        scores,
        max_score,
        fraction=settings.discrimination_group_fraction,
        min_sample=settings.discrimination_min_sample,
    )
    return index, ("ok" if index is not None else INSUFFICIENT_SAMPLE)


async def subject_analysis(
    db: AsyncSession,
    exam_id: UUID,
    subject_id: UUID,
    stream_id: Optional[UUID] = None,
    scales: Optional[ScaleCache] = None,
) -> SubjectAnalysis:
    exam = await get_exam(db, exam_id)
    subject = await get_subject(db, subject_id)
    scales = scales or ScaleCache(db)
    scale = await scales.get(subject.curriculum)
    threshold = scale.pass_threshold()
    max_score = exam_max_score(exam)

    scores = [score for _, score in await subject_scores(db, exam, subject_id, stream_id)]
    marks = [graded_mark(s, max_score) for s in scores]
    avg = calculations.mean(scores)
    disc, disc_status = _discrimination(scores, max_score)
    return SubjectAnalysis(
        exam_id=exam.id,
        subject_id=subject.id,
        subject_name=subject.name,
        stream_id=stream_id,
        student_count=len(scores),
        mean_score=avg,
        median_score=calculations.median(scores),
        mode_score=calculations.mode(scores),
        std_deviation=calculations.std_deviation(scores),
        min_score=min(scores) if scores else None,
        max_score=max(scores) if scores else None,
        pass_threshold=threshold,
        pass_rate=calculations.rate(marks, threshold, passing=True),
        fail_rate=calculations.rate(marks, threshold, passing=False),
        difficulty_index=calculations.difficulty_index(avg, max_score),
        discrimination_index=disc,
        discrimination_status=disc_status,
    )


async def subject_difficulty(
    db: AsyncSession,
    exam_id: UUID,
    subject_id: UUID,
    stream_id: Optional[UUID] = None,
) -> SubjectDifficulty:
    analysis = await subject_analysis(db, exam_id, subject_id, stream_id)
    return SubjectDifficulty(
        subject_id=analysis.subject_id,
        subject_name=analysis.subject_name,
        student_count=analysis.student_count,
        mean_score=analysis.mean_score,
        median_score=analysis.median_score,
        pass_rate=analysis.pass_rate,
        difficulty_index=analysis.difficulty_index,
        discrimination_index=analysis.discrimination_index,
        discrimination_status=analysis.discrimination_status,
    )


async def analyze_all_subjects(
    db: AsyncSession,
    exam_id: UUID,
    stream_id: Optional[UUID] = None,
) -> List[SubjectAnalysis]:
    """One analysis per subject that has a result from an enrolled student, by subject name."""
    exam = await get_exam(db, exam_id)
    roster = await exam_roster(db, exam, stream_id)
    if not roster:
        return []
    result = await db.execute(
        select(Subject)
        .join(ExamResult, ExamResult.subject_id == Subject.id)
        .where(
            ExamResult.exam_id == exam.id,
            ExamResult.student_id.in_(list(roster.keys())),
        )
        .distinct()
        .order_by(Subject.name)
    )
    subjects = result.scalars().all()
    scales = ScaleCache(db)
    return [await subject_analysis(db, exam_id, s.id, stream_id, scales=scales) for s in subjects]


async def _previous_terms_average(db: AsyncSession, student_id: UUID, exam: Exam) -> Optional[float]:
    """Average percentage the student scored in earlier terms of the same academic year."""
    term = await db.get(Term, exam.term_id)
    if term is None:
        return None
    result = await db.execute(
        select(ExamResult.score, Exam.max_score)
        .join(Exam, ExamResult.exam_id == Exam.id)
        .join(Term, Exam.term_id == Term.id)
        .where(
            ExamResult.student_id == student_id,
            ExamResult.score.is_not(None),
            Exam.academic_year_id == exam.academic_year_id,
            Term.term_number < term.term_number,
        )
    )
    return calculations.mean(
        [calculations.percentage(score, out_of or settings.default_max_score) for score, out_of in result.all()]
    )


def _trend(current: Optional[float], previous: Optional[float]) -> PerformanceTrend:
    if current is None or previous is None:
        return PerformanceTrend.STABLE
    if current > previous + TREND_MARGIN:
        return PerformanceTrend.IMPROVING
    if current < previous - TREND_MARGIN:
        return PerformanceTrend.DECLINING
    return PerformanceTrend.STABLE


async def student_performance(db: AsyncSession, student_id: UUID, exam_id: UUID) -> StudentPerformance:
    """Per-subject scores and grades plus overall average for one student in one exam."""
    student = await db.get(Student, student_id)
    if student is None:
        raise NotFoundError(f"Student {student_id} not found")
    exam = await get_exam(db, exam_id)
    max_score = exam_max_score(exam)

    result = await db.execute(
        select(ExamResult, Subject)
        .join(Subject, ExamResult.subject_id == Subject.id)
        .where(
            ExamResult.exam_id == exam.id,
            ExamResult.student_id == student.id,
            ExamResult.score.is_not(None),
        )
        .order_by(ExamResult.score.desc(), Subject.name)
    )
    scales = ScaleCache(db)
    subjects: List[SubjectScore] = []
    for exam_result, subject in result.all():
        scale = await scales.get(subject.curriculum)
        graded = scale.grade_mark(exam_result.score, max_score)
        subjects.append(
            SubjectScore(
                subject_id=subject.id,
                subject_name=subject.name,
                score=exam_result.score,
                grade=graded.grade,
                remarks=graded.remarks,
            )
        )

    average = calculations.mean([s.score for s in subjects])
    grade = remarks = None
    if average is not None:
        enrollment = await enrollment_service.resolve_enrollment(
            db, student.id, exam.academic_year_id, exam.term_id
        )
        curriculum = await stream_curriculum(db, enrollment.stream_id if enrollment else None)
        overall = (await scales.get(curriculum)).grade_mark(average, max_score)
        grade, remarks = overall.grade, overall.remarks

    previous = await _previous_terms_average(db, student.id, exam)
    current = calculations.percentage(average, max_score)
    return StudentPerformance(
        student_id=student.id,
        admission_number=student.admission_number,
        student_name=f"{student.first_name} {student.last_name}",
        exam_id=exam.id,
        subjects=subjects,
        average_score=average,
        grade=grade,
        remarks=remarks,
        best_subjects=[s.subject_name for s in subjects[:3]],
        worst_subjects=[s.subject_name for s in reversed(subjects[-3:])],
        performance_trend=_trend(current, previous).value,
    )


async def struggling_students(
    db: AsyncSession,
    exam_id: UUID,
    stream_id: Optional[UUID] = None,
    fail_threshold: Optional[float] = None,
) -> List[StrugglingStudent]:
    """Enrolled students averaging below fail_threshold, weakest first."""
    exam = await get_exam(db, exam_id)
    threshold = settings.default_pass_mark if fail_threshold is None else fail_threshold
    max_score = exam_max_score(exam)
    roster = await exam_roster(db, exam, stream_id)
    rows = await enrolled_results(db, exam, roster)

    by_student: Dict[UUID, List[float]] = {}
    for exam_result, _ in rows:
        by_student.setdefault(exam_result.student_id, []).append(exam_result.score)

    struggling: List[StrugglingStudent] = []
    for sid, scores in by_student.items():
        avg = calculations.mean(scores)
        if graded_mark(avg, max_score) < threshold:
            student = roster[sid].student
            struggling.append(
                StrugglingStudent(
                    student_id=sid,
                    admission_number=student.admission_number,
                    student_name=student.full_name,
                    total_subjects=len(scores),
                    failing_subjects=sum(1 for s in scores if graded_mark(s, max_score) < threshold),
                    average_score=avg,
                    lowest_score=min(scores),
                )
            )
    struggling.sort(key=lambda s: (s.average_score, s.admission_number))
    return struggling
