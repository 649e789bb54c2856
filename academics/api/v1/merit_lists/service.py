"""
Merit lists and term-over-term improvement, over enrolled students only.

Subject lists order by score descending then admission number ascending, with
sequential positions. Class lists rank by average then total; equal averages
share a position (1, 1, 3) when they agree to two decimals. Improvement compares per-subject means over the
subjects a student sat in both periods; a student with no results in either
period is left out rather than counted as zero.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.api.v1.enrollments import service as enrollment_service
from academics.api.v1.enrollments.service import RosterEntry
from academics.api.v1.exam_analysis import calculations
from academics.api.v1.exam_analysis.service import (
    ScaleCache,
    enrolled_results,
    exam_max_score,
    exam_roster,
    get_exam,
    get_subject,
    stream_curriculum,
    subject_scores,
)
from academics.core.config import settings
from academics.core.exceptions import NotFoundError
from academics.core.models import Exam, ExamResult, Student, Subject, Term

from .schemas import (
    ClassMeritEntry,
    ClassMeritList,
    ImprovedStudent,
    MostImprovedQuery,
    StudentComparison,
    SubjectComparison,
    SubjectMeritEntry,
    SubjectMeritList,
    TermTrend,
)

logger = structlog.get_logger(__name__)

# Averages equal to this many decimals share a position.
RANK_PRECISION = 2


async def subject_merit_list(
    db: AsyncSession,
    exam_id: UUID,
    subject_id: UUID,
    stream_id: UUID,
) -> SubjectMeritList:
    exam = await get_exam(db, exam_id)
    subject = await get_subject(db, subject_id)
    scale = await ScaleCache(db).get(subject.curriculum)
    max_score = exam_max_score(exam)

    scored = await subject_scores(db, exam, subject_id, stream_id)
    scored.sort(key=lambda pair: (-pair[1], pair[0].admission_number))

    entries: List[SubjectMeritEntry] = []
    for position, (student, score) in enumerate(scored, start=1):
        graded = scale.grade_mark(score, max_score)
        entries.append(
            SubjectMeritEntry(
                position=position,
                student_id=student.id,
                admission_number=student.admission_number,
                student_name=student.full_name,
                score=score,
                percentage=calculations.percentage(score, max_score),
                grade=graded.grade,
                remarks=graded.remarks,
            )
        )
    return SubjectMeritList(
        exam_id=exam.id,
        subject_id=subject.id,
        subject_name=subject.name,
        stream_id=stream_id,
        total_students=len(entries),
        entries=entries,
    )


async def class_merit_list(db: AsyncSession, exam_id: UUID, stream_id: UUID) -> ClassMeritList:
    """Overall ranking by average across subjects for one stream."""
    exam = await get_exam(db, exam_id)
    roster = await exam_roster(db, exam, stream_id)
    rows = await enrolled_results(db, exam, roster)
    scale = await ScaleCache(db).get(await stream_curriculum(db, stream_id))
    max_score = exam_max_score(exam)

    by_student: Dict[UUID, List[float]] = {}
    for exam_result, _ in rows:
        by_student.setdefault(exam_result.student_id, []).append(exam_result.score)

    totals: List[Tuple[Student, float, float, int]] = []
    for sid, scores in by_student.items():
        totals.append((roster[sid].student, sum(scores), sum(scores) / len(scores), len(scores)))
    totals.sort(key=lambda t: (-round(t[2], RANK_PRECISION), -round(t[1], RANK_PRECISION), t[0].admission_number))

    rankings: List[ClassMeritEntry] = []
    for index, (student, total, average, count) in enumerate(totals):
        position = index + 1
        tied_with: List[UUID] = []
        if rankings and round(rankings[-1].average_marks, RANK_PRECISION) == round(average, RANK_PRECISION):
            previous = rankings[-1]
            position = previous.position
            tied_with = [previous.student_id] + previous.tied_with
            for entry in rankings:
                if entry.position == position:
                    entry.tied_with.append(student.id)
        rankings.append(
            ClassMeritEntry(
                position=position,
                student_id=student.id,
                admission_number=student.admission_number,
                student_name=student.full_name,
                subject_count=count,
                total_marks=total,
                average_marks=average,
                percentage=calculations.percentage(average, max_score),
                grade=scale.grade_mark(average, max_score).grade,
                tied_with=tied_with,
            )
        )
    return ClassMeritList(
        exam_id=exam.id,
        stream_id=stream_id,
        total_students=len(rankings),
        rankings=rankings,
    )


@dataclass
class _PeriodScores:
    """Per-subject mean percentage (score over the exam's max score) for each student in one (year, term)."""

    roster: Dict[UUID, RosterEntry]
    subject_means: Dict[UUID, Dict[UUID, float]]
    subject_names: Dict[UUID, str]


async def _period_scores(
    db: AsyncSession,
    academic_year_id: UUID,
    term_id: UUID,
    stream_id: Optional[UUID] = None,
    student_id: Optional[UUID] = None,
) -> _PeriodScores:
    roster = await enrollment_service.resolve_enrollments_for_period(
        db, academic_year_id, term_id, stream_id=stream_id
    )
    if student_id is not None:
        roster = {sid: e for sid, e in roster.items() if sid == student_id}
    if not roster:
        return _PeriodScores(roster={}, subject_means={}, subject_names={})

    result = await db.execute(
        select(ExamResult.student_id, ExamResult.subject_id, ExamResult.score, Exam.max_score, Subject.name)
        .join(Exam, ExamResult.exam_id == Exam.id)
        .join(Subject, ExamResult.subject_id == Subject.id)
        .where(
            Exam.academic_year_id == academic_year_id,
            Exam.term_id == term_id,
            ExamResult.student_id.in_(list(roster.keys())),
            ExamResult.score.is_not(None),
        )
    )
    raw: Dict[UUID, Dict[UUID, List[float]]] = {}
    names: Dict[UUID, str] = {}
    for sid, subject_id, score, out_of, subject_name in result.all():
        percent = calculations.percentage(score, out_of or settings.default_max_score)
        raw.setdefault(sid, {}).setdefault(subject_id, []).append(percent)
        names[subject_id] = subject_name
    means = {
        sid: {subject_id: sum(s) / len(s) for subject_id, s in subjects.items()}
        for sid, subjects in raw.items()
    }
    return _PeriodScores(roster=roster, subject_means=means, subject_names=names)


def _compare(
    current: Dict[UUID, float],
    comparison: Dict[UUID, float],
) -> Optional[Tuple[float, float, List[UUID]]]:
    common = sorted(set(current) & set(comparison), key=str)
    if not common:
        return None
    current_avg = sum(current[s] for s in common) / len(common)
    comparison_avg = sum(comparison[s] for s in common) / len(common)
    return current_avg, comparison_avg, common


async def most_improved(db: AsyncSession, query: MostImprovedQuery) -> List[ImprovedStudent]:
    """Students whose average over shared subjects rose by at least the threshold, largest gain first."""
    threshold = settings.improvement_threshold if query.minimum_improvement is None else query.minimum_improvement
    current = await _period_scores(
        db, query.current_academic_year_id, query.current_term_id, stream_id=query.stream_id
    )
    comparison = await _period_scores(db, query.comparison_academic_year_id, query.comparison_term_id)
    scales = ScaleCache(db)

    improved: List[ImprovedStudent] = []
    for sid, entry in current.roster.items():
        if sid not in current.subject_means or sid not in comparison.subject_means:
            continue
        compared = _compare(current.subject_means[sid], comparison.subject_means[sid])
        if compared is None:
            continue
        current_avg, comparison_avg, common = compared
        improvement = current_avg - comparison_avg
        if improvement < threshold:
            continue
        deltas = [current.subject_means[sid][s] - comparison.subject_means[sid][s] for s in common]
        scale = await scales.get(await stream_curriculum(db, entry.enrollment.stream_id))
        before = scale.grade_mark(comparison_avg).grade
        after = scale.grade_mark(current_avg).grade
        improved.append(
            ImprovedStudent(
                student_id=sid,
                admission_number=entry.student.admission_number,
                student_name=entry.student.full_name,
                comparison_average=comparison_avg,
                current_average=current_avg,
                improvement_points=improvement,
                improvement_percentage=(improvement / comparison_avg * 100) if comparison_avg > 0 else 0.0,
                subjects_compared=len(common),
                subjects_improved=sum(1 for d in deltas if d > 0),
                subjects_declined=sum(1 for d in deltas if d < 0),
                grade_change=f"{before} → {after}",
            )
        )
    improved.sort(key=lambda s: (-s.improvement_points, s.admission_number))
    logger.info("most_improved_computed", candidates=len(current.roster), improved=len(improved), threshold=threshold)
    return improved


async def student_comparison(
    db: AsyncSession,
    student_id: UUID,
    current_academic_year_id: UUID,
    current_term_id: UUID,
    comparison_academic_year_id: UUID,
    comparison_term_id: UUID,
) -> StudentComparison:
    """Subject-by-subject change for one student between two periods."""
    student = await db.get(Student, student_id)
    if student is None:
        raise NotFoundError(f"Student {student_id} not found")
    current = await _period_scores(db, current_academic_year_id, current_term_id, student_id=student_id)
    comparison = await _period_scores(db, comparison_academic_year_id, comparison_term_id, student_id=student_id)

    response = StudentComparison(
        student_id=student.id,
        admission_number=student.admission_number,
        student_name=student.full_name,
    )
    compared = _compare(
        current.subject_means.get(student_id, {}),
        comparison.subject_means.get(student_id, {}),
    )
    if compared is None:
        return response
    current_avg, comparison_avg, common = compared
    subjects = []
    for subject_id in common:
        now = current.subject_means[student_id][subject_id]
        before = comparison.subject_means[student_id][subject_id]
        subjects.append(
            SubjectComparison(
                subject_id=subject_id,
                subject_name=current.subject_names[subject_id],
                comparison_score=before,
                current_score=now,
                improvement=now - before,
                improvement_percentage=((now - before) / before * 100) if before > 0 else 0.0,
            )
        )
    subjects.sort(key=lambda s: s.subject_name)
    response.comparison_average = comparison_avg
    response.current_average = current_avg
    response.improvement_points = current_avg - comparison_avg
    response.subjects = subjects
    return response


async def performance_trends(
    db: AsyncSession,
    student_id: UUID,
    academic_year_id: UUID,
    number_of_terms: int = 3,
) -> List[TermTrend]:
    """Per-term summary of every graded result the student has in the year, newest term first."""
    student = await db.get(Student, student_id)
    if student is None:
        raise NotFoundError(f"Student {student_id} not found")
    await enrollment_service.validate_period(db, academic_year_id)

    result = await db.execute(
        select(Term, ExamResult.score, Exam.max_score)
        .select_from(Term)
        .join(Exam, Exam.term_id == Term.id)
        .join(ExamResult, ExamResult.exam_id == Exam.id)
        .where(
            Exam.academic_year_id == academic_year_id,
            ExamResult.student_id == student_id,
            ExamResult.score.is_not(None),
        )
    )
    by_term: Dict[UUID, Tuple[Term, List[float]]] = {}
    for term, score, out_of in result.all():
        percent = calculations.percentage(score, out_of or settings.default_max_score)
        by_term.setdefault(term.id, (term, []))[1].append(percent)

    newest_first = sorted(by_term.values(), key=lambda item: item[0].term_number, reverse=True)
    return [
        TermTrend(
            term_id=term.id,
            term_name=term.name,
            term_number=term.term_number,
            average_percentage=round(calculations.mean(percents), 2),
            result_count=len(percents),
            lowest_percentage=min(percents),
            highest_percentage=max(percents),
        )
        for term, percents in newest_first[:number_of_terms]
    ]
