from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubjectMeritEntry(BaseModel):
    position: int
    student_id: UUID
    admission_number: str
    student_name: str
    score: float
    percentage: float = Field(..., description="score / exam max score * 100")
    grade: str
    remarks: Optional[str] = None


class SubjectMeritList(BaseModel):
    exam_id: UUID
    subject_id: UUID
    subject_name: str
    stream_id: UUID
    total_students: int
    entries: List[SubjectMeritEntry] = Field(default_factory=list)


class ClassMeritEntry(BaseModel):
    position: int
    student_id: UUID
    admission_number: str
    student_name: str
    subject_count: int
    total_marks: float
    average_marks: float
    percentage: float
    grade: str
    tied_with: List[UUID] = Field(default_factory=list)


class ClassMeritList(BaseModel):
    exam_id: UUID
    stream_id: UUID
    total_students: int
    rankings: List[ClassMeritEntry] = Field(default_factory=list)


class MostImprovedQuery(BaseModel):
    current_academic_year_id: UUID
    current_term_id: UUID
    comparison_academic_year_id: UUID
    comparison_term_id: UUID
    stream_id: Optional[UUID] = Field(None, description="Restrict to students enrolled in this stream in the current term")
    minimum_improvement: Optional[float] = Field(None, description="Defaults to IMPROVEMENT_THRESHOLD")


class ImprovedStudent(BaseModel):
    student_id: UUID
    admission_number: str
    student_name: str
    comparison_average: float
    current_average: float
    improvement_points: float
    improvement_percentage: float
    subjects_compared: int
    subjects_improved: int
    subjects_declined: int
    grade_change: str


class SubjectComparison(BaseModel):
    subject_id: UUID
    subject_name: str
    comparison_score: float
    current_score: float
    improvement: float
    improvement_percentage: float


class StudentComparison(BaseModel):
    student_id: UUID
    admission_number: str
    student_name: str
    comparison_average: Optional[float] = None
    current_average: Optional[float] = None
    improvement_points: Optional[float] = None
    subjects: List[SubjectComparison] = Field(default_factory=list)


class TermTrend(BaseModel):
    """One term's graded results for a student, as percentages of each exam's max score."""

    term_id: UUID
    term_name: str
    term_number: int
    average_percentage: float
    result_count: int
    lowest_percentage: float
    highest_percentage: float
