from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SubjectAnalysis(BaseModel):
    """Statistics over enrolled students' non-null scores. Empty cohort: student_count=0, stats None."""

    exam_id: UUID
    subject_id: UUID
    subject_name: str
    stream_id: Optional[UUID] = None
    student_count: int
    mean_score: Optional[float] = None
    median_score: Optional[float] = None
    mode_score: Optional[float] = None
    std_deviation: Optional[float] = None
    min_score: Optional[float] = None
    max_score: Optional[float] = None
    pass_threshold: float
    pass_rate: Optional[float] = Field(None, description="Percent of scores >= pass_threshold")
    fail_rate: Optional[float] = None
    difficulty_index: Optional[float] = Field(None, description="100 - mean as % of max score; higher = harder")
    discrimination_index: Optional[float] = None
    discrimination_status: str = Field("ok", description="ok | insufficient_sample")


class SubjectDifficulty(BaseModel):
    subject_id: UUID
    subject_name: str
    student_count: int
    mean_score: Optional[float] = None
    median_score: Optional[float] = None
    pass_rate: Optional[float] = None
    difficulty_index: Optional[float] = None
    discrimination_index: Optional[float] = None
    discrimination_status: str = "ok"


class SubjectScore(BaseModel):
    subject_id: UUID
    subject_name: str
    score: float
    grade: str
    remarks: Optional[str] = None


class StudentPerformance(BaseModel):
    student_id: UUID
    admission_number: str
    student_name: str
    exam_id: UUID
    subjects: List[SubjectScore] = Field(default_factory=list)
    average_score: Optional[float] = None
    grade: Optional[str] = None
    remarks: Optional[str] = None
    best_subjects: List[str] = Field(default_factory=list)
    worst_subjects: List[str] = Field(default_factory=list)
    performance_trend: str = "stable"


class StrugglingStudent(BaseModel):
    student_id: UUID
    admission_number: str
    student_name: str
    total_subjects: int
    failing_subjects: int
    average_score: float
    lowest_score: float
