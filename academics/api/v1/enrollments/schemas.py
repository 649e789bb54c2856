from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class EnrollmentResponse(BaseModel):
    id: UUID
    student_id: UUID
    academic_year_id: UUID
    term_id: UUID
    stream_id: UUID
    stream_name: Optional[str] = None
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class EnrollmentResolution(BaseModel):
    """Resolved enrollment for one student and period. enrolled=false means NotEnrolled."""

    student_id: UUID
    academic_year_id: UUID
    term_id: UUID
    enrolled: bool
    enrollment: Optional[EnrollmentResponse] = None


class RosterStudent(BaseModel):
    student_id: UUID
    admission_number: str
    student_name: str
    enrollment_id: UUID


class StreamRoster(BaseModel):
    stream_id: UUID
    academic_year_id: UUID
    term_id: UUID
    student_count: int = Field(..., description="0 for an empty roster; absence is not an error")
    students: List[RosterStudent] = Field(default_factory=list)
