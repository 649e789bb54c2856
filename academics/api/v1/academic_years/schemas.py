from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class TermResponse(BaseModel):
    id: UUID
    academic_year_id: UUID
    name: str
    term_number: int
    is_current: bool

    class Config:
        from_attributes = True


class AcademicYearResponse(BaseModel):
    id: UUID
    name: str
    start_date: date
    end_date: date
    is_current: bool
    created_at: datetime
    terms: List[TermResponse] = Field(default_factory=list)


class CurrentPeriodResponse(BaseModel):
    """Default (year, term) for the UI to pass explicitly into every analytics/promotion call."""

    academic_year: Optional[AcademicYearResponse] = None
    term: Optional[TermResponse] = None
