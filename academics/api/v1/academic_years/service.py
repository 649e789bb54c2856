from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.models import AcademicYear, Term

from .schemas import AcademicYearResponse, CurrentPeriodResponse, TermResponse


async def _terms(db: AsyncSession, academic_year_id) -> List[TermResponse]:
    result = await db.execute(
        select(Term).where(Term.academic_year_id == academic_year_id).order_by(Term.term_number)
    )
    return [TermResponse.model_validate(t) for t in result.scalars().all()]


async def _to_response(db: AsyncSession, ay: AcademicYear) -> AcademicYearResponse:
    return AcademicYearResponse(
        id=ay.id,
        name=ay.name,
        start_date=ay.start_date,
        end_date=ay.end_date,
        is_current=ay.is_current,
        created_at=ay.created_at,
        terms=await _terms(db, ay.id),
    )


async def list_academic_years(db: AsyncSession) -> List[AcademicYearResponse]:
    """All academic years, newest first, with their terms."""
    result = await db.execute(select(AcademicYear).order_by(AcademicYear.start_date.desc()))
    return [await _to_response(db, ay) for ay in result.scalars().all()]


async def get_current_period(db: AsyncSession) -> CurrentPeriodResponse:
    """
    Current year (is_current=true) and its current term. Read only at the UI boundary;
    services never fall back to it.
    """
    result = await db.execute(select(AcademicYear).where(AcademicYear.is_current.is_(True)))
    ay: Optional[AcademicYear] = result.scalars().first()
    if not ay:
        return CurrentPeriodResponse()
    year = await _to_response(db, ay)
    term = next((t for t in year.terms if t.is_current), None)
    return CurrentPeriodResponse(academic_year=year, term=term)
