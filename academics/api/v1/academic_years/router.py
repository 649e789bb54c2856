from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from academics.db.session import get_db

from .schemas import AcademicYearResponse, CurrentPeriodResponse
from . import service

router = APIRouter(prefix="/api/v1/academic-years", tags=["academic-years"])


@router.get("", response_model=List[AcademicYearResponse])
async def list_academic_years(db: AsyncSession = Depends(get_db)) -> List[AcademicYearResponse]:
    return await service.list_academic_years(db)


@router.get("/current", response_model=CurrentPeriodResponse)
async def get_current_period(db: AsyncSession = Depends(get_db)) -> CurrentPeriodResponse:
    """Default year/term for the UI. Empty when no year is marked current."""
    return await service.get_current_period(db)
