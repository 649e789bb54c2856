from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.exceptions import ServiceError
from academics.db.session import get_db

from .schemas import AuditLogEntry, BatchPromote, PromotionBatchResult, PromotionCandidate, StreamResponse
from . import service

router = APIRouter(prefix="/api/v1/promotions", tags=["promotions"])


@router.post("/batch", response_model=PromotionBatchResult, status_code=status.HTTP_200_OK)
async def promote_batch(
    payload: BatchPromote,
    db: AsyncSession = Depends(get_db),
) -> PromotionBatchResult:
    """Promote students one transaction at a time. Per-student failures are listed in failure_details."""
    try:
        return await service.promote_batch(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/candidates", response_model=List[PromotionCandidate])
async def promotion_candidates(
    stream_id: UUID = Query(...),
    academic_year_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
) -> List[PromotionCandidate]:
    try:
        return await service.promotion_candidates(db, stream_id, academic_year_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/streams/{stream_id}/next", response_model=Optional[StreamResponse])
async def next_stream(
    stream_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> Optional[StreamResponse]:
    try:
        return await service.next_stream(db, stream_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/history", response_model=List[AuditLogEntry])
async def promotion_history(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[AuditLogEntry]:
    """Read-only audit trail of the student's promotions."""
    return await service.promotion_history(db, student_id)
