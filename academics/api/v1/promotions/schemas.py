from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class BatchPromote(BaseModel):
    """Move students from their ACTIVE enrollment in (from_stream, from_year) to (to_stream, to_year, to_term)."""

    student_ids: List[UUID] = Field(..., min_length=1)
    from_stream_id: UUID
    to_stream_id: UUID
    from_academic_year_id: UUID
    to_academic_year_id: UUID
    to_term_id: UUID
    actor_id: Optional[UUID] = Field(None, description="User performing the promotion (audit attribution only)")


class PromotionFailure(BaseModel):
    student_id: UUID
    student_name: Optional[str] = None
    admission_number: Optional[str] = None
    reason: str


class PromotionBatchResult(BaseModel):
    """Outcome of one batch. Failed students can be corrected and re-submitted on their own."""

    success: bool = Field(..., description="True when no student failed")
    attempted: int
    promoted: int
    failed: int
    promoted_ids: List[UUID] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list, description="One human-readable line per failure, in input order")
    failure_details: List[PromotionFailure] = Field(default_factory=list)


class PromotionCandidate(BaseModel):
    student_id: UUID
    admission_number: str
    student_name: str
    enrollment_id: UUID
    term_id: UUID
    status: str


class StreamResponse(BaseModel):
    id: UUID
    name: str
    level_order: int
    curriculum: Optional[str] = None

    class Config:
        from_attributes = True


class AuditLogEntry(BaseModel):
    id: UUID
    entity_type: str
    entity_id: UUID
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    action: str
    performed_by: Optional[UUID] = None
    timestamp: datetime
    remarks: Optional[str] = None

    class Config:
        from_attributes = True
