"""
Grade bands per curriculum. Bands are inclusive on both ends and must not overlap;
gaps and overlaps are configuration errors surfaced by the grading resolver.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, String
from sqlalchemy.dialects.postgresql import UUID

from academics.db.session import Base


class GradingScale(Base):
    __tablename__ = "grading_scales"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    curriculum = Column(String(20), nullable=False, index=True)
    grade = Column(String(10), nullable=False)
    remarks = Column(String(100), nullable=True)
    min_score = Column(Float, nullable=False)
    max_score = Column(Float, nullable=False)
    is_passing = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
