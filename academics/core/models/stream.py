"""Streams (class/section groupings such as "Form 1 East"). level_order drives next-stream suggestions."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID

from academics.db.session import Base


class Stream(Base):
    __tablename__ = "streams"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    level_order = Column(Integer, nullable=False, default=0)
    curriculum = Column(String(20), nullable=True)  # falls back to settings.default_curriculum
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
