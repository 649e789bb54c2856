import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from academics.db.session import Base


class AcademicYear(Base):
    """
    Academic year. is_current is a UI-boundary default only; the engine always
    receives explicit year/term identifiers.
    """

    __tablename__ = "academic_years"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)  # e.g. "2025"
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_current = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Term(Base):
    """Term within an academic year (Term 1, Term 2, Term 3)."""

    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("academic_year_id", "term_number", name="uq_term_year_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    name = Column(String(50), nullable=False)
    term_number = Column(Integer, nullable=False)
    is_current = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    academic_year = relationship("AcademicYear", backref="terms")
