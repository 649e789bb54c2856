import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from academics.core.enums import EnrollmentStatus
from academics.db.session import Base


class Enrollment(Base):
    """
    Student enrollment per (academic_year, term, stream). Append-only: rows are never
    deleted, only superseded (old row status -> PROMOTED / TRANSFERRED / INACTIVE).
    (student, academic_year, term) is deliberately NOT unique; corrections may leave
    several rows. Resolve the authoritative one via api.v1.enrollments.service.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        Index("ix_enrollment_student_period", "student_id", "academic_year_id", "term_id"),
        Index("ix_enrollment_stream_period", "stream_id", "academic_year_id", "term_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    term_id = Column(UUID(as_uuid=True), ForeignKey("terms.id", ondelete="RESTRICT"), nullable=False)
    stream_id = Column(UUID(as_uuid=True), ForeignKey("streams.id", ondelete="RESTRICT"), nullable=False)
    status = Column(String(20), nullable=False, default=EnrollmentStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", backref="enrollments")
    stream = relationship("Stream", foreign_keys=[stream_id], lazy="joined")
