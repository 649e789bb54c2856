import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from academics.db.session import Base


class Exam(Base):
    """Assessment event scoped to one (academic_year, term); not tied to a stream."""

    __tablename__ = "exams"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    academic_year_id = Column(
        UUID(as_uuid=True),
        ForeignKey("academic_years.id", ondelete="RESTRICT"),
        nullable=False,
    )
    term_id = Column(UUID(as_uuid=True), ForeignKey("terms.id", ondelete="RESTRICT"), nullable=False)
    max_score = Column(Float, nullable=True)  # None -> settings.default_max_score
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class ExamResult(Base):
    """
    One score per (exam, student, subject). score is NULL until marks are entered.
    Exists independently of enrollment; analytics join through the resolved roster.
    """

    __tablename__ = "exam_results"
    __table_args__ = (
        UniqueConstraint("exam_id", "student_id", "subject_id", name="uq_exam_result_exam_student_subject"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    exam_id = Column(UUID(as_uuid=True), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(UUID(as_uuid=True), ForeignKey("students.id", ondelete="RESTRICT"), nullable=False)
    subject_id = Column(UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False)
    score = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    exam = relationship("Exam", backref="results")
    subject = relationship("Subject", foreign_keys=[subject_id])
