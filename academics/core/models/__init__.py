from academics.core.models.academic_year import AcademicYear, Term
from academics.core.models.audit_log import AuditLog
from academics.core.models.enrollment import Enrollment
from academics.core.models.exam import Exam, ExamResult
from academics.core.models.grading_scale import GradingScale
from academics.core.models.stream import Stream
from academics.core.models.student import Student
from academics.core.models.subject import Subject

__all__ = [
    "AcademicYear",
    "AuditLog",
    "Enrollment",
    "Exam",
    "ExamResult",
    "GradingScale",
    "Stream",
    "Student",
    "Subject",
    "Term",
]
