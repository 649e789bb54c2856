import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from dataclasses import dataclass, field  # noqa: E402
from datetime import date, datetime, timedelta  # noqa: E402
from typing import AsyncGenerator, Dict, Optional  # noqa: E402

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from academics.core.enums import EnrollmentStatus  # noqa: E402
from academics.core.models import (  # noqa: E402
    AcademicYear,
    Enrollment,
    Exam,
    ExamResult,
    GradingScale,
    Stream,
    Student,
    Subject,
    Term,
)
from academics.db.session import Base, engine_options, get_db  # noqa: E402
from academics.main import app  # noqa: E402


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; overrides the FastAPI dependency with the same session."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        poolclass=StaticPool,
        **engine_options(TEST_DATABASE_URL),
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@dataclass
class School:
    """
    Two academic years (2025: terms 1 and 2; 2026: term 1), three streams, two 8-4-4
    subjects, one exam per 2025 term and an 8-4-4 scale of A[80-100] B[60-79] C[0-59]
    with C failing.
    """

    db: AsyncSession
    years: Dict[str, AcademicYear] = field(default_factory=dict)
    terms: Dict[str, Term] = field(default_factory=dict)
    streams: Dict[str, Stream] = field(default_factory=dict)
    subjects: Dict[str, Subject] = field(default_factory=dict)
    exams: Dict[str, Exam] = field(default_factory=dict)
    _clock: datetime = datetime(2025, 1, 6, 8, 0, 0)

    def tick(self) -> datetime:
        self._clock = self._clock + timedelta(minutes=1)
        return self._clock

    async def student(self, admission_number: str, first_name: str, last_name: str) -> Student:
        student = Student(admission_number=admission_number, first_name=first_name, last_name=last_name)
        self.db.add(student)
        await self.db.commit()
        return student

    async def enroll(
        self,
        student: Student,
        stream: str,
        year: str = "2025",
        term: str = "2025-T1",
        status: EnrollmentStatus = EnrollmentStatus.ACTIVE,
        created_at: Optional[datetime] = None,
    ) -> Enrollment:
        enrollment = Enrollment(
            student_id=student.id,
            academic_year_id=self.years[year].id,
            term_id=self.terms[term].id,
            stream_id=self.streams[stream].id,
            status=status.value,
            created_at=created_at or self.tick(),
        )
        self.db.add(enrollment)
        await self.db.commit()
        return enrollment

    async def result(self, exam: str, student: Student, subject: str, score: Optional[float]) -> ExamResult:
        row = ExamResult(
            exam_id=self.exams[exam].id,
            student_id=student.id,
            subject_id=self.subjects[subject].id,
            score=score,
        )
        self.db.add(row)
        await self.db.commit()
        return row

    async def exam(self, key: str, term: str, max_score: Optional[float] = None) -> Exam:
        term_row = self.terms[term]
        exam = Exam(
            name=key,
            academic_year_id=term_row.academic_year_id,
            term_id=term_row.id,
            max_score=max_score,
        )
        self.db.add(exam)
        await self.db.commit()
        self.exams[key] = exam
        return exam


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    s = School(db=db_session)

    y2025 = AcademicYear(name="2025", start_date=date(2025, 1, 6), end_date=date(2025, 11, 28), is_current=True)
    y2026 = AcademicYear(name="2026", start_date=date(2026, 1, 5), end_date=date(2026, 11, 27))
    db_session.add_all([y2025, y2026])
    await db_session.flush()
    s.years = {"2025": y2025, "2026": y2026}

    t1 = Term(academic_year_id=y2025.id, name="Term 1", term_number=1)
    t2 = Term(academic_year_id=y2025.id, name="Term 2", term_number=2, is_current=True)
    t3 = Term(academic_year_id=y2026.id, name="Term 1", term_number=1)
    db_session.add_all([t1, t2, t3])
    s.terms = {"2025-T1": t1, "2025-T2": t2, "2026-T1": t3}

    s.streams = {
        "1E": Stream(name="Form 1 East", level_order=1, curriculum="8-4-4"),
        "1W": Stream(name="Form 1 West", level_order=1, curriculum="8-4-4"),
        "2E": Stream(name="Form 2 East", level_order=2, curriculum="8-4-4"),
    }
    s.subjects = {
        "math": Subject(name="Mathematics", code="MAT", curriculum="8-4-4"),
        "eng": Subject(name="English", code="ENG", curriculum="8-4-4"),
    }
    db_session.add_all(list(s.streams.values()) + list(s.subjects.values()))
    db_session.add_all(
        [
            GradingScale(curriculum="8-4-4", grade="A", remarks="Excellent", min_score=80, max_score=100),
            GradingScale(curriculum="8-4-4", grade="B", remarks="Good", min_score=60, max_score=79),
            GradingScale(curriculum="8-4-4", grade="C", remarks="Fair", min_score=0, max_score=59, is_passing=False),
        ]
    )
    await db_session.commit()

    await s.exam("t1", "2025-T1")
    await s.exam("t2", "2025-T2")
    return s
