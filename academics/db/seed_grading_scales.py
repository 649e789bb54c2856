"""
Seed script to populate grading_scales with the default 8-4-4, CBC and ECDE bands.

Re-running updates remarks/flags of existing (curriculum, grade) rows instead of
inserting duplicates. Bands below D+ (8-4-4) and the BE bands (CBC, ECDE) are failing.
"""
import asyncio
from typing import List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.enums import Curriculum
from academics.core.models import GradingScale
from academics.db.session import AsyncSessionLocal

_844 = Curriculum.EIGHT_FOUR_FOUR.value
_CBC = Curriculum.CBC.value
_ECDE = Curriculum.ECDE.value

# (curriculum, grade, min_score, max_score, remarks, is_passing)
BANDS: List[Tuple[str, str, float, float, str, bool]] = [
    (_844, "A", 80, 100, "Excellent", True),
    (_844, "A-", 75, 79, "Very Good", True),
    (_844, "B+", 70, 74, "Good", True),
    (_844, "B", 65, 69, "Good", True),
    (_844, "B-", 60, 64, "Above Average", True),
    (_844, "C+", 55, 59, "Average", True),
    (_844, "C", 50, 54, "Average", True),
    (_844, "C-", 45, 49, "Below Average", True),
    (_844, "D+", 40, 44, "Fair", True),
    (_844, "D", 35, 39, "Fair", False),
    (_844, "D-", 30, 34, "Weak", False),
    (_844, "E", 0, 29, "Poor", False),
    (_CBC, "EE1", 90, 100, "Exceeding Expectations", True),
    (_CBC, "EE2", 75, 89, "Exceeding Expectations", True),
    (_CBC, "ME1", 58, 74, "Meeting Expectations", True),
    (_CBC, "ME2", 41, 57, "Meeting Expectations", True),
    (_CBC, "AE1", 31, 40, "Approaching Expectations", True),
    (_CBC, "AE2", 21, 30, "Approaching Expectations", True),
    (_CBC, "BE1", 11, 20, "Below Expectations", False),
    (_CBC, "BE2", 0, 10, "Below Expectations", False),
    (_ECDE, "EE", 80, 100, "Exceeding Expectations", True),
    (_ECDE, "ME", 60, 79, "Meeting Expectations", True),
    (_ECDE, "AE", 40, 59, "Approaching Expectations", True),
    (_ECDE, "BE", 0, 39, "Below Expectations", False),
]


async def seed_grading_scales(db: AsyncSession) -> Tuple[int, int]:
    """Insert or update every default band. Returns (created, updated)."""
    created = 0
    updated = 0
    for curriculum, grade, min_score, max_score, remarks, is_passing in BANDS:
        result = await db.execute(
            select(GradingScale).where(
                GradingScale.curriculum == curriculum,
                GradingScale.grade == grade,
            )
        )
        existing = result.scalar_one_or_none()
        if existing:
            existing.min_score = min_score
            existing.max_score = max_score
            existing.remarks = remarks
            existing.is_passing = is_passing
            updated += 1
        else:
            db.add(
                GradingScale(
                    curriculum=curriculum,
                    grade=grade,
                    min_score=min_score,
                    max_score=max_score,
                    remarks=remarks,
                    is_passing=is_passing,
                )
            )
            created += 1
    await db.commit()
    return created, updated


async def main() -> None:
    """Main entry point for the seed script."""
    async with AsyncSessionLocal() as db:
        try:
            created, updated = await seed_grading_scales(db)
        except Exception as e:
            print(f"Error seeding grading scales: {e}")
            await db.rollback()
            raise
    print("=" * 60)
    print("Grading Scale Seeding Summary")
    print("=" * 60)
    print(f"Bands created: {created}")
    print(f"Bands updated: {updated}")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
