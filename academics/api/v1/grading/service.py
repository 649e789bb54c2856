"""
Grade lookup by curriculum band. A score must fall in exactly one band
(min_score <= score <= max_score); zero matches raise NoGradeBand and several
raise AmbiguousGradeBand. Callers check for a missing score before calling.

Bands are whole marks out of 100. Every score is graded through graded_mark():
converted to a percentage of the exam's max score and rounded half-up, so a
stored 79.5 is graded as 80 and the gap between 79 and 80 never matters.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academics.core.config import settings
from academics.core.exceptions import AmbiguousGradeBand, NoGradeBand
from academics.core.models import GradingScale

logger = structlog.get_logger(__name__)

SCALE_FLOOR = 0.0
SCALE_CEILING = 100.0


def graded_mark(score: float, max_score: Optional[float] = None) -> float:
    """Whole mark out of 100 that is looked up in the bands and compared with the pass threshold."""
    out_of = float(max_score or settings.default_max_score)
    return float(int(score * 100 / out_of + 0.5))


@dataclass(frozen=True)
class GradeBand:
    grade: str
    remarks: Optional[str]
    min_score: float
    max_score: float
    is_passing: bool = True


@dataclass(frozen=True)
class GradeResult:
    grade: str
    remarks: Optional[str]


class GradingScaleResolver:
    """Bands for one curriculum, loaded once and reused for every score in a computation."""

    def __init__(self, curriculum: str, bands: Sequence[GradeBand]) -> None:
        self.curriculum = curriculum
        self.bands = sorted(bands, key=lambda b: b.min_score, reverse=True)

    def grade_mark(self, score: float, max_score: Optional[float] = None) -> GradeResult:
        return self.grade_for(graded_mark(score, max_score))

    def grade_for(self, score: float) -> GradeResult:
        """Band lookup for a whole mark; see grade_mark for raw scores."""
        matches = [b for b in self.bands if b.min_score <= score <= b.max_score]
        if not matches:
            logger.error("grade_band_missing", curriculum=self.curriculum, score=score)
            raise NoGradeBand(self.curriculum, score)
        if len(matches) > 1:
            grades = [b.grade for b in matches]
            logger.error("grade_band_ambiguous", curriculum=self.curriculum, score=score, grades=grades)
            raise AmbiguousGradeBand(self.curriculum, score, grades)
        band = matches[0]
        return GradeResult(grade=band.grade, remarks=band.remarks)

    def pass_threshold(self) -> float:
        """Lowest min_score among passing bands; default_pass_mark when no band is flagged failing."""
        if not self.bands or all(b.is_passing for b in self.bands):
            return float(settings.default_pass_mark)
        return min(b.min_score for b in self.bands if b.is_passing)

    def problems(self) -> List[str]:
        """
        Overlaps and gaps across [0, 100]. Empty list means the scale is consistent.
        Adjacent bands one mark apart (59 and 60) are contiguous because graded marks are whole.
        """
        issues: List[str] = []
        if not self.bands:
            return [f"No grade bands configured for curriculum '{self.curriculum}'"]
        ascending = sorted(self.bands, key=lambda b: (b.min_score, b.max_score))
        for band in ascending:
            if band.min_score > band.max_score:
                issues.append(f"Band {band.grade} has min_score {band.min_score} > max_score {band.max_score}")
        if ascending[0].min_score > SCALE_FLOOR:
            issues.append(f"Scores below {ascending[0].min_score} have no band")
        for lower, upper in zip(ascending, ascending[1:]):
            if upper.min_score <= lower.max_score:
                issues.append(f"Bands {lower.grade} and {upper.grade} overlap at {upper.min_score}")
            elif upper.min_score - lower.max_score > 1:
                issues.append(f"Scores between {lower.max_score} and {upper.min_score} have no band")
        top = max(b.max_score for b in ascending)
        if top < SCALE_CEILING:
            issues.append(f"Scores above {top} have no band")
        return issues


async def load_scale(db: AsyncSession, curriculum: str) -> GradingScaleResolver:
    result = await db.execute(
        select(GradingScale)
        .where(GradingScale.curriculum == curriculum)
        .order_by(GradingScale.min_score.desc())
    )
    bands = [
        GradeBand(
            grade=row.grade,
            remarks=row.remarks,
            min_score=row.min_score,
            max_score=row.max_score,
            is_passing=row.is_passing,
        )
        for row in result.scalars().all()
    ]
    return GradingScaleResolver(curriculum, bands)


async def grade_for(db: AsyncSession, curriculum: str, score: float) -> GradeResult:
    """Grade for a mark out of 100."""
    scale = await load_scale(db, curriculum)
    return scale.grade_mark(score)
