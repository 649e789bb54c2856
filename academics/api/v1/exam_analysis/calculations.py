"""
Descriptive statistics and classical item analysis over a list of scores.

difficulty_index = 100 - percentage(mean, max_score): 0 when everyone scores full
marks, 100 when everyone scores zero (higher = harder). Every call site uses
this one function.

discrimination_index = (mean(top group) - mean(bottom group)) / max_score, groups
being the top and bottom `fraction` of scorers (ceil(n * fraction) each). Below
`min_sample` scores the index is None (insufficient sample).
"""

import math
from collections import Counter
from typing import List, Optional, Sequence


def mean(scores: Sequence[float]) -> Optional[float]:
    if not scores:
        return None
    return sum(scores) / len(scores)


def median(scores: Sequence[float]) -> Optional[float]:
    if not scores:
        return None
    ordered = sorted(scores)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def mode(scores: Sequence[float]) -> Optional[float]:
    """Most frequent score; ties go to the score seen first."""
    if not scores:
        return None
    counts = Counter(scores)
    best = max(counts.values())
    for score in scores:
        if counts[score] == best:
            return score
    return None


def std_deviation(scores: Sequence[float]) -> Optional[float]:
    """Population standard deviation."""
    avg = mean(scores)
    if avg is None:
        return None
    return math.sqrt(sum((s - avg) ** 2 for s in scores) / len(scores))


def rate(scores: Sequence[float], threshold: float, passing: bool = True) -> Optional[float]:
    """Percentage of scores >= threshold (passing=True) or < threshold (passing=False)."""
    if not scores:
        return None
    if passing:
        hits = sum(1 for s in scores if s >= threshold)
    else:
        hits = sum(1 for s in scores if s < threshold)
    return hits / len(scores) * 100


def percentage(score: Optional[float], max_score: float) -> Optional[float]:
    if score is None:
        return None
    return score * 100 / max_score


def difficulty_index(mean_score: Optional[float], max_score: float) -> Optional[float]:
    if mean_score is None:
        return None
    return 100 - percentage(mean_score, max_score)


def discrimination_index(
    scores: Sequence[float],
    max_score: float,
    fraction: float = 0.27,
    min_sample: int = 8,
) -> Optional[float]:
    if len(scores) < min_sample:
        return None
    ordered: List[float] = sorted(scores, reverse=True)
    cutoff = math.ceil(len(ordered) * fraction)
    if cutoff == 0:
        return None
    top = ordered[:cutoff]
    bottom = ordered[-cutoff:]
    return (mean(top) - mean(bottom)) / max_score
