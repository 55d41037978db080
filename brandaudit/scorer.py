"""
Audit Scorer — Weighted Composite Over Score Dimensions

Each audit dimension scores 0-10 and carries a weight. The overall
score is the weight-normalised mean, rounded to one decimal.
"""

from __future__ import annotations

from typing import Mapping, Sequence


# Status ladders: (minimum score, status), checked top to bottom.
# The last entry is the fallback for anything below the other bands.
FULL_LADDER: tuple[tuple[float, str], ...] = (
    (8.0, "excellent"),
    (6.0, "good"),
    (4.0, "needs-work"),
    (0.0, "critical"),
)
QUALITY_LADDER: tuple[tuple[float, str], ...] = (
    (8.0, "excellent"),
    (6.0, "good"),
    (0.0, "needs-work"),
)
CONSISTENCY_LADDER: tuple[tuple[float, str], ...] = (
    (7.0, "good"),
    (4.0, "needs-work"),
    (0.0, "critical"),
)
RECENCY_LADDER: tuple[tuple[float, str], ...] = (
    (7.0, "good"),
    (0.0, "needs-work"),
)


def dimension_status(score: float, ladder: Sequence[tuple[float, str]] = FULL_LADDER) -> str:
    """Map a 0-10 score onto the first band whose floor it reaches."""
    for floor, status in ladder:
        if score >= floor:
            return status
    return ladder[-1][1]


def calculate_overall_score(dimensions: Mapping[str, object]) -> float:
    """
    Weighted mean of dimension scores.

    Args:
        dimensions: name -> object with ``score`` and ``weight``.

    Returns:
        Score in [0, 10] rounded to one decimal. 0.0 when there is no weight.
    """
    weighted_sum = 0.0
    total_weight = 0.0
    for dim in dimensions.values():
        weighted_sum += dim.score * dim.weight
        total_weight += dim.weight

    if total_weight <= 0:
        return 0.0
    return round(weighted_sum / total_weight, 1)
