from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from fruitflow.models.user import UserRole

MIN_RATINGS_FOR_SUSPENSION = 10
RATING_THRESHOLD_FOR_SUSPENSION = 1.5
MIN_RATING = 1
MAX_RATING = 5


@dataclass(frozen=True)
class RatingStats:
    average: float | None
    count: int


def aggregate(ratings: Iterable[int | float | None]) -> RatingStats:
    values = [float(r) for r in ratings if r is not None]
    if not values:
        return RatingStats(average=None, count=0)
    return RatingStats(average=sum(values) / len(values), count=len(values))


def should_suspend(
    role: UserRole,
    supplier_stats: RatingStats,
    transporter_stats: RatingStats,
) -> bool:
    if role == UserRole.SUPPLIER:
        stats = supplier_stats
    elif role == UserRole.TRANSPORTER:
        stats = transporter_stats
    else:
        return False
    return (
        stats.count >= MIN_RATINGS_FOR_SUSPENSION
        and stats.average is not None
        and stats.average < RATING_THRESHOLD_FOR_SUSPENSION
    )
