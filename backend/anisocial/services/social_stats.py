"""
social_stats.py

Statistics over follower ratings. Zero means "tracked, not rated" and is excluded from
average and median but still counted.
"""
import statistics
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from anisocial.schemas import FollowerRating, StatisticBundle


def positive_ratings(ratings: Iterable[int]) -> List[int]:
    return [r for r in ratings if r > 0]


def compute_average(ratings: Iterable[int]) -> float:
    """Mean of the positive ratings rounded half-up to one decimal, 0.0 when there are none."""
    scores = positive_ratings(ratings)
    if not scores:
        return 0.0
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def compute_median(ratings: Iterable[int]) -> float:
    scores = positive_ratings(ratings)
    if not scores:
        return 0.0
    return float(statistics.median(scores))


def build_bundle(ratings: List[FollowerRating]) -> StatisticBundle:
    scores = [r.rating for r in ratings]
    return StatisticBundle(
        ratings=list(ratings),
        average=compute_average(scores),
        median=compute_median(scores),
        # every follower with an entry, rated or not
        count=len(ratings),
    )


def empty_bundle() -> StatisticBundle:
    return StatisticBundle(ratings=[], average=0.0, median=0.0, count=0)
