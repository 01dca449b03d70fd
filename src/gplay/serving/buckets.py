# gplay/serving/buckets.py
import math
from typing import Sequence


def nearest_bucket(value: float, buckets: Sequence[float]) -> float:
    """
    Bucket with the smallest absolute distance to value.
    Strict '<' keeps the earlier bucket on exact ties.
    """
    if not buckets:
        raise ValueError("buckets must not be empty")
    best = buckets[0]
    best_d = abs(value - best)
    for b in buckets:
        d = abs(value - b)
        if d < best_d:
            best, best_d = b, d
    return best


def format_count(value: float) -> str:
    """12345.5 -> '12,346' (half-up rounding)."""
    if not math.isfinite(value):
        return str(value)
    return f"{math.floor(value + 0.5):,}"
