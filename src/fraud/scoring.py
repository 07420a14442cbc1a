"""Score arithmetic shared by the image, aggregation and fusion stages."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple


def clamp_score(score: float) -> float:
    """Clamp to [0, 100]."""
    return float(max(0, min(100, score)))


def weighted_score(parts: Iterable[Tuple[float, float]]) -> float:
    """Sum of score * weight in decimal arithmetic, so 0.35 * 90 is 31.5 exactly."""
    total = sum((Decimal(str(score)) * Decimal(str(weight)) for score, weight in parts), Decimal(0))
    return float(total)


def round_half_up(value: float) -> int:
    """Round .5 away from zero for non-negative scores (32.5 -> 33)."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
