"""Rounding helpers shared by the analytics and currency modules."""

import math
from decimal import ROUND_HALF_UP, Decimal


def round_to(value: float, places: int) -> float:
    """Round half-up to a fixed number of decimal places.

    Goes through the shortest repr of the float so that binary artifacts
    like 1.005 -> 1.00499999 do not leak into the result.
    """
    if not math.isfinite(value):
        return 0.0
    quantum = Decimal(1).scaleb(-places)
    rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return float(rounded) + 0.0


def round2(value: float) -> float:
    return round_to(value, 2)


def round4(value: float) -> float:
    return round_to(value, 4)
