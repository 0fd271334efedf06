"""Numeric helpers and unit constants shared across the backend."""
from __future__ import annotations

from typing import Optional

import math

MEGATON_TNT_JOULES = 4.184e15


def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)


def to_finite(value: object) -> Optional[float]:
    """Coerce ``value`` to a finite float, or ``None`` when that is not possible."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def to_number_or_zero(value: object) -> float:
    number = to_finite(value)
    return number if number is not None else 0.0
