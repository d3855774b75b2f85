"""
Numeric aggregation: the average fallback and factor folding.
"""

from __future__ import annotations

import math
from typing import Any, Iterable, Mapping

from ..models import is_number


def average(options: Mapping[str, Any]) -> float:
    """
    Mean of the option values that are plain numbers.

    Options holding nodes or labels are ignored. With no numeric options
    the result is NaN.
    """
    values = [v for v in options.values() if is_number(v)]
    if not values:
        return math.nan
    return sum(values) / len(values)


def apply_factors(value: float, factors: Iterable[float]) -> float:
    """Multiply ``value`` by every factor."""
    result = value
    for factor in factors:
        result *= factor
    return result
