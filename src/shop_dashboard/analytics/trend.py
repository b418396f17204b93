"""Signed percentage change between a current and a previous figure."""

import math


def trend(current: float, previous: float) -> float:
    """
    Percentage change from ``previous`` to ``current``.

    A zero baseline is asymmetric: growth from nothing reports +100, nothing
    to nothing reports 0. The result is always finite.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    change = (current - previous) / previous * 100
    return change if math.isfinite(change) else 0.0


def comparative_trend(current: float, previous: float, has_comparison: bool) -> float:
    """``trend`` when a comparison interval exists, else 0 (all-time view)."""
    if not has_comparison:
        return 0.0
    return trend(current, previous)
