"""Sales analytics: period resolution, aggregates, chart buckets and leaderboards."""

from .engine import DashboardEngine, DashboardSnapshot
from .leaderboard import LeaderboardMetric
from .periods import BucketGrain, PeriodMode, PeriodSelection, resolve_period
from .trend import trend

__all__ = [
    "DashboardEngine",
    "DashboardSnapshot",
    "LeaderboardMetric",
    "BucketGrain",
    "PeriodMode",
    "PeriodSelection",
    "resolve_period",
    "trend",
]
