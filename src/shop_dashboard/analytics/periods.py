"""
Period resolution for dashboard statistics.

Turns the user's time-range selector into the current interval, the
comparison interval that precedes it, and the chart grain. Calendar
boundaries (midnight, first of month) are taken in the configured time zone;
all bounds are epoch milliseconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
ONE_MS = timedelta(milliseconds=1)


class PeriodMode(str, Enum):
    """Time-range selector values."""

    TODAY = "today"
    THIS_MONTH = "this_month"
    CUSTOM = "custom"
    ALL_TIME = "all_time"


class BucketGrain(str, Enum):
    """Chart bucket granularity."""

    HOUR = "hour"
    DAY = "day"
    MONTH = "month"


@dataclass(frozen=True, slots=True)
class Interval:
    """
    A span of epoch-millisecond timestamps.

    ``closed`` includes ``end`` itself; otherwise the interval is half-open.
    An interval with both bounds ``None`` is unbounded and matches every
    record, including records whose timestamp could not be parsed.
    """

    start: int | None
    end: int | None
    closed: bool = False

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    @property
    def is_empty(self) -> bool:
        if self.start is None or self.end is None:
            return False
        if self.closed:
            return self.end < self.start
        return self.end <= self.start

    def contains(self, timestamp: int | None) -> bool:
        if self.is_unbounded:
            return True
        if timestamp is None:
            return False
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None:
            return timestamp <= self.end if self.closed else timestamp < self.end
        return True


class PeriodSelection(BaseModel):
    """The mode picked on the dashboard plus custom bounds when relevant."""

    model_config = ConfigDict(frozen=True)

    mode: PeriodMode = PeriodMode.TODAY
    start_date: date | None = None
    end_date: date | None = None

    @model_validator(mode="after")
    def validate_custom_bounds(self) -> "PeriodSelection":
        if self.mode == PeriodMode.CUSTOM and (self.start_date is None or self.end_date is None):
            raise ValueError("custom period requires start_date and end_date")
        return self


@dataclass(frozen=True, slots=True)
class PeriodWindow:
    """Resolved intervals for a selection."""

    mode: PeriodMode
    current: Interval
    previous: Interval | None
    grain: BucketGrain

    @property
    def has_comparison(self) -> bool:
        return self.previous is not None


def to_epoch_ms(moment: datetime) -> int:
    """Exact epoch milliseconds for an aware datetime."""

    return (moment - EPOCH) // ONE_MS


def from_epoch_ms(timestamp: int, tz: tzinfo) -> datetime:
    """Aware datetime in ``tz`` for epoch milliseconds."""

    return (EPOCH + timedelta(milliseconds=timestamp)).astimezone(tz)


def _midnight(day: date, tz: tzinfo) -> int:
    return to_epoch_ms(datetime.combine(day, time.min, tzinfo=tz))


def _first_of_previous_month(day: date) -> date:
    if day.month == 1:
        return date(day.year - 1, 12, 1)
    return date(day.year, day.month - 1, 1)


def resolve_period(selection: PeriodSelection, now_ms: int, tz: tzinfo) -> PeriodWindow:
    """
    Resolve a selection into current/previous intervals and a chart grain.

    Args:
        selection: Mode and optional custom bounds
        now_ms: Current wall-clock time in epoch milliseconds
        tz: Time zone used for calendar boundaries

    Returns:
        PeriodWindow for the selection
    """
    today = from_epoch_ms(now_ms, tz).date()

    if selection.mode == PeriodMode.TODAY:
        midnight = _midnight(today, tz)
        return PeriodWindow(
            mode=selection.mode,
            current=Interval(midnight, now_ms, closed=True),
            previous=Interval(_midnight(today - timedelta(days=1), tz), midnight),
            grain=BucketGrain.HOUR,
        )

    if selection.mode == PeriodMode.THIS_MONTH:
        first = today.replace(day=1)
        month_start = _midnight(first, tz)
        return PeriodWindow(
            mode=selection.mode,
            current=Interval(month_start, now_ms, closed=True),
            previous=Interval(_midnight(_first_of_previous_month(first), tz), month_start),
            grain=BucketGrain.DAY,
        )

    if selection.mode == PeriodMode.CUSTOM:
        start = _midnight(selection.start_date, tz)
        end = to_epoch_ms(
            datetime.combine(selection.end_date, time(23, 59, 59, 999000), tzinfo=tz)
        )
        current = Interval(start, end, closed=True)
        if current.is_empty:
            return PeriodWindow(selection.mode, current, None, BucketGrain.DAY)
        length = end - start + 1
        return PeriodWindow(
            mode=selection.mode,
            current=current,
            previous=Interval(start - length, start),
            grain=BucketGrain.DAY,
        )

    return PeriodWindow(
        mode=PeriodMode.ALL_TIME,
        current=Interval(None, None),
        previous=None,
        grain=BucketGrain.MONTH,
    )
