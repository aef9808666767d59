"""Recurrence intervals: a length and a unit applied to an anchor datetime."""

import calendar as cal
from dataclasses import dataclass
from datetime import datetime, timedelta

from recurring.models.line_item import IntervalUnits


def _add_months(dt: datetime, months: int) -> datetime:
    """Add months to a datetime, clamping to last day of month."""
    month = dt.month - 1 + months
    year = dt.year + month // 12
    month = month % 12 + 1
    max_day = cal.monthrange(year, month)[1]
    day = min(dt.day, max_day)
    return dt.replace(year=year, month=month, day=day)


@dataclass(frozen=True)
class Interval:
    """A recurrence interval such as "2 weeks" or "1 month"."""

    length: int
    units: str

    def __post_init__(self) -> None:
        if self.length <= 0:
            raise ValueError(f"Interval length must be positive, got {self.length}")
        if self.units not in {unit.value for unit in IntervalUnits}:
            raise ValueError(f"Unknown interval unit: {self.units}")

    @classmethod
    def of(cls, length: int | None, units: str | IntervalUnits | None) -> "Interval | None":
        """Build an interval, or None when either part is missing."""
        if length is None or units is None:
            return None
        if isinstance(units, IntervalUnits):
            units = units.value
        return cls(int(length), str(units))

    def after(self, anchor: datetime) -> datetime:
        """Return anchor shifted forward by this interval."""
        if self.units == IntervalUnits.DAY.value:
            return anchor + timedelta(days=self.length)
        elif self.units == IntervalUnits.WEEK.value:
            return anchor + timedelta(weeks=self.length)
        elif self.units == IntervalUnits.MONTH.value:
            return _add_months(anchor, self.length)
        elif self.units == IntervalUnits.YEAR.value:
            return _add_months(anchor, 12 * self.length)
        raise ValueError(f"Unknown interval unit: {self.units}")

    def from_now(self, now: datetime) -> datetime:
        return self.after(now)

    def __str__(self) -> str:
        suffix = "" if self.length == 1 else "s"
        return f"{self.length} {self.units}{suffix}"


def shortest_interval(intervals: list[Interval], reference: datetime) -> Interval | None:
    """Pick the interval that lands earliest after reference.

    Months and days are not directly comparable, so intervals are compared by
    where they land from a common reference. Ties keep the first one given.
    """
    if not intervals:
        return None
    return min(intervals, key=lambda interval: interval.after(reference))
