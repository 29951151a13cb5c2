from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Sequence

from .errors import ValidationError

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d")


@dataclass(frozen=True)
class Interval:
    """Half-open stay range [start, end): the guest checks out on ``end``."""

    start: date
    end: date

    def overlaps(self, other: "Interval") -> bool:
        return overlaps(self, other)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def overlaps(a: Interval, b: Interval) -> bool:
    """Return True when two stays share at least one night.

    Intervals are treated as half-open ranges: [start, end)
    so touching boundaries (checkout on the 5th, check-in on the 5th) do not overlap.
    """
    return a.start < b.end and b.start < a.end


def is_valid_interval(interval: Interval) -> bool:
    return _is_calendar_date(interval.start) and _is_calendar_date(interval.end) and interval.start < interval.end


def parse_date(value: Any, field: str | None = None) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Invalid date: {value!r}", field=field)

    text = value.strip()
    for date_format in _DATE_FORMATS:
        try:
            return datetime.strptime(text, date_format).date()
        except ValueError:
            continue
    raise ValidationError(f"Invalid date: {value!r}", field=field)


def parse_interval(start: Any, end: Any) -> Interval:
    """Build a validated interval from dates or ``YYYY-MM-DD`` strings."""
    interval = Interval(parse_date(start, "start"), parse_date(end, "end"))
    if not is_valid_interval(interval):
        raise ValidationError("endDate cannot be on or before startDate", field="end")
    return interval


def coerce_interval(value: Interval | Sequence[Any]) -> Interval:
    if isinstance(value, Interval):
        if not is_valid_interval(value):
            raise ValidationError("endDate cannot be on or before startDate", field="end")
        return value
    if not isinstance(value, (tuple, list)) or len(value) != 2:
        raise ValidationError("interval must be a (start, end) pair")
    start, end = value
    return parse_interval(start, end)


def _is_calendar_date(value: Any) -> bool:
    return isinstance(value, date) and not isinstance(value, datetime)
