"""
Date-bound time slots and wall-clock time helpers.

Times travel as zero-padded ``HH:MM`` strings but every comparison is done
on minute-of-day integers, so "9:00" and "09:00" are the same instant.
Slots never span midnight.

Usage:
    slot = TimeSlot.build("2025-06-02", "9:00", "11:00")
    slot.start_time        # "09:00"
    duration_hours(slot)   # Decimal("2")
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Union

from tutor_scheduling.core.errors import InvalidInputError

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
MINUTES_PER_HOUR = 60

TimeLike = Union[str, time]
DateLike = Union[str, date]


def normalize_time(value: TimeLike) -> str:
    """Return ``value`` as a zero-padded ``HH:MM`` string.

    Examples:
        >>> normalize_time("9:05")
        '09:05'
        >>> normalize_time(time(14, 30))
        '14:30'
    """
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if not isinstance(value, str) or not TIME_PATTERN.match(value.strip()):
        raise InvalidInputError(
            f"Invalid time format {value!r}. Use HH:MM", code="invalid_time"
        )
    hours, minutes = value.strip().split(":")
    return f"{int(hours):02d}:{minutes}"


def time_to_minutes(value: TimeLike) -> int:
    """Convert a wall-clock time to minutes since midnight."""
    hours, minutes = normalize_time(value).split(":")
    return int(hours) * MINUTES_PER_HOUR + int(minutes)


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // MINUTES_PER_HOUR:02d}:{minutes % MINUTES_PER_HOUR:02d}"


def parse_date(value: DateLike) -> date:
    """Parse a ``YYYY-MM-DD`` string (or pass a date through)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise InvalidInputError(
            f"Invalid date {value!r}. Use YYYY-MM-DD", code="invalid_date"
        ) from None


@dataclass(frozen=True)
class TimeSlot:
    """An immutable date + start/end wall-clock range."""

    date: date
    start_time: str
    end_time: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_time", normalize_time(self.start_time))
        object.__setattr__(self, "end_time", normalize_time(self.end_time))
        if self.end_minutes <= self.start_minutes:
            raise InvalidInputError(
                f"End time {self.end_time} must be after start time {self.start_time}",
                code="invalid_time_range",
            )

    @classmethod
    def build(cls, on_date: DateLike, start_time: TimeLike, end_time: TimeLike) -> "TimeSlot":
        return cls(date=parse_date(on_date), start_time=start_time, end_time=end_time)

    @property
    def start_minutes(self) -> int:
        return time_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return time_to_minutes(self.end_time)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.start_time}-{self.end_time}"


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    """Half-open overlap test; slots that only touch do not overlap."""
    return (
        a.date == b.date
        and a.start_minutes < b.end_minutes
        and b.start_minutes < a.end_minutes
    )


def duration_hours(slot: TimeSlot) -> Decimal:
    """Exact slot length in hours, e.g. ``Decimal("1.5")`` for 90 minutes."""
    return Decimal(slot.duration_minutes) / Decimal(MINUTES_PER_HOUR)
