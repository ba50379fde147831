"""
Time-overlap conflict detection for a tutor's day.

This module is the only place that decides whether two time ranges on the
same tutor-day collide. Availability expansion checks candidates against
schedule entries; booking creation checks requested sessions against
booked sessions. Both go through ``find_collisions`` so they agree.
"""

import logging
from enum import Enum
from typing import Iterable, Protocol, TypeVar, Union

from tutor_scheduling.core.status import coerce_enum
from tutor_scheduling.core.time_slot import DateLike, TimeLike, TimeSlot, time_to_minutes
from tutor_scheduling.store.base import SchedulingStore

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"


class Occupied(Protocol):
    """Anything persisted with a date, a time range, and a status."""

    date: object
    start_time: str
    end_time: str
    status: object


R = TypeVar("R", bound=Occupied)


class ConflictSource(str, Enum):
    """Which rows a conflict check compares against."""

    BOOKINGS = "bookings"
    SCHEDULE = "schedule"


def ranges_collide(new_start: int, new_end: int, existing_start: int, existing_end: int) -> bool:
    """Three-way overlap test on minute-of-day integers.

    Equivalent to the half-open test ``new_start < existing_end and
    existing_start < new_end``; the explicit containment branch also
    covers a new range that swallows the existing one.
    """
    return (
        (existing_start <= new_start < existing_end)
        or (existing_start < new_end <= existing_end)
        or (new_start <= existing_start and new_end >= existing_end)
    )


def _status_value(status: object) -> str:
    return getattr(status, "value", status)


def find_collisions(candidate: TimeSlot, existing: Iterable[R]) -> list[R]:
    """Return the non-cancelled rows on the candidate's date that collide with it."""
    collisions = []
    for row in existing:
        if _status_value(row.status) == CANCELLED or row.date != candidate.date:
            continue
        if ranges_collide(
            candidate.start_minutes,
            candidate.end_minutes,
            time_to_minutes(row.start_time),
            time_to_minutes(row.end_time),
        ):
            collisions.append(row)
    return collisions


class ConflictDetector:
    """Loads a tutor's rows for one date and runs ``find_collisions`` on them."""

    def __init__(self, store: SchedulingStore) -> None:
        self._store = store

    def find_session_conflicts(self, tutor_id: int, slot: TimeSlot) -> list:
        sessions = self._store.find_active_sessions_for_tutor_on_date(tutor_id, slot.date)
        return find_collisions(slot, sessions)

    def find_schedule_conflicts(self, tutor_id: int, slot: TimeSlot) -> list:
        entries = self._store.find_schedule_entries_on_date(tutor_id, slot.date)
        return find_collisions(slot, entries)

    def has_conflict(
        self,
        tutor_id: int,
        on_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        against: Union[str, ConflictSource] = ConflictSource.BOOKINGS,
    ) -> bool:
        """True if any active row of ``against`` overlaps the given range."""
        slot = TimeSlot.build(on_date, start_time, end_time)
        against = coerce_enum(ConflictSource, against, field_name="against")
        if against == ConflictSource.SCHEDULE:
            found = self.find_schedule_conflicts(tutor_id, slot)
        else:
            found = self.find_session_conflicts(tutor_id, slot)
        logger.debug(
            "Conflict check for tutor %s on %s against %s: %d hit(s)",
            tutor_id, slot, against.value, len(found),
        )
        return bool(found)
