"""
Availability expansion: tutor rules into concrete schedule entries.

A single rule creates one entry or fails with a conflict. A recurring rule
walks its date range in ascending order and creates one entry per selected
weekday window, skipping candidates that collide with existing entries.
Partial creation is the normal outcome for recurring rules.

Usage:
    expander = AvailabilityExpander(store)
    result = expander.expand(tutor_id=7, rule=parse_availability_rule(payload))
    result.created, result.skipped
"""

from datetime import date, datetime, timedelta, timezone
from itertools import groupby
from typing import Optional, Union

from tutor_scheduling.config import settings
from tutor_scheduling.core.conflicts import ConflictDetector
from tutor_scheduling.core.errors import ConflictError, InvalidInputError, NotFoundError
from tutor_scheduling.core.status import ScheduleStatus
from tutor_scheduling.core.time_slot import TimeSlot
from tutor_scheduling.logging_context import get_request_logger
from tutor_scheduling.schemas.booking_schema import ConflictDetail
from tutor_scheduling.schemas.scheduling_schema import (
    AvailabilityRule,
    DaySlots,
    ExpansionResult,
    OpenSlot,
    RecurringAvailabilityRule,
    ScheduleEntry,
    SingleAvailabilityRule,
    Weekday,
    parse_availability_rule,
)
from tutor_scheduling.store.base import SchedulingStore

logger = get_request_logger(__name__)


def iter_dates(start: date, end: date):
    """Yield every date from ``start`` to ``end`` inclusive, ascending."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def conflict_detail(index: int, slot: TimeSlot, existing) -> ConflictDetail:
    """Describe a collision between a requested slot and an existing row."""
    return ConflictDetail(
        requested_index=index,
        requested_date=slot.date,
        requested_start_time=slot.start_time,
        requested_end_time=slot.end_time,
        existing_id=existing.id,
        existing_date=existing.date,
        existing_start_time=existing.start_time,
        existing_end_time=existing.end_time,
    )


class AvailabilityExpander:
    """Creates and manages a tutor's advertised schedule entries."""

    def __init__(self, store: SchedulingStore, detector: Optional[ConflictDetector] = None) -> None:
        self._store = store
        self._detector = detector or ConflictDetector(store)

    # ------------------------------------------------------------------ #
    # Expansion
    # ------------------------------------------------------------------ #

    def expand(self, tutor_id: int, rule: Union[dict, AvailabilityRule]) -> ExpansionResult:
        """Expand a rule into schedule entries for ``tutor_id``.

        Raises:
            InvalidInputError: The rule is malformed or spans too many days.
            NotFoundError: The tutor or the referenced course does not exist,
                or the course belongs to another tutor.
            ConflictError: A single rule collides with an existing entry.
        """
        rule = parse_availability_rule(rule)
        self._check_ownership(tutor_id, rule.course_id)

        if isinstance(rule, SingleAvailabilityRule):
            return self._expand_single(tutor_id, rule)
        return self._expand_recurring(tutor_id, rule)

    def _check_ownership(self, tutor_id: int, course_id: Optional[int]) -> None:
        if self._store.get_tutor(tutor_id) is None:
            raise NotFoundError(f"Tutor {tutor_id} not found", code="tutor_not_found")
        if course_id is None:
            return
        course = self._store.get_course(course_id)
        if course is None or course.tutor_id != tutor_id:
            raise NotFoundError(
                f"Course {course_id} not found or does not belong to tutor {tutor_id}",
                code="course_not_found",
            )

    def _new_entry(self, tutor_id: int, rule, slot: TimeSlot, is_recurring: bool) -> ScheduleEntry:
        return ScheduleEntry(
            tutor_id=tutor_id,
            course_id=rule.course_id,
            date=slot.date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            mode=rule.mode,
            location=rule.location,
            is_recurring=is_recurring,
            status=ScheduleStatus.AVAILABLE,
        )

    def _expand_single(self, tutor_id: int, rule: SingleAvailabilityRule) -> ExpansionResult:
        slot = rule.slot()
        with self._store.transaction():
            collisions = self._detector.find_schedule_conflicts(tutor_id, slot)
            if collisions:
                logger.warning("Single availability %s for tutor %s conflicts", slot, tutor_id)
                raise ConflictError(
                    "You already have a schedule during this time.",
                    conflicts=[conflict_detail(0, slot, c) for c in collisions],
                    code="schedule_conflict",
                )
            entry = self._store.add_schedule_entry(self._new_entry(tutor_id, rule, slot, False))

        logger.info("Created schedule entry %s for tutor %s at %s", entry.id, tutor_id, slot)
        return ExpansionResult(created=[entry], skipped=0)

    def _expand_recurring(self, tutor_id: int, rule: RecurringAvailabilityRule) -> ExpansionResult:
        span = (rule.end_date - rule.start_date).days + 1
        limit = settings.scheduling.max_recurring_range_days
        if span > limit:
            raise InvalidInputError(
                f"Recurring range of {span} days exceeds the limit of {limit}",
                code="range_too_long",
            )

        windows = rule.windows_by_weekday()
        created: list[ScheduleEntry] = []
        skipped = 0

        for day in iter_dates(rule.start_date, rule.end_date):
            for window in windows.get(Weekday.of(day), []):
                slot = TimeSlot(date=day, start_time=window.start_time, end_time=window.end_time)
                with self._store.transaction():
                    if self._detector.find_schedule_conflicts(tutor_id, slot):
                        skipped += 1
                        logger.debug("Skipping %s for tutor %s: conflict", slot, tutor_id)
                        continue
                    created.append(
                        self._store.add_schedule_entry(self._new_entry(tutor_id, rule, slot, True))
                    )

        logger.info(
            "Recurring availability for tutor %s: %d created, %d skipped",
            tutor_id, len(created), skipped,
        )
        return ExpansionResult(created=created, skipped=skipped)

    # ------------------------------------------------------------------ #
    # Entry lifecycle
    # ------------------------------------------------------------------ #

    def _owned_entry(self, tutor_id: int, entry_id: int) -> ScheduleEntry:
        entry = self._store.get_schedule_entry(entry_id)
        if entry is None or entry.tutor_id != tutor_id:
            raise NotFoundError(
                f"Schedule entry {entry_id} not found for tutor {tutor_id}",
                code="entry_not_found",
            )
        return entry

    def cancel_entry(self, tutor_id: int, entry_id: int) -> ScheduleEntry:
        """Soft-cancel an entry the tutor owns. Booked entries stay put."""
        with self._store.transaction():
            entry = self._owned_entry(tutor_id, entry_id)
            if entry.status == ScheduleStatus.BOOKED:
                raise InvalidInputError(
                    "A booked schedule entry cannot be cancelled", code="entry_booked"
                )
            entry = self._store.update_schedule_entry_status(entry_id, ScheduleStatus.CANCELLED)
        logger.info("Cancelled schedule entry %s for tutor %s", entry_id, tutor_id)
        return entry

    def delete_entry(self, tutor_id: int, entry_id: int) -> None:
        """Hard-delete an entry; only cancelled entries may be removed."""
        with self._store.transaction():
            entry = self._owned_entry(tutor_id, entry_id)
            if entry.status != ScheduleStatus.CANCELLED:
                raise InvalidInputError(
                    "Only cancelled schedule entries can be deleted", code="entry_not_cancelled"
                )
            self._store.delete_schedule_entry(entry_id)
        logger.info("Deleted schedule entry %s for tutor %s", entry_id, tutor_id)

    # ------------------------------------------------------------------ #
    # Listings
    # ------------------------------------------------------------------ #

    def list_schedule(
        self, tutor_id: int, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> list[ScheduleEntry]:
        """All of a tutor's entries in range, ordered by date and start time."""
        return self._store.find_schedule_entries_between(tutor_id, start_date, end_date)

    def list_open_slots(
        self,
        tutor_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        course_id: Optional[int] = None,
        today: Optional[date] = None,
    ) -> list[DaySlots]:
        """Bookable slots grouped by date.

        The window starts no earlier than ``today`` and defaults to
        ``AVAILABILITY_WINDOW_DAYS`` ahead. Entries already covered by an
        active booking session are left out.
        """
        today = today or datetime.now(timezone.utc).date()
        window_start = max(start_date, today) if start_date else today
        window_end = end_date or today + timedelta(days=settings.scheduling.availability_window_days)

        open_entries = [
            e
            for e in self._store.find_schedule_entries_between(tutor_id, window_start, window_end)
            if e.status == ScheduleStatus.AVAILABLE
            and (course_id is None or e.course_id == course_id)
            and not self._detector.find_session_conflicts(tutor_id, e.slot())
        ]

        days = [
            DaySlots(
                date=day,
                time_slots=[
                    OpenSlot(id=e.id, start_time=e.start_time, end_time=e.end_time) for e in entries
                ],
            )
            for day, entries in groupby(open_entries, key=lambda e: e.date)
        ]
        logger.debug(
            "Open slots for tutor %s between %s and %s: %d day(s)",
            tutor_id, window_start, window_end, len(days),
        )
        return days

