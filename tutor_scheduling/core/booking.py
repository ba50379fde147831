"""
Booking orchestration: validate and atomically persist multi-session requests.

A booking is all-or-nothing. Either the request and every one of its
sessions are stored, or nothing is. The conflict check and the insert run
inside a single store transaction so two concurrent checkouts for the same
tutor cannot both pass the check.

Usage:
    orchestrator = BookingOrchestrator(store)
    request = orchestrator.create_booking(
        student_id=42, tutor_id=1, course_id=10, mode="online",
        sessions=[{"date": "2025-06-02", "start_time": "09:00", "end_time": "11:00"}],
    )
"""

from decimal import Decimal
from typing import Optional, Union

from pydantic import ValidationError

from tutor_scheduling.config import settings
from tutor_scheduling.core.availability import conflict_detail
from tutor_scheduling.core.conflicts import ConflictDetector, find_collisions
from tutor_scheduling.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
)
from tutor_scheduling.core.status import (
    ActorRole,
    BookingStatus,
    ScheduleStatus,
    SessionStatus,
    TeachingMode,
    coerce_enum,
)
from tutor_scheduling.core.time_slot import MINUTES_PER_HOUR, TimeSlot, duration_hours
from tutor_scheduling.logging_context import get_request_logger
from tutor_scheduling.schemas.booking_schema import (
    BookingRequest,
    BookingSession,
    ConflictDetail,
    Course,
    SessionRequest,
    TutorProfile,
)
from tutor_scheduling.schemas.scheduling_schema import invalid_input_from
from tutor_scheduling.store.base import DuplicateSessionError, SchedulingStore
from tutor_scheduling.utils import clean_text, quantize

logger = get_request_logger(__name__)


def parse_session_requests(sessions: list[Union[dict, SessionRequest]]) -> list[SessionRequest]:
    """Validate raw session payloads, keeping their order."""
    if not sessions:
        raise InvalidInputError("At least one session is required", code="no_sessions")
    limit = settings.booking.max_sessions_per_booking
    if len(sessions) > limit:
        raise InvalidInputError(
            f"A booking may contain at most {limit} sessions, got {len(sessions)}",
            code="too_many_sessions",
        )

    parsed = []
    for item in sessions:
        if isinstance(item, SessionRequest):
            parsed.append(item)
            continue
        try:
            parsed.append(SessionRequest.model_validate(item))
        except ValidationError as exc:
            raise invalid_input_from(exc) from None
    return parsed


def session_amount(hourly_rate: Decimal, slot: TimeSlot) -> Decimal:
    """Unrounded price of one slot: ``rate * minutes / 60``."""
    return hourly_rate * Decimal(slot.duration_minutes) / Decimal(MINUTES_PER_HOUR)


def price_sessions(hourly_rate: Decimal, slots: list[TimeSlot]) -> tuple[Decimal, Decimal]:
    """Return ``(total_hours, total_amount)``, rounded once at the end."""
    hours = sum((duration_hours(s) for s in slots), Decimal(0))
    amount = sum((session_amount(hourly_rate, s) for s in slots), Decimal(0))
    return (
        quantize(hours, settings.booking.hours_decimal_places),
        quantize(amount, settings.booking.amount_decimal_places),
    )


class _Pending:
    """Adapts a TimeSlot to the row shape ``find_collisions`` reads."""

    status = SessionStatus.PENDING

    def __init__(self, slot: TimeSlot) -> None:
        self.date = slot.date
        self.start_time = slot.start_time
        self.end_time = slot.end_time


def batch_conflicts(slots: list[TimeSlot]) -> list[ConflictDetail]:
    """Collisions between slots of the same request, reported on the later one."""
    details = []
    for index, slot in enumerate(slots):
        for earlier in find_collisions(slot, [_Pending(s) for s in slots[:index]]):
            details.append(ConflictDetail(
                requested_index=index,
                requested_date=slot.date,
                requested_start_time=slot.start_time,
                requested_end_time=slot.end_time,
                existing_id=None,
                existing_date=earlier.date,
                existing_start_time=earlier.start_time,
                existing_end_time=earlier.end_time,
            ))
    return details


class BookingOrchestrator:
    """Creates booking requests and serves party-scoped booking lookups."""

    def __init__(self, store: SchedulingStore, detector: Optional[ConflictDetector] = None) -> None:
        self._store = store
        self._detector = detector or ConflictDetector(store)

    def create_booking(
        self,
        student_id: int,
        tutor_id: int,
        course_id: int,
        mode: Union[str, TeachingMode],
        sessions: list[Union[dict, SessionRequest]],
        location: Optional[str] = None,
        note: Optional[str] = None,
    ) -> BookingRequest:
        """Validate, price, conflict-check, and persist a booking request.

        Raises:
            InvalidInputError: Bad sessions, mode, or missing location, or a
                session outside the schedule entry it references.
            NotFoundError: Unknown tutor, course, or schedule entry.
            ConflictError: Any requested session collides with an active
                session of the tutor or with another requested session, or
                references an entry that is no longer available.
        """
        mode = coerce_enum(TeachingMode, mode, field_name="mode")
        requested = parse_session_requests(sessions)
        slots = [r.slot() for r in requested]

        tutor = self._require_tutor(tutor_id)
        course = self._require_course(course_id, tutor.id)

        if not course.teaching_mode.accepts(mode):
            raise InvalidInputError(
                f"Course {course.id} does not support {mode.value} teaching",
                code="incompatible_mode",
            )

        location = clean_text(location)
        if mode == TeachingMode.OFFLINE and location is None:
            raise InvalidInputError(
                "A location is required for offline lessons", code="missing_location"
            )
        if mode == TeachingMode.ONLINE:
            location = None

        total_hours, total_amount = price_sessions(course.hourly_rate, slots)

        with self._store.transaction():
            conflicts = self._existing_conflicts(tutor.id, slots) + batch_conflicts(slots)
            if conflicts:
                logger.warning(
                    "Booking for tutor %s rejected: %d conflicting session(s)",
                    tutor.id, len(conflicts),
                )
                raise ConflictError(
                    "One or more sessions conflict with existing bookings",
                    conflicts=conflicts,
                    code="booking_conflict",
                )

            entry_ids = self._require_entries(tutor.id, requested)

            request = BookingRequest(
                student_id=student_id,
                tutor_id=tutor.id,
                course_id=course.id,
                mode=mode,
                location=location,
                note=clean_text(note),
                hourly_rate=course.hourly_rate,
                total_hours=total_hours,
                total_amount=total_amount,
                status=BookingStatus.PENDING,
            )
            rows = [
                BookingSession(
                    date=r.date,
                    start_time=r.start_time,
                    end_time=r.end_time,
                    status=SessionStatus.PENDING,
                    schedule_entry_id=r.schedule_entry_id,
                )
                for r in requested
            ]
            try:
                created = self._store.insert_booking_with_sessions(request, rows)
            except DuplicateSessionError as exc:
                logger.warning("Duplicate session backstop hit for tutor %s: %s", tutor.id, exc)
                raise ConflictError(
                    "One or more sessions conflict with existing bookings",
                    conflicts=[self._duplicate_detail(slots, exc.existing)],
                    code="booking_conflict",
                ) from exc

            self._mark_entries_booked(entry_ids)

        logger.info(
            "Booking %s created for student %s with tutor %s: %d session(s), %s hours, amount %s",
            created.id, student_id, tutor.id, len(created.sessions), total_hours, total_amount,
        )
        return created

    def _require_tutor(self, tutor_id: int) -> TutorProfile:
        tutor = self._store.get_tutor(tutor_id)
        if tutor is None:
            raise NotFoundError(f"Tutor {tutor_id} not found", code="tutor_not_found")
        return tutor

    def _require_course(self, course_id: int, tutor_id: int) -> Course:
        course = self._store.get_course(course_id)
        if course is None or course.tutor_id != tutor_id:
            raise NotFoundError(
                f"Course {course_id} not found or does not belong to tutor {tutor_id}",
                code="course_not_found",
            )
        return course

    def _existing_conflicts(self, tutor_id: int, slots: list[TimeSlot]) -> list[ConflictDetail]:
        details = []
        for index, slot in enumerate(slots):
            for existing in self._detector.find_session_conflicts(tutor_id, slot):
                details.append(ConflictDetail(
                    requested_index=index,
                    requested_date=slot.date,
                    requested_start_time=slot.start_time,
                    requested_end_time=slot.end_time,
                    existing_id=existing.id,
                    existing_date=existing.date,
                    existing_start_time=existing.start_time,
                    existing_end_time=existing.end_time,
                ))
        return details

    @staticmethod
    def _duplicate_detail(slots: list[TimeSlot], existing: BookingSession) -> ConflictDetail:
        index = next(
            (
                i for i, s in enumerate(slots)
                if (s.date, s.start_time, s.end_time)
                == (existing.date, existing.start_time, existing.end_time)
            ),
            0,
        )
        slot = slots[index]
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

    def _require_entries(self, tutor_id: int, requested: list[SessionRequest]) -> list[int]:
        """Check every referenced schedule entry can take its session.

        The entry must belong to the tutor, still be available, and cover the
        session's date and time range. Each entry backs at most one session.
        """
        entry_ids: list[int] = []
        for index, item in enumerate(requested):
            if item.schedule_entry_id is None:
                continue
            if item.schedule_entry_id in entry_ids:
                raise InvalidInputError(
                    f"Schedule entry {item.schedule_entry_id} is referenced by more than one session",
                    code="duplicate_entry_reference",
                )
            entry = self._store.get_schedule_entry(item.schedule_entry_id)
            if entry is None or entry.tutor_id != tutor_id:
                raise NotFoundError(
                    f"Schedule entry {item.schedule_entry_id} not found for tutor {tutor_id}",
                    code="entry_not_found",
                )
            slot = item.slot()
            if entry.status != ScheduleStatus.AVAILABLE:
                raise ConflictError(
                    f"Schedule entry {entry.id} is {entry.status.value}, not available",
                    conflicts=[conflict_detail(index, slot, entry)],
                    code="entry_unavailable",
                )
            covered = entry.slot()
            if not (
                slot.date == covered.date
                and covered.start_minutes <= slot.start_minutes
                and slot.end_minutes <= covered.end_minutes
            ):
                raise InvalidInputError(
                    f"Session {slot} lies outside schedule entry {entry.id} ({covered})",
                    code="entry_slot_mismatch",
                )
            entry_ids.append(entry.id)
        return entry_ids

    def _mark_entries_booked(self, entry_ids: list[int]) -> None:
        for entry_id in entry_ids:
            self._store.update_schedule_entry_status(entry_id, ScheduleStatus.BOOKED)
            logger.debug("Schedule entry %s marked booked", entry_id)

    # ------------------------------------------------------------------ #
    # Lookups
    # ------------------------------------------------------------------ #

    def get_booking(
        self, request_id: int, actor_id: int, actor_role: Union[str, ActorRole]
    ) -> BookingRequest:
        """Return a request with its sessions if the actor is a party to it."""
        role = coerce_enum(ActorRole, actor_role, field_name="role")
        request = self._store.get_booking_request(request_id)
        if request is None:
            raise NotFoundError(f"Booking {request_id} not found", code="booking_not_found")
        ensure_party(self._store, request, actor_id, role)
        return request

    def list_student_bookings(
        self, student_id: int, status: Union[str, BookingStatus, None] = None
    ) -> list[BookingRequest]:
        return self._store.list_booking_requests(
            student_id=student_id, status=_status_filter(status)
        )

    def list_tutor_bookings(
        self, tutor_id: int, status: Union[str, BookingStatus, None] = None
    ) -> list[BookingRequest]:
        return self._store.list_booking_requests(
            tutor_id=tutor_id, status=_status_filter(status)
        )


def _status_filter(status: Union[str, BookingStatus, None]) -> Optional[BookingStatus]:
    if status is None or status == "all":
        return None
    return coerce_enum(BookingStatus, status)


def ensure_party(
    store: SchedulingStore, request: BookingRequest, actor_id: int, role: ActorRole
) -> None:
    """Raise ForbiddenError unless the actor is the request's student or tutor.

    Students are matched on ``student_id``. Tutors are matched on the user id
    of the tutor profile, never on the profile id.
    """
    if role == ActorRole.STUDENT:
        allowed = request.student_id == actor_id
    else:
        tutor = store.get_tutor(request.tutor_id)
        allowed = tutor is not None and tutor.user_id == actor_id
    if not allowed:
        logger.warning(
            "Actor %s (%s) denied access to booking %s", actor_id, role.value, request.id
        )
        raise ForbiddenError(
            f"You do not have access to booking {request.id}", code="not_a_party"
        )
