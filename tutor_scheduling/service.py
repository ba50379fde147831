"""
Scheduling service facade.

Wires the availability expander, conflict detector, booking orchestrator,
status propagator, and session notes over one store. Every public call
gets a fresh correlation id unless the caller already set one, so the log
lines of a single operation can be grouped.

Usage:
    service = SchedulingService(InMemoryStore(), InMemoryConversationDirectory())
    service.expand_availability(1, {"is_recurring": False, "date": "2025-06-02",
                                    "start_time": "09:00", "end_time": "11:00"})
"""

import functools
from datetime import date
from typing import Optional, Union

from tutor_scheduling.core.availability import AvailabilityExpander
from tutor_scheduling.core.booking import BookingOrchestrator
from tutor_scheduling.core.conflicts import ConflictDetector, ConflictSource
from tutor_scheduling.core.notes import SessionNotesService
from tutor_scheduling.core.propagation import StatusPropagator
from tutor_scheduling.core.status import ActorRole, BookingStatus, SessionStatus, TeachingMode
from tutor_scheduling.core.time_slot import DateLike, TimeLike, parse_date
from tutor_scheduling.logging_context import (
    NO_REQUEST_ID,
    get_request_id,
    get_request_logger,
    request_scope,
)
from tutor_scheduling.messaging import ConversationGateway
from tutor_scheduling.schemas.booking_schema import (
    BookingRequest,
    BookingSession,
    SessionNote,
    SessionRequest,
)
from tutor_scheduling.schemas.scheduling_schema import (
    AvailabilityRule,
    DaySlots,
    ExpansionResult,
    ScheduleEntry,
)
from tutor_scheduling.store.base import SchedulingStore

logger = get_request_logger(__name__)


def traced(func):
    """Assign a correlation id for the duration of the call if none is set."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if get_request_id() != NO_REQUEST_ID:
            return func(*args, **kwargs)
        with request_scope() as request_id:
            logger.debug("%s started under %s", func.__name__, request_id)
            return func(*args, **kwargs)

    return wrapper


def _optional_date(value: Optional[DateLike]) -> Optional[date]:
    return None if value is None else parse_date(value)


class SchedulingService:
    """Public entry point for the scheduling core."""

    def __init__(self, store: SchedulingStore, conversations: Optional[ConversationGateway] = None) -> None:
        self.store = store
        self.detector = ConflictDetector(store)
        self.availability = AvailabilityExpander(store, self.detector)
        self.bookings = BookingOrchestrator(store, self.detector)
        self.propagator = StatusPropagator(store, conversations)
        self.notes = SessionNotesService(store)

    # --- Availability ---

    @traced
    def expand_availability(self, tutor_id: int, rule: Union[dict, AvailabilityRule]) -> ExpansionResult:
        return self.availability.expand(tutor_id, rule)

    @traced
    def cancel_schedule_entry(self, tutor_id: int, entry_id: int) -> ScheduleEntry:
        return self.availability.cancel_entry(tutor_id, entry_id)

    @traced
    def delete_schedule_entry(self, tutor_id: int, entry_id: int) -> None:
        self.availability.delete_entry(tutor_id, entry_id)

    @traced
    def list_tutor_schedule(
        self,
        tutor_id: int,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
    ) -> list[ScheduleEntry]:
        return self.availability.list_schedule(
            tutor_id, _optional_date(start_date), _optional_date(end_date)
        )

    @traced
    def list_available_slots(
        self,
        tutor_id: int,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        course_id: Optional[int] = None,
        today: Optional[DateLike] = None,
    ) -> list[DaySlots]:
        return self.availability.list_open_slots(
            tutor_id,
            start_date=_optional_date(start_date),
            end_date=_optional_date(end_date),
            course_id=course_id,
            today=_optional_date(today),
        )

    # --- Conflicts ---

    @traced
    def has_conflict(
        self,
        tutor_id: int,
        on_date: DateLike,
        start_time: TimeLike,
        end_time: TimeLike,
        against: Union[str, ConflictSource] = ConflictSource.BOOKINGS,
    ) -> bool:
        return self.detector.has_conflict(tutor_id, on_date, start_time, end_time, against)

    # --- Bookings ---

    @traced
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
        return self.bookings.create_booking(
            student_id, tutor_id, course_id, mode, sessions, location=location, note=note
        )

    @traced
    def get_booking(self, request_id: int, actor_id: int, actor_role: Union[str, ActorRole]) -> BookingRequest:
        return self.bookings.get_booking(request_id, actor_id, actor_role)

    @traced
    def list_student_bookings(
        self, student_id: int, status: Union[str, BookingStatus, None] = None
    ) -> list[BookingRequest]:
        return self.bookings.list_student_bookings(student_id, status)

    @traced
    def list_tutor_bookings(
        self, tutor_id: int, status: Union[str, BookingStatus, None] = None
    ) -> list[BookingRequest]:
        return self.bookings.list_tutor_bookings(tutor_id, status)

    # --- Status ---

    @traced
    def set_booking_status(
        self,
        request_id: int,
        status: Union[str, BookingStatus],
        actor_role: Union[str, ActorRole],
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> BookingRequest:
        return self.propagator.set_booking_status(
            request_id, status, actor_role, actor_id=actor_id, reason=reason
        )

    @traced
    def set_session_status(
        self,
        session_id: int,
        status: Union[str, SessionStatus],
        actor_role: Union[str, ActorRole],
        actor_id: Optional[int] = None,
    ) -> BookingSession:
        return self.propagator.set_session_status(session_id, status, actor_role, actor_id=actor_id)

    # --- Notes ---

    @traced
    def add_session_note(
        self,
        session_id: int,
        actor_role: Union[str, ActorRole],
        tutor_notes: Optional[str] = None,
        student_rating: Optional[int] = None,
        student_feedback: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> SessionNote:
        return self.notes.add_session_note(
            session_id,
            actor_role,
            tutor_notes=tutor_notes,
            student_rating=student_rating,
            student_feedback=student_feedback,
            actor_id=actor_id,
        )
