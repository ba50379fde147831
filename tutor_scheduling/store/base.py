"""
Data-access interface consumed by the scheduling core.

The core never builds queries. Anything that can answer these calls (an
ORM repository, an HTTP client to another service, the in-memory store
used by tests) can back the scheduling service.

Implementations must make ``transaction()`` a single serializable unit:
the conflict check and the insert of a booking happen inside one scope.
"""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Optional

from tutor_scheduling.core.errors import InternalError
from tutor_scheduling.core.status import BookingStatus, ScheduleStatus, SessionStatus
from tutor_scheduling.schemas.booking_schema import (
    BookingRequest,
    BookingSession,
    Course,
    SessionNote,
    TutorProfile,
)
from tutor_scheduling.schemas.scheduling_schema import ScheduleEntry


class StoreError(InternalError):
    """Raised by store implementations for storage failures."""


class DuplicateSessionError(StoreError):
    """An active session with the same tutor, date, and times already exists."""

    def __init__(self, message: str, existing: BookingSession) -> None:
        super().__init__(message, code="duplicate_session")
        self.existing = existing


class SchedulingStore(ABC):
    """Abstract data store for tutors, courses, schedules, and bookings."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager:
        """Return a context manager wrapping one atomic unit of work."""

    # --- Catalog ---

    @abstractmethod
    def get_tutor(self, tutor_id: int) -> Optional[TutorProfile]: ...

    @abstractmethod
    def get_course(self, course_id: int) -> Optional[Course]: ...

    @abstractmethod
    def update_tutor_rating(self, tutor_id: int, rating: Decimal) -> None: ...

    # --- Schedule entries ---

    @abstractmethod
    def add_schedule_entry(self, entry: ScheduleEntry) -> ScheduleEntry:
        """Persist a new entry and return it with its id assigned."""

    @abstractmethod
    def get_schedule_entry(self, entry_id: int) -> Optional[ScheduleEntry]: ...

    @abstractmethod
    def find_schedule_entries_on_date(self, tutor_id: int, on_date: date) -> list[ScheduleEntry]:
        """All entries of a tutor on one date, any status."""

    @abstractmethod
    def find_schedule_entries_between(
        self, tutor_id: int, start_date: Optional[date], end_date: Optional[date]
    ) -> list[ScheduleEntry]:
        """Entries of a tutor within an inclusive date range, ordered by date and start."""

    @abstractmethod
    def update_schedule_entry_status(self, entry_id: int, status: ScheduleStatus) -> ScheduleEntry: ...

    @abstractmethod
    def delete_schedule_entry(self, entry_id: int) -> None: ...

    # --- Bookings ---

    @abstractmethod
    def find_active_sessions_for_tutor_on_date(
        self, tutor_id: int, on_date: date
    ) -> list[BookingSession]:
        """Non-cancelled sessions of a tutor's bookings on one date."""

    @abstractmethod
    def insert_booking_with_sessions(
        self, request: BookingRequest, sessions: list[BookingSession]
    ) -> BookingRequest:
        """Insert a request and all its sessions as one unit.

        Raises DuplicateSessionError if an identical active session exists
        for the tutor.
        """

    @abstractmethod
    def get_booking_request(self, request_id: int) -> Optional[BookingRequest]:
        """Return the request with its sessions attached."""

    @abstractmethod
    def list_booking_requests(
        self,
        student_id: Optional[int] = None,
        tutor_id: Optional[int] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[BookingRequest]:
        """Requests matching all given filters, newest first."""

    @abstractmethod
    def update_booking_status(
        self, request_id: int, status: BookingStatus, rejection_reason: Optional[str] = None
    ) -> BookingRequest: ...

    @abstractmethod
    def get_booking_session(self, session_id: int) -> Optional[BookingSession]: ...

    @abstractmethod
    def list_sessions_for_request(self, request_id: int) -> list[BookingSession]: ...

    @abstractmethod
    def update_session_status(self, session_id: int, status: SessionStatus) -> BookingSession: ...

    # --- Session notes ---

    @abstractmethod
    def get_session_note(self, session_id: int) -> Optional[SessionNote]: ...

    @abstractmethod
    def save_session_note(self, note: SessionNote) -> SessionNote:
        """Insert or update the note for ``note.session_id``."""

    @abstractmethod
    def list_ratings_for_tutor(self, tutor_id: int) -> list[int]:
        """Every non-null student rating across the tutor's sessions."""
