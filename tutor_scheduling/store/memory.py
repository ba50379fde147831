"""
In-memory scheduling store.

Backs the test suite and the console demo. In production this would be a
repository over a relational database where ``transaction()`` opens a
serializable transaction and a partial unique index on
``(tutor_id, date, start_time, end_time)`` for active sessions acts as the
backstop against double booking.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Iterator, Optional

from tutor_scheduling.core.status import BookingStatus, ScheduleStatus, SessionStatus
from tutor_scheduling.schemas.booking_schema import (
    BookingRequest,
    BookingSession,
    Course,
    SessionNote,
    TutorProfile,
)
from tutor_scheduling.schemas.scheduling_schema import ScheduleEntry
from tutor_scheduling.store.base import DuplicateSessionError, SchedulingStore, StoreError

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryStore(SchedulingStore):
    """Thread-safe dict-backed store with snapshot rollback on failure."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self.reset()

    def reset(self) -> None:
        """Clear all records. Used by test fixtures for isolation."""
        with self._lock:
            self._tutors: dict[int, TutorProfile] = {}
            self._courses: dict[int, Course] = {}
            self._entries: dict[int, ScheduleEntry] = {}
            self._requests: dict[int, BookingRequest] = {}
            self._sessions: dict[int, BookingSession] = {}
            self._notes: dict[int, SessionNote] = {}
            self._ids: dict[str, int] = dict.fromkeys(("entry", "request", "session", "note"), 0)

    # ------------------------------------------------------------------ #
    # Transactions
    # ------------------------------------------------------------------ #

    def _snapshot(self) -> dict:
        return copy.deepcopy({
            "tutors": self._tutors,
            "courses": self._courses,
            "entries": self._entries,
            "requests": self._requests,
            "sessions": self._sessions,
            "notes": self._notes,
            "ids": self._ids,
        })

    def _restore(self, snapshot: dict) -> None:
        self._tutors = snapshot["tutors"]
        self._courses = snapshot["courses"]
        self._entries = snapshot["entries"]
        self._requests = snapshot["requests"]
        self._sessions = snapshot["sessions"]
        self._notes = snapshot["notes"]
        self._ids = snapshot["ids"]

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Serialize work under one lock; roll back everything on error."""
        with self._lock:
            outermost = self._depth == 0
            snapshot = self._snapshot() if outermost else None
            self._depth += 1
            try:
                yield
            except BaseException:
                if snapshot is not None:
                    self._restore(snapshot)
                    logger.debug("Transaction rolled back")
                raise
            finally:
                self._depth -= 1

    def _next_id(self, name: str) -> int:
        self._ids[name] += 1
        return self._ids[name]

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    def add_tutor(self, tutor: TutorProfile) -> TutorProfile:
        with self._lock:
            self._tutors[tutor.id] = tutor.model_copy(deep=True)
            return tutor

    def add_course(self, course: Course) -> Course:
        with self._lock:
            self._courses[course.id] = course.model_copy(deep=True)
            return course

    def get_tutor(self, tutor_id: int) -> Optional[TutorProfile]:
        with self._lock:
            tutor = self._tutors.get(tutor_id)
            return tutor.model_copy(deep=True) if tutor else None

    def get_course(self, course_id: int) -> Optional[Course]:
        with self._lock:
            course = self._courses.get(course_id)
            return course.model_copy(deep=True) if course else None

    def update_tutor_rating(self, tutor_id: int, rating: Decimal) -> None:
        with self._lock:
            if tutor_id not in self._tutors:
                raise StoreError(f"Tutor {tutor_id} does not exist", code="missing_row")
            self._tutors[tutor_id].rating = rating

    # ------------------------------------------------------------------ #
    # Schedule entries
    # ------------------------------------------------------------------ #

    def add_schedule_entry(self, entry: ScheduleEntry) -> ScheduleEntry:
        with self._lock:
            stored = entry.model_copy(deep=True, update={"id": self._next_id("entry")})
            self._entries[stored.id] = stored
            return stored.model_copy(deep=True)

    def get_schedule_entry(self, entry_id: int) -> Optional[ScheduleEntry]:
        with self._lock:
            entry = self._entries.get(entry_id)
            return entry.model_copy(deep=True) if entry else None

    def find_schedule_entries_on_date(self, tutor_id: int, on_date: date) -> list[ScheduleEntry]:
        with self._lock:
            return [
                e.model_copy(deep=True)
                for e in self._entries.values()
                if e.tutor_id == tutor_id and e.date == on_date
            ]

    def find_schedule_entries_between(
        self, tutor_id: int, start_date: Optional[date], end_date: Optional[date]
    ) -> list[ScheduleEntry]:
        with self._lock:
            found = [
                e.model_copy(deep=True)
                for e in self._entries.values()
                if e.tutor_id == tutor_id
                and (start_date is None or e.date >= start_date)
                and (end_date is None or e.date <= end_date)
            ]
        return sorted(found, key=lambda e: (e.date, e.slot().start_minutes))

    def update_schedule_entry_status(self, entry_id: int, status: ScheduleStatus) -> ScheduleEntry:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                raise StoreError(f"Schedule entry {entry_id} does not exist", code="missing_row")
            entry.status = status
            entry.updated_at = _now()
            return entry.model_copy(deep=True)

    def delete_schedule_entry(self, entry_id: int) -> None:
        with self._lock:
            if self._entries.pop(entry_id, None) is None:
                raise StoreError(f"Schedule entry {entry_id} does not exist", code="missing_row")

    # ------------------------------------------------------------------ #
    # Bookings
    # ------------------------------------------------------------------ #

    def _tutor_of_session(self, session: BookingSession) -> Optional[int]:
        request = self._requests.get(session.request_id)
        return request.tutor_id if request else None

    def find_active_sessions_for_tutor_on_date(
        self, tutor_id: int, on_date: date
    ) -> list[BookingSession]:
        with self._lock:
            return [
                s.model_copy(deep=True)
                for s in self._sessions.values()
                if s.date == on_date
                and s.status != SessionStatus.CANCELLED
                and self._tutor_of_session(s) == tutor_id
            ]

    def insert_booking_with_sessions(
        self, request: BookingRequest, sessions: list[BookingSession]
    ) -> BookingRequest:
        with self._lock:
            for new in sessions:
                for existing in self.find_active_sessions_for_tutor_on_date(request.tutor_id, new.date):
                    if (existing.start_time, existing.end_time) == (new.start_time, new.end_time):
                        raise DuplicateSessionError(
                            f"Tutor {request.tutor_id} already has an active session "
                            f"on {new.date} {new.start_time}-{new.end_time}",
                            existing=existing,
                        )

            request_id = self._next_id("request")
            stored = request.model_copy(deep=True, update={"id": request_id, "sessions": []})
            self._requests[request_id] = stored
            for session in sessions:
                session_id = self._next_id("session")
                self._sessions[session_id] = session.model_copy(
                    deep=True, update={"id": session_id, "request_id": request_id}
                )
            return self._with_sessions(stored)

    def _with_sessions(self, request: BookingRequest) -> BookingRequest:
        sessions = sorted(
            (s for s in self._sessions.values() if s.request_id == request.id),
            key=lambda s: s.id,
        )
        return request.model_copy(deep=True, update={"sessions": copy.deepcopy(sessions)})

    def get_booking_request(self, request_id: int) -> Optional[BookingRequest]:
        with self._lock:
            request = self._requests.get(request_id)
            return self._with_sessions(request) if request else None

    def list_booking_requests(
        self,
        student_id: Optional[int] = None,
        tutor_id: Optional[int] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[BookingRequest]:
        with self._lock:
            found = [
                self._with_sessions(r)
                for r in self._requests.values()
                if (student_id is None or r.student_id == student_id)
                and (tutor_id is None or r.tutor_id == tutor_id)
                and (status is None or r.status == status)
            ]
        return sorted(found, key=lambda r: (r.created_at, r.id), reverse=True)

    def update_booking_status(
        self, request_id: int, status: BookingStatus, rejection_reason: Optional[str] = None
    ) -> BookingRequest:
        with self._lock:
            request = self._requests.get(request_id)
            if request is None:
                raise StoreError(f"Booking request {request_id} does not exist", code="missing_row")
            request.status = status
            if rejection_reason is not None:
                request.rejection_reason = rejection_reason
            request.updated_at = _now()
            return self._with_sessions(request)

    def get_booking_session(self, session_id: int) -> Optional[BookingSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def list_sessions_for_request(self, request_id: int) -> list[BookingSession]:
        with self._lock:
            return sorted(
                (s.model_copy(deep=True) for s in self._sessions.values() if s.request_id == request_id),
                key=lambda s: s.id,
            )

    def update_session_status(self, session_id: int, status: SessionStatus) -> BookingSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise StoreError(f"Booking session {session_id} does not exist", code="missing_row")
            session.status = status
            session.updated_at = _now()
            return session.model_copy(deep=True)

    # ------------------------------------------------------------------ #
    # Session notes
    # ------------------------------------------------------------------ #

    def get_session_note(self, session_id: int) -> Optional[SessionNote]:
        with self._lock:
            note = self._notes.get(session_id)
            return note.model_copy(deep=True) if note else None

    def save_session_note(self, note: SessionNote) -> SessionNote:
        with self._lock:
            existing = self._notes.get(note.session_id)
            note_id = existing.id if existing else self._next_id("note")
            stored = note.model_copy(deep=True, update={"id": note_id, "updated_at": _now()})
            self._notes[note.session_id] = stored
            return stored.model_copy(deep=True)

    def list_ratings_for_tutor(self, tutor_id: int) -> list[int]:
        with self._lock:
            return [
                note.student_rating
                for note in self._notes.values()
                if note.student_rating is not None
                and note.session_id in self._sessions
                and self._tutor_of_session(self._sessions[note.session_id]) == tutor_id
            ]
