"""Booking, session, note, and catalog data models."""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from tutor_scheduling.core.status import BookingStatus, CourseMode, SessionStatus, TeachingMode
from tutor_scheduling.core.time_slot import TimeSlot, normalize_time


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TutorProfile(BaseModel):
    """Tutor profile record; ``id`` is the profile id, never the user id."""
    id: int
    user_id: int
    rating: Optional[Decimal] = None


class Course(BaseModel):
    """A course offered by a tutor."""
    id: int
    tutor_id: int
    title: str = ""
    hourly_rate: Decimal
    teaching_mode: CourseMode = CourseMode.ONLINE


class SessionRequest(BaseModel):
    """One lesson slot a student asks to book."""
    date: date
    start_time: str
    end_time: str
    schedule_entry_id: Optional[int] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_times(cls, value: Any) -> str:
        return normalize_time(value)

    def slot(self) -> TimeSlot:
        return TimeSlot(date=self.date, start_time=self.start_time, end_time=self.end_time)


class BookingSession(BaseModel):
    """A committed lesson instance belonging to one booking request."""
    id: Optional[int] = None
    request_id: Optional[int] = None
    date: date
    start_time: str
    end_time: str
    status: SessionStatus = SessionStatus.PENDING
    schedule_entry_id: Optional[int] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def slot(self) -> TimeSlot:
        return TimeSlot(date=self.date, start_time=self.start_time, end_time=self.end_time)


class BookingRequest(BaseModel):
    """Aggregate root for a student's checkout of one or more sessions."""
    id: Optional[int] = None
    student_id: int
    tutor_id: int
    course_id: int
    mode: TeachingMode
    location: Optional[str] = None
    note: Optional[str] = None
    hourly_rate: Decimal
    total_hours: Decimal
    total_amount: Decimal
    status: BookingStatus = BookingStatus.PENDING
    rejection_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    sessions: list[BookingSession] = Field(default_factory=list)


class SessionNote(BaseModel):
    """Tutor notes and student rating for a single session."""
    id: Optional[int] = None
    session_id: int
    tutor_notes: Optional[str] = None
    student_rating: Optional[int] = Field(default=None, ge=1, le=5)
    student_feedback: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ConflictDetail(BaseModel):
    """Which requested slot collided with which existing commitment.

    ``existing_id`` is None when the collision is with another slot of the
    same request.
    """
    requested_index: int
    requested_date: date
    requested_start_time: str
    requested_end_time: str
    existing_id: Optional[int] = None
    existing_date: date
    existing_start_time: str
    existing_end_time: str
