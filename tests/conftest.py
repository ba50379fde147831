"""Shared test fixtures and helpers."""

from datetime import date
from decimal import Decimal
from typing import Optional

import pytest

from tutor_scheduling.core.conflicts import ConflictDetector
from tutor_scheduling.core.status import CourseMode
from tutor_scheduling.messaging import InMemoryConversationDirectory
from tutor_scheduling.schemas.booking_schema import BookingRequest, Course, TutorProfile
from tutor_scheduling.service import SchedulingService
from tutor_scheduling.store.memory import InMemoryStore

# 2030-06-03 is a Monday.
MONDAY = date(2030, 6, 3)
TODAY = date(2030, 6, 1)

TUTOR_ID = 1
TUTOR_USER_ID = 101
OTHER_TUTOR_ID = 2
OTHER_TUTOR_USER_ID = 202
STUDENT_ID = 501
OTHER_STUDENT_ID = 502

ONLINE_COURSE_ID = 10
BOTH_COURSE_ID = 11
OFFLINE_COURSE_ID = 12
OTHER_TUTOR_COURSE_ID = 20


@pytest.fixture
def store():
    store = InMemoryStore()
    store.add_tutor(TutorProfile(id=TUTOR_ID, user_id=TUTOR_USER_ID))
    store.add_tutor(TutorProfile(id=OTHER_TUTOR_ID, user_id=OTHER_TUTOR_USER_ID))
    store.add_course(Course(
        id=ONLINE_COURSE_ID, tutor_id=TUTOR_ID, title="Algebra",
        hourly_rate=Decimal("200000"), teaching_mode=CourseMode.ONLINE,
    ))
    store.add_course(Course(
        id=BOTH_COURSE_ID, tutor_id=TUTOR_ID, title="Physics",
        hourly_rate=Decimal("150000"), teaching_mode=CourseMode.BOTH,
    ))
    store.add_course(Course(
        id=OFFLINE_COURSE_ID, tutor_id=TUTOR_ID, title="Piano",
        hourly_rate=Decimal("300000"), teaching_mode=CourseMode.OFFLINE,
    ))
    store.add_course(Course(
        id=OTHER_TUTOR_COURSE_ID, tutor_id=OTHER_TUTOR_ID, title="Chemistry",
        hourly_rate=Decimal("100000"), teaching_mode=CourseMode.ONLINE,
    ))
    yield store
    store.reset()


@pytest.fixture
def conversations():
    directory = InMemoryConversationDirectory()
    yield directory
    directory.reset()


@pytest.fixture
def service(store, conversations):
    return SchedulingService(store, conversations)


@pytest.fixture
def detector(store):
    return ConflictDetector(store)


def make_session(
    start_time: str = "09:00",
    end_time: str = "11:00",
    on_date: date = MONDAY,
    schedule_entry_id: Optional[int] = None,
) -> dict:
    """Helper to create a raw session payload."""
    payload = {"date": on_date.isoformat(), "start_time": start_time, "end_time": end_time}
    if schedule_entry_id is not None:
        payload["schedule_entry_id"] = schedule_entry_id
    return payload


def make_single_rule(
    start_time: str = "09:00",
    end_time: str = "11:00",
    on_date: date = MONDAY,
    **overrides,
) -> dict:
    """Helper to create a raw single availability rule."""
    rule = {
        "is_recurring": False,
        "date": on_date.isoformat(),
        "start_time": start_time,
        "end_time": end_time,
    }
    rule.update(overrides)
    return rule


def make_recurring_rule(
    start_date: date = MONDAY,
    end_date: date = date(2030, 6, 17),
    repeat_days: Optional[list[str]] = None,
    start_time: Optional[str] = "09:00",
    end_time: Optional[str] = "11:00",
    **overrides,
) -> dict:
    """Helper to create a raw recurring availability rule with sensible defaults."""
    rule = {
        "is_recurring": True,
        "start_date": start_date.isoformat(),
        "end_date": end_date.isoformat(),
        "repeat_days": repeat_days if repeat_days is not None else ["monday"],
        "start_time": start_time,
        "end_time": end_time,
    }
    rule.update(overrides)
    return rule


def book(
    service: SchedulingService,
    sessions: Optional[list[dict]] = None,
    student_id: int = STUDENT_ID,
    course_id: int = ONLINE_COURSE_ID,
    mode: str = "online",
    **kwargs,
) -> BookingRequest:
    """Helper to create a booking with the default tutor."""
    return service.create_booking(
        student_id=student_id,
        tutor_id=TUTOR_ID,
        course_id=course_id,
        mode=mode,
        sessions=sessions or [make_session()],
        **kwargs,
    )
