"""
Offline console demo for the scheduling core.

Seeds an in-memory store with one tutor and two courses, then walks a
scenario through the real expander, orchestrator, and propagator. No
database and no network calls.

Usage:
    python main.py
    python main.py --scenario conflict
    python main.py --scenario lifecycle
"""

import argparse
import sys
from datetime import date, timedelta
from decimal import Decimal

from tutor_scheduling.config import settings
from tutor_scheduling.core.errors import SchedulingError
from tutor_scheduling.core.status import CourseMode
from tutor_scheduling.messaging import InMemoryConversationDirectory
from tutor_scheduling.schemas.booking_schema import Course, TutorProfile
from tutor_scheduling.service import SchedulingService
from tutor_scheduling.store.memory import InMemoryStore

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

TUTOR_ID = 1
TUTOR_USER_ID = 101
STUDENT_ID = 501
COURSE_ID = 10


def next_weekday(start: date, weekday: int) -> date:
    """First date on or after ``start`` falling on ``weekday`` (Monday is 0)."""
    return start + timedelta(days=(weekday - start.weekday()) % 7)


class ConsoleDemo:
    """Runs a scripted scheduling scenario and prints each step."""

    SCENARIOS = ("booking", "conflict", "lifecycle")

    def __init__(self) -> None:
        self.store = InMemoryStore()
        self.conversations = InMemoryConversationDirectory()
        self.service = SchedulingService(self.store, self.conversations)
        self.monday = next_weekday(date.today() + timedelta(days=1), 0)
        self._seed()

    def _seed(self) -> None:
        self.store.add_tutor(TutorProfile(id=TUTOR_ID, user_id=TUTOR_USER_ID))
        self.store.add_course(Course(
            id=COURSE_ID, tutor_id=TUTOR_ID, title="Algebra I",
            hourly_rate=Decimal("200000"), teaching_mode=CourseMode.BOTH,
        ))

    def step(self, text: str) -> None:
        print(f"\n{BLUE}{BOLD}== {text}{RESET}")

    def ok(self, text: str) -> None:
        print(f"{GREEN}  {text}{RESET}")

    def warn(self, text: str) -> None:
        print(f"{YELLOW}  {text}{RESET}")

    def detail(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def publish_mondays(self) -> None:
        self.step("Tutor publishes Monday mornings for three weeks")
        result = self.service.expand_availability(TUTOR_ID, {
            "is_recurring": True,
            "start_date": self.monday.isoformat(),
            "end_date": (self.monday + timedelta(days=14)).isoformat(),
            "repeat_days": ["monday"],
            "start_time": "09:00",
            "end_time": "11:00",
            "course_id": COURSE_ID,
        })
        self.ok(f"{len(result.created)} entries created, {result.skipped} skipped")
        for entry in result.created:
            self.detail(f"#{entry.id} {entry.date} {entry.start_time}-{entry.end_time}")

    def book_first_monday(self):
        self.step("Student books the first Monday")
        request = self.service.create_booking(
            student_id=STUDENT_ID, tutor_id=TUTOR_ID, course_id=COURSE_ID, mode="online",
            sessions=[{
                "date": self.monday.isoformat(), "start_time": "09:00", "end_time": "10:30",
                "schedule_entry_id": 1,
            }],
        )
        self.ok(
            f"Booking #{request.id} {request.status.value}: "
            f"{request.total_hours} h, amount {request.total_amount}"
        )
        return request

    def run_booking(self) -> None:
        self.publish_mondays()
        self.book_first_monday()
        self.step("Open slots after booking")
        for day in self.service.list_available_slots(TUTOR_ID, today=date.today()):
            slots = ", ".join(f"{s.start_time}-{s.end_time}" for s in day.time_slots)
            self.detail(f"{day.date}: {slots}")

    def run_conflict(self) -> None:
        self.publish_mondays()
        self.book_first_monday()
        self.step("Second student tries an overlapping slot")
        try:
            self.service.create_booking(
                student_id=STUDENT_ID + 1, tutor_id=TUTOR_ID, course_id=COURSE_ID, mode="online",
                sessions=[{"date": self.monday.isoformat(), "start_time": "10:00", "end_time": "11:00"}],
            )
        except SchedulingError as exc:
            self.warn(f"{exc.kind}: {exc.message}")
            for conflict in getattr(exc, "conflicts", []):
                self.detail(
                    f"requested {conflict.requested_start_time}-{conflict.requested_end_time} "
                    f"vs existing #{conflict.existing_id} "
                    f"{conflict.existing_start_time}-{conflict.existing_end_time}"
                )

    def run_lifecycle(self) -> None:
        self.publish_mondays()
        request = self.book_first_monday()

        self.step("Tutor confirms")
        request = self.service.set_booking_status(request.id, "confirmed", "tutor", actor_id=TUTOR_USER_ID)
        self.ok(f"Booking #{request.id} {request.status.value}")
        self.detail(f"conversation open: {self.conversations.has_conversation(STUDENT_ID, TUTOR_USER_ID)}")

        self.step("Tutor completes the only session")
        session = self.service.set_session_status(
            request.sessions[0].id, "completed", "tutor", actor_id=TUTOR_USER_ID
        )
        parent = self.service.get_booking(request.id, STUDENT_ID, "student")
        self.ok(f"Session #{session.id} {session.status.value}; booking now {parent.status.value}")

        self.step("Student rates the session")
        self.service.add_session_note(
            session.id, "student", student_rating=5, student_feedback="Clear explanations",
            actor_id=STUDENT_ID,
        )
        self.ok(f"Tutor rating: {self.store.get_tutor(TUTOR_ID).rating}")

    def run(self, scenario: str) -> None:
        print(f"{BOLD}{settings.app_name}{RESET} {DIM}scenario: {scenario}{RESET}")
        try:
            getattr(self, f"run_{scenario}")()
        except SchedulingError as exc:
            print(f"{RED}  Unexpected {exc.kind}: {exc.message}{RESET}")
            sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(description="Tutor scheduling console demo")
    parser.add_argument("--scenario", choices=ConsoleDemo.SCENARIOS, default="booking")
    args = parser.parse_args()
    ConsoleDemo().run(args.scenario)


if __name__ == "__main__":
    main()
