"""Tests for the in-memory store: transactions, copies, and the duplicate backstop."""

from decimal import Decimal

import pytest

from tutor_scheduling.core.status import BookingStatus, ScheduleStatus, SessionStatus, TeachingMode
from tutor_scheduling.schemas.booking_schema import BookingRequest, BookingSession
from tutor_scheduling.schemas.scheduling_schema import ScheduleEntry
from tutor_scheduling.store.base import DuplicateSessionError, StoreError
from tests.conftest import MONDAY, ONLINE_COURSE_ID, STUDENT_ID, TUTOR_ID


def _request() -> BookingRequest:
    return BookingRequest(
        student_id=STUDENT_ID,
        tutor_id=TUTOR_ID,
        course_id=ONLINE_COURSE_ID,
        mode=TeachingMode.ONLINE,
        hourly_rate=Decimal("100"),
        total_hours=Decimal("1"),
        total_amount=Decimal("100"),
    )


def _session(start="09:00", end="10:00") -> BookingSession:
    return BookingSession(date=MONDAY, start_time=start, end_time=end)


def _entry() -> ScheduleEntry:
    return ScheduleEntry(tutor_id=TUTOR_ID, date=MONDAY, start_time="09:00", end_time="10:00")


class TestTransactions:
    def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.add_schedule_entry(_entry())
                raise RuntimeError("boom")
        assert store.find_schedule_entries_on_date(TUTOR_ID, MONDAY) == []

    def test_commit_on_success(self, store):
        with store.transaction():
            store.add_schedule_entry(_entry())
        assert len(store.find_schedule_entries_on_date(TUTOR_ID, MONDAY)) == 1

    def test_nested_rolls_back_to_outermost(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.add_schedule_entry(_entry())
                with store.transaction():
                    store.add_schedule_entry(_entry())
                raise RuntimeError("boom")
        assert store.find_schedule_entries_on_date(TUTOR_ID, MONDAY) == []

    def test_ids_restored_after_rollback(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.add_schedule_entry(_entry())
                raise RuntimeError("boom")
        assert store.add_schedule_entry(_entry()).id == 1


class TestCopies:
    def test_reads_are_copies(self, store):
        entry = store.add_schedule_entry(_entry())
        loaded = store.get_schedule_entry(entry.id)
        loaded.status = ScheduleStatus.CANCELLED
        assert store.get_schedule_entry(entry.id).status == ScheduleStatus.AVAILABLE

    def test_request_carries_sessions(self, store):
        created = store.insert_booking_with_sessions(_request(), [_session(), _session("10:00", "11:00")])
        loaded = store.get_booking_request(created.id)
        assert [s.id for s in loaded.sessions] == [s.id for s in created.sessions]
        assert all(s.request_id == created.id for s in loaded.sessions)


class TestDuplicateBackstop:
    def test_identical_active_session_rejected(self, store):
        store.insert_booking_with_sessions(_request(), [_session()])
        with pytest.raises(DuplicateSessionError) as exc:
            store.insert_booking_with_sessions(_request(), [_session()])
        assert exc.value.existing.start_time == "09:00"
        assert exc.value.kind == "internal"

    def test_cancelled_session_not_counted(self, store):
        created = store.insert_booking_with_sessions(_request(), [_session()])
        store.update_session_status(created.sessions[0].id, SessionStatus.CANCELLED)
        again = store.insert_booking_with_sessions(_request(), [_session()])
        assert again.id != created.id


class TestMissingRows:
    def test_update_missing_request(self, store):
        with pytest.raises(StoreError) as exc:
            store.update_booking_status(999, BookingStatus.CONFIRMED)
        assert exc.value.code == "missing_row"

    def test_delete_missing_entry(self, store):
        with pytest.raises(StoreError):
            store.delete_schedule_entry(999)

    def test_reset_clears_everything(self, store):
        store.add_schedule_entry(_entry())
        store.reset()
        assert store.get_tutor(TUTOR_ID) is None
        assert store.find_schedule_entries_on_date(TUTOR_ID, MONDAY) == []
