"""Tests for the time-slot value types and helpers."""

from datetime import date, time
from decimal import Decimal

import pytest

from tutor_scheduling.core.errors import InvalidInputError
from tutor_scheduling.core.time_slot import (
    TimeSlot,
    duration_hours,
    minutes_to_time,
    normalize_time,
    overlaps,
    parse_date,
    time_to_minutes,
)

DAY = date(2030, 6, 3)


class TestNormalizeTime:
    def test_pads_single_digit_hour(self):
        assert normalize_time("9:05") == "09:05"

    def test_keeps_padded_value(self):
        assert normalize_time("14:30") == "14:30"

    def test_accepts_time_object(self):
        assert normalize_time(time(7, 0)) == "07:00"

    def test_strips_whitespace(self):
        assert normalize_time(" 8:15 ") == "08:15"

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "9", "", "09:00:00"])
    def test_rejects_bad_values(self, value):
        with pytest.raises(InvalidInputError) as exc:
            normalize_time(value)
        assert exc.value.code == "invalid_time"

    def test_rejects_non_string(self):
        with pytest.raises(InvalidInputError):
            normalize_time(900)


class TestMinutes:
    def test_time_to_minutes(self):
        assert time_to_minutes("09:30") == 570

    def test_unpadded_and_padded_agree(self):
        assert time_to_minutes("9:00") == time_to_minutes("09:00")

    def test_minutes_to_time(self):
        assert minutes_to_time(570) == "09:30"

    def test_string_order_is_not_used(self):
        # "9:00" sorts after "10:00" as text but is earlier in the day
        assert time_to_minutes("9:00") < time_to_minutes("10:00")


class TestParseDate:
    def test_parses_iso_string(self):
        assert parse_date("2030-06-03") == DAY

    def test_passes_date_through(self):
        assert parse_date(DAY) is DAY

    def test_rejects_garbage(self):
        with pytest.raises(InvalidInputError) as exc:
            parse_date("03/06/2030")
        assert exc.value.code == "invalid_date"


class TestTimeSlot:
    def test_build_normalizes(self):
        slot = TimeSlot.build("2030-06-03", "9:00", "11:00")
        assert slot.date == DAY
        assert slot.start_time == "09:00"
        assert slot.end_time == "11:00"

    def test_end_must_follow_start(self):
        with pytest.raises(InvalidInputError) as exc:
            TimeSlot.build(DAY, "11:00", "09:00")
        assert exc.value.code == "invalid_time_range"

    def test_zero_length_rejected(self):
        with pytest.raises(InvalidInputError):
            TimeSlot.build(DAY, "10:00", "10:00")

    def test_is_immutable(self):
        slot = TimeSlot.build(DAY, "09:00", "10:00")
        with pytest.raises(AttributeError):
            slot.start_time = "08:00"

    def test_minutes_properties(self):
        slot = TimeSlot.build(DAY, "09:15", "10:45")
        assert slot.start_minutes == 555
        assert slot.end_minutes == 645
        assert slot.duration_minutes == 90

    def test_str(self):
        assert str(TimeSlot.build(DAY, "9:00", "10:00")) == "2030-06-03 09:00-10:00"


class TestOverlaps:
    def test_partial_overlap(self):
        a = TimeSlot.build(DAY, "09:00", "11:00")
        b = TimeSlot.build(DAY, "10:00", "12:00")
        assert overlaps(a, b)

    def test_touching_slots_do_not_overlap(self):
        a = TimeSlot.build(DAY, "09:00", "10:00")
        b = TimeSlot.build(DAY, "10:00", "11:00")
        assert not overlaps(a, b)
        assert not overlaps(b, a)

    def test_containment(self):
        outer = TimeSlot.build(DAY, "08:00", "12:00")
        inner = TimeSlot.build(DAY, "09:00", "10:00")
        assert overlaps(outer, inner)
        assert overlaps(inner, outer)

    def test_different_dates_never_overlap(self):
        a = TimeSlot.build(DAY, "09:00", "11:00")
        b = TimeSlot.build("2030-06-04", "09:00", "11:00")
        assert not overlaps(a, b)

    def test_symmetric(self):
        a = TimeSlot.build(DAY, "09:30", "10:15")
        b = TimeSlot.build(DAY, "10:00", "10:30")
        assert overlaps(a, b) == overlaps(b, a)


class TestDurationHours:
    def test_whole_hours(self):
        assert duration_hours(TimeSlot.build(DAY, "09:00", "11:00")) == Decimal("2")

    def test_keeps_fractions(self):
        assert duration_hours(TimeSlot.build(DAY, "09:00", "10:30")) == Decimal("1.5")

    def test_is_decimal(self):
        assert isinstance(duration_hours(TimeSlot.build(DAY, "09:00", "09:45")), Decimal)
