"""Availability rule and schedule entry data models."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from tutor_scheduling.core.errors import InvalidInputError
from tutor_scheduling.core.status import ScheduleStatus, TeachingMode
from tutor_scheduling.core.time_slot import TimeSlot, normalize_time, time_to_minutes


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _check_time_order(start_time: str, end_time: str) -> None:
    if time_to_minutes(end_time) <= time_to_minutes(start_time):
        raise InvalidInputError(
            f"End time {end_time} must be after start time {start_time}",
            code="invalid_time_range",
        )


class Weekday(str, Enum):
    """Day names in Python ``date.weekday()`` order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return list(cls)[day.weekday()]


class TimeWindow(BaseModel):
    """A start/end wall-clock window without a date."""

    start_time: str
    end_time: str

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_times(cls, value: Any) -> str:
        return normalize_time(value)

    @model_validator(mode="after")
    def check_order(self) -> "TimeWindow":
        _check_time_order(self.start_time, self.end_time)
        return self


class _RuleBase(BaseModel):
    """Fields shared by single and recurring availability rules."""

    mode: TeachingMode = TeachingMode.ONLINE
    location: Optional[str] = None
    course_id: Optional[int] = None

    @model_validator(mode="after")
    def check_location(self) -> "_RuleBase":
        if self.mode == TeachingMode.ONLINE:
            self.location = None
        elif not (self.location or "").strip():
            raise InvalidInputError(
                "A location is required for offline teaching", code="missing_location"
            )
        return self


class SingleAvailabilityRule(_RuleBase):
    """One concrete teaching slot."""

    is_recurring: Literal[False] = False
    date: date
    start_time: str
    end_time: str

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_times(cls, value: Any) -> str:
        return normalize_time(value)

    @model_validator(mode="after")
    def check_order(self) -> "SingleAvailabilityRule":
        _check_time_order(self.start_time, self.end_time)
        return self

    def slot(self) -> TimeSlot:
        return TimeSlot(date=self.date, start_time=self.start_time, end_time=self.end_time)


class RecurringAvailabilityRule(_RuleBase):
    """A weekday pattern repeated over a date range.

    Either ``repeat_schedule`` (per-weekday windows) or ``repeat_days`` with a
    shared ``start_time``/``end_time`` must be given; ``repeat_schedule`` wins
    when both are present.
    """

    is_recurring: Literal[True] = True
    start_date: date
    end_date: date
    repeat_days: list[Weekday] = Field(default_factory=list)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    repeat_schedule: Optional[dict[Weekday, list[TimeWindow]]] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def normalize_optional_times(cls, value: Any) -> Optional[str]:
        return None if value is None else normalize_time(value)

    @model_validator(mode="after")
    def check_pattern(self) -> "RecurringAvailabilityRule":
        if self.start_date > self.end_date:
            raise InvalidInputError(
                "start_date must be on or before end_date", code="invalid_date_range"
            )
        if self.repeat_schedule and any(self.repeat_schedule.values()):
            return self
        if self.repeat_days and self.start_time and self.end_time:
            _check_time_order(self.start_time, self.end_time)
            return self
        raise InvalidInputError(
            "Provide repeat_schedule, or repeat_days with start_time and end_time",
            code="missing_repeat_pattern",
        )

    def windows_by_weekday(self) -> dict[Weekday, list[TimeWindow]]:
        """Resolve the rule into sorted windows per selected weekday."""
        if self.repeat_schedule and any(self.repeat_schedule.values()):
            pattern = {day: list(windows) for day, windows in self.repeat_schedule.items() if windows}
        else:
            window = TimeWindow(start_time=self.start_time, end_time=self.end_time)
            pattern = {day: [window] for day in self.repeat_days}
        return {
            day: sorted(windows, key=lambda w: time_to_minutes(w.start_time))
            for day, windows in pattern.items()
        }


AvailabilityRule = Union[SingleAvailabilityRule, RecurringAvailabilityRule]


def parse_availability_rule(payload: Union[dict, AvailabilityRule]) -> AvailabilityRule:
    """Validate a raw rule payload, raising InvalidInputError on bad input."""
    if isinstance(payload, (SingleAvailabilityRule, RecurringAvailabilityRule)):
        return payload
    try:
        if payload.get("is_recurring"):
            return RecurringAvailabilityRule.model_validate(payload)
        return SingleAvailabilityRule.model_validate(payload)
    except ValidationError as exc:
        raise invalid_input_from(exc) from None


def invalid_input_from(exc: ValidationError) -> InvalidInputError:
    """Convert a pydantic ValidationError, keeping our own error codes."""
    for err in exc.errors():
        cause = (err.get("ctx") or {}).get("error")
        if isinstance(cause, InvalidInputError):
            return InvalidInputError(cause.message, code=cause.code)
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return InvalidInputError(f"{location}: {first.get('msg')}", code="validation_error")


class ScheduleEntry(BaseModel):
    """A concrete, persisted, bookable slot owned by a tutor."""

    id: Optional[int] = None
    tutor_id: int
    course_id: Optional[int] = None
    date: date
    start_time: str
    end_time: str
    mode: TeachingMode = TeachingMode.ONLINE
    location: Optional[str] = None
    is_recurring: bool = False
    status: ScheduleStatus = ScheduleStatus.AVAILABLE
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def slot(self) -> TimeSlot:
        return TimeSlot(date=self.date, start_time=self.start_time, end_time=self.end_time)


class ExpansionResult(BaseModel):
    """Outcome of expanding one availability rule."""

    created: list[ScheduleEntry] = Field(default_factory=list)
    skipped: int = 0


class OpenSlot(BaseModel):
    id: int
    start_time: str
    end_time: str


class DaySlots(BaseModel):
    """Open slots for a single date."""

    date: date
    time_slots: list[OpenSlot] = Field(default_factory=list)
