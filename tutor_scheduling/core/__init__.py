from tutor_scheduling.core.errors import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    SchedulingError,
)
from tutor_scheduling.core.status import (
    ActorRole,
    BookingStatus,
    CourseMode,
    ScheduleStatus,
    SessionStatus,
    TeachingMode,
)
from tutor_scheduling.core.time_slot import TimeSlot, duration_hours, overlaps

__all__ = [
    "SchedulingError", "InvalidInputError", "NotFoundError", "ForbiddenError",
    "ConflictError", "InternalError",
    "ActorRole", "BookingStatus", "SessionStatus", "ScheduleStatus",
    "TeachingMode", "CourseMode",
    "TimeSlot", "overlaps", "duration_hours",
]
