"""
Closed status types and the role-based transition table.

Every status change in the core goes through ``check_transition``. A
transition that is not listed in ``TRANSITIONS`` is rejected with a clear
error naming what the actor is allowed to do.

Usage:
    check_transition(ActorRole.TUTOR, BookingStatus.CONFIRMED)    # ok
    check_transition(ActorRole.STUDENT, BookingStatus.CONFIRMED)  # ForbiddenError
    check_transition(ActorRole.TUTOR, BookingStatus.CONFIRMED,
                     current=BookingStatus.CANCELLED)             # ForbiddenError
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, TypeVar, Union

from tutor_scheduling.core.errors import ForbiddenError, InvalidInputError

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Enum)


class BookingStatus(str, Enum):
    """Lifecycle status of a booking request."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class SessionStatus(str, Enum):
    """Lifecycle status of a single booked lesson."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class ScheduleStatus(str, Enum):
    """Lifecycle status of an advertised schedule entry."""

    AVAILABLE = "available"
    BOOKED = "booked"
    CANCELLED = "cancelled"


class ActorRole(str, Enum):
    STUDENT = "student"
    TUTOR = "tutor"


class TeachingMode(str, Enum):
    """How a lesson is delivered."""

    ONLINE = "online"
    OFFLINE = "offline"


class CourseMode(str, Enum):
    """Teaching modes a course accepts."""

    ONLINE = "online"
    OFFLINE = "offline"
    BOTH = "both"

    def accepts(self, mode: TeachingMode) -> bool:
        return self is CourseMode.BOTH or self.value == mode.value


TERMINAL_SESSION_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})

# Nothing leaves these; a revived session would skip the conflict check.
CLOSED_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.REJECTED,
    SessionStatus.COMPLETED,
    SessionStatus.CANCELLED,
})


@dataclass(frozen=True)
class Transition:
    """A status an actor role may move a request or session into."""

    role: ActorRole
    target: Union[BookingStatus, SessionStatus]


TRANSITIONS: list[Transition] = [
    # --- Students only cancel ---
    Transition(ActorRole.STUDENT, BookingStatus.CANCELLED),
    Transition(ActorRole.STUDENT, SessionStatus.CANCELLED),

    # --- Tutors confirm, complete, or reject; never cancel ---
    Transition(ActorRole.TUTOR, BookingStatus.CONFIRMED),
    Transition(ActorRole.TUTOR, BookingStatus.COMPLETED),
    Transition(ActorRole.TUTOR, BookingStatus.REJECTED),
    Transition(ActorRole.TUTOR, SessionStatus.CONFIRMED),
    Transition(ActorRole.TUTOR, SessionStatus.COMPLETED),
]


def coerce_enum(enum_cls: type[E], value: Union[str, E], field_name: str = "status") -> E:
    """Convert a raw string into ``enum_cls`` or raise InvalidInputError."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        valid = [m.value for m in enum_cls]
        raise InvalidInputError(
            f"Invalid {field_name} {value!r}. Valid: {valid}", code=f"invalid_{field_name}"
        ) from None


def allowed_targets(
    role: ActorRole, status_type: type[Union[BookingStatus, SessionStatus]]
) -> list[str]:
    """Return the statuses of ``status_type`` that ``role`` may set."""
    return [t.target.value for t in TRANSITIONS if t.role == role and isinstance(t.target, status_type)]


def check_transition(
    role: ActorRole,
    target: Union[BookingStatus, SessionStatus],
    current: Union[BookingStatus, SessionStatus, None] = None,
) -> None:
    """Raise ForbiddenError unless ``role`` may move an entity into ``target``.

    When ``current`` is given it must not be closed: completed, cancelled
    and rejected rows never change status again.
    """
    if current is not None and current in CLOSED_STATUSES:
        logger.debug("Rejected transition out of closed status %s", current.value)
        raise ForbiddenError(
            f"Status '{current.value}' is final and cannot change to '{target.value}'",
            code="status_closed",
        )

    for t in TRANSITIONS:
        if t.role == role and type(t.target) is type(target) and t.target == target:
            return

    valid = allowed_targets(role, type(target))
    logger.debug("Rejected transition to %s by %s", target.value, role.value)
    raise ForbiddenError(
        f"A {role.value} cannot set status '{target.value}'. Allowed: {valid}",
        code="transition_not_allowed",
    )


def session_status_for(status: BookingStatus) -> SessionStatus:
    """Map a request-level status onto its sessions.

    Sessions have no rejected state; a rejected request cancels its sessions.
    """
    if status == BookingStatus.REJECTED:
        return SessionStatus.CANCELLED
    return SessionStatus(status.value)


def derive_request_status(
    current: BookingStatus, session_statuses: list[SessionStatus]
) -> BookingStatus:
    """Roll sibling session statuses up into the parent's status.

    If every session shares one terminal status, the parent takes it;
    otherwise the parent keeps ``current``. Re-running on a consistent set
    returns the same value.
    """
    distinct: set[SessionStatus] = set(session_statuses)
    if len(distinct) == 1:
        only: Optional[SessionStatus] = next(iter(distinct))
        if only in TERMINAL_SESSION_STATUSES:
            return BookingStatus(only.value)
    return current
