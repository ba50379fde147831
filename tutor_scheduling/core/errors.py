"""
Typed errors raised by the scheduling core.

Every business failure is an expected outcome for the caller and maps to
one ``kind``. Transport layers translate kinds to their own status codes;
the core never does.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from tutor_scheduling.schemas.booking_schema import ConflictDetail


class SchedulingError(Exception):
    """Base class for all scheduling core errors."""

    kind = "error"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.kind

    def to_dict(self) -> dict:
        return {"kind": self.kind, "code": self.code, "message": self.message}


class InvalidInputError(SchedulingError, ValueError):
    """Malformed time range, missing required field, or unsupported mode."""

    kind = "invalid_input"


class NotFoundError(SchedulingError):
    """Referenced tutor, course, booking, session, or entry does not exist."""

    kind = "not_found"


class ForbiddenError(SchedulingError):
    """Actor may not perform this transition or access this booking."""

    kind = "forbidden"


class ConflictError(SchedulingError):
    """Requested slot(s) overlap existing active commitments."""

    kind = "conflict"

    def __init__(
        self,
        message: str,
        conflicts: Optional[list["ConflictDetail"]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message, code)
        self.conflicts = list(conflicts or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["conflicts"] = [c.model_dump(mode="json") for c in self.conflicts]
        return data


class InternalError(SchedulingError):
    """Data-store failure or an unanticipated constraint violation."""

    kind = "internal"
