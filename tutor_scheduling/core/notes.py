"""
Per-session notes, student ratings, and the tutor's aggregate rating.

Each side writes only its own fields: tutors write notes, students write a
rating and feedback. Writing a rating recomputes the tutor's rating as the
mean of every rated session.
"""

from decimal import Decimal
from typing import Optional, Union

from tutor_scheduling.config import settings
from tutor_scheduling.core.booking import ensure_party
from tutor_scheduling.core.errors import InvalidInputError, NotFoundError
from tutor_scheduling.core.status import ActorRole, coerce_enum
from tutor_scheduling.logging_context import get_request_logger
from tutor_scheduling.schemas.booking_schema import SessionNote
from tutor_scheduling.store.base import SchedulingStore
from tutor_scheduling.utils import quantize

logger = get_request_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(value: object) -> int:
    """Accept an integer 1-5 (bools excluded) or raise InvalidInputError."""
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
        raise InvalidInputError(
            f"Rating must be an integer between {MIN_RATING} and {MAX_RATING}, got {value!r}",
            code="invalid_rating",
        )
    return value


def average_rating(ratings: list[int]) -> Optional[Decimal]:
    """Arithmetic mean of ``ratings`` at the configured precision, or None."""
    if not ratings:
        return None
    mean = Decimal(sum(ratings)) / Decimal(len(ratings))
    return quantize(mean, settings.booking.rating_decimal_places)


class SessionNotesService:
    """Upserts session notes and keeps tutor ratings current."""

    def __init__(self, store: SchedulingStore) -> None:
        self._store = store

    def add_session_note(
        self,
        session_id: int,
        actor_role: Union[str, ActorRole],
        tutor_notes: Optional[str] = None,
        student_rating: Optional[int] = None,
        student_feedback: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> SessionNote:
        """Create or update the note of a session.

        Fields belonging to the other role are ignored.

        Raises:
            InvalidInputError: Bad rating, or nothing the role may write.
            NotFoundError: The session does not exist.
            ForbiddenError: ``actor_id`` is not a party to the booking.
        """
        role = coerce_enum(ActorRole, actor_role, field_name="role")

        if role == ActorRole.TUTOR:
            changes = {"tutor_notes": tutor_notes} if tutor_notes is not None else {}
        else:
            changes = {}
            if student_rating is not None:
                changes["student_rating"] = validate_rating(student_rating)
            if student_feedback is not None:
                changes["student_feedback"] = student_feedback
        if not changes:
            raise InvalidInputError(
                f"No note fields a {role.value} may write were provided", code="no_fields"
            )

        with self._store.transaction():
            session = self._store.get_booking_session(session_id)
            if session is None:
                raise NotFoundError(f"Session {session_id} not found", code="session_not_found")
            request = self._store.get_booking_request(session.request_id)
            if request is None:
                raise NotFoundError(
                    f"Booking {session.request_id} not found", code="booking_not_found"
                )
            if actor_id is not None:
                ensure_party(self._store, request, actor_id, role)

            existing = self._store.get_session_note(session_id)
            note = (
                existing.model_copy(update=changes)
                if existing is not None
                else SessionNote(session_id=session_id, **changes)
            )
            saved = self._store.save_session_note(note)

            if "student_rating" in changes:
                rating = average_rating(self._store.list_ratings_for_tutor(request.tutor_id))
                self._store.update_tutor_rating(request.tutor_id, rating)
                logger.info("Tutor %s rating recomputed: %s", request.tutor_id, rating)

        logger.info("Note for session %s saved by %s", session_id, role.value)
        return saved
