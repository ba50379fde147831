"""
Status propagation between a booking request and its sessions.

Request-level changes fan out to every session in the same transaction.
Session-level changes roll back up: when all sibling sessions end in the
same terminal status the parent request takes it too.
"""

from typing import Optional, Union

from tutor_scheduling.core.booking import ensure_party
from tutor_scheduling.core.errors import NotFoundError
from tutor_scheduling.core.status import (
    CLOSED_STATUSES,
    ActorRole,
    BookingStatus,
    ScheduleStatus,
    SessionStatus,
    check_transition,
    coerce_enum,
    derive_request_status,
    session_status_for,
)
from tutor_scheduling.logging_context import get_request_logger
from tutor_scheduling.messaging import ConversationGateway
from tutor_scheduling.schemas.booking_schema import BookingRequest, BookingSession
from tutor_scheduling.store.base import SchedulingStore
from tutor_scheduling.utils import clean_text

logger = get_request_logger(__name__)


class StatusPropagator:
    """Applies role-checked status changes and keeps parents and children aligned."""

    def __init__(self, store: SchedulingStore, conversations: Optional[ConversationGateway] = None) -> None:
        self._store = store
        self._conversations = conversations

    def set_booking_status(
        self,
        request_id: int,
        new_status: Union[str, BookingStatus],
        actor_role: Union[str, ActorRole],
        actor_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> BookingRequest:
        """Change a request's status and fan it out to its open sessions.

        Sessions already completed or cancelled keep their status.

        Raises:
            InvalidInputError: Unknown status or role.
            ForbiddenError: The role may not set this status, the request
                is already closed, or the actor is not a party to the booking.
            NotFoundError: The request does not exist.
        """
        status = coerce_enum(BookingStatus, new_status)
        role = coerce_enum(ActorRole, actor_role, field_name="role")
        check_transition(role, status)

        with self._store.transaction():
            request = self._store.get_booking_request(request_id)
            if request is None:
                raise NotFoundError(f"Booking {request_id} not found", code="booking_not_found")
            if actor_id is not None:
                ensure_party(self._store, request, actor_id, role)
            check_transition(role, status, current=request.status)

            rejection_reason = clean_text(reason) if status == BookingStatus.REJECTED else None
            self._store.update_booking_status(request_id, status, rejection_reason)

            child_status = session_status_for(status)
            for session in request.sessions:
                if session.status in CLOSED_STATUSES:
                    continue
                self._apply_session_status(session, child_status)

            updated = self._store.get_booking_request(request_id)

        logger.info(
            "Booking %s moved %s -> %s by %s; %d session(s) set to %s",
            request_id, request.status.value, status.value, role.value,
            len(updated.sessions), child_status.value,
        )

        if status == BookingStatus.CONFIRMED and self._conversations is not None:
            tutor = self._store.get_tutor(updated.tutor_id)
            if tutor is not None:
                self._conversations.ensure_conversation(updated.student_id, tutor.user_id)
        return updated

    def set_session_status(
        self,
        session_id: int,
        new_status: Union[str, SessionStatus],
        actor_role: Union[str, ActorRole],
        actor_id: Optional[int] = None,
    ) -> BookingSession:
        """Change one session's status, then re-derive the parent request."""
        status = coerce_enum(SessionStatus, new_status)
        role = coerce_enum(ActorRole, actor_role, field_name="role")
        check_transition(role, status)

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
            check_transition(role, status, current=session.status)

            updated = self._apply_session_status(session, status)
            self.rederive_request_status(request.id)

        logger.info("Session %s set to %s by %s", session_id, status.value, role.value)
        return updated

    def rederive_request_status(self, request_id: int) -> BookingStatus:
        """Recompute a request's status from its sessions; safe to call repeatedly."""
        with self._store.transaction():
            request = self._store.get_booking_request(request_id)
            if request is None:
                raise NotFoundError(f"Booking {request_id} not found", code="booking_not_found")
            derived = derive_request_status(request.status, [s.status for s in request.sessions])
            if derived != request.status:
                self._store.update_booking_status(request_id, derived)
                logger.info(
                    "Booking %s derived %s -> %s from its sessions",
                    request_id, request.status.value, derived.value,
                )
        return derived

    def _apply_session_status(self, session: BookingSession, status: SessionStatus) -> BookingSession:
        updated = self._store.update_session_status(session.id, status)
        if status == SessionStatus.CANCELLED and session.schedule_entry_id is not None:
            entry = self._store.get_schedule_entry(session.schedule_entry_id)
            if entry is not None and entry.status == ScheduleStatus.BOOKED:
                self._store.update_schedule_entry_status(entry.id, ScheduleStatus.AVAILABLE)
                logger.debug("Schedule entry %s released by session %s", entry.id, session.id)
        return updated
