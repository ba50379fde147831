"""Tests for import chains and module integrity.

Ensures all public modules can be imported without errors and
that re-exports from __init__.py files work correctly.
"""


class TestPackageImports:
    def test_top_level_reexports(self):
        from tutor_scheduling import (
            ConversationGateway,
            InMemoryConversationDirectory,
            InMemoryStore,
            SchedulingService,
            SchedulingStore,
        )
        assert issubclass(InMemoryStore, SchedulingStore)
        assert issubclass(InMemoryConversationDirectory, ConversationGateway)
        assert SchedulingService(InMemoryStore()).store is not None

    def test_core_reexports(self):
        from tutor_scheduling.core import (
            BookingStatus,
            ConflictError,
            InvalidInputError,
            SchedulingError,
            TimeSlot,
        )
        assert issubclass(ConflictError, SchedulingError)
        assert issubclass(InvalidInputError, ValueError)
        assert BookingStatus.REJECTED == "rejected"
        assert TimeSlot.build("2030-06-03", "9:00", "10:00").start_time == "09:00"

    def test_store_reexports(self):
        from tutor_scheduling.store import DuplicateSessionError, StoreError
        from tutor_scheduling.core.errors import InternalError
        assert issubclass(DuplicateSessionError, StoreError)
        assert issubclass(StoreError, InternalError)


class TestModuleImports:
    def test_import_schemas(self):
        from tutor_scheduling.schemas.booking_schema import BookingRequest, ConflictDetail
        from tutor_scheduling.schemas.scheduling_schema import ScheduleEntry, Weekday
        assert Weekday.MONDAY == "monday"
        assert "existing_id" in ConflictDetail.model_fields
        assert "sessions" in BookingRequest.model_fields
        assert ScheduleEntry.model_fields["is_recurring"].default is False

    def test_import_core_modules(self):
        from tutor_scheduling.core.availability import AvailabilityExpander
        from tutor_scheduling.core.booking import BookingOrchestrator
        from tutor_scheduling.core.conflicts import ConflictDetector
        from tutor_scheduling.core.notes import SessionNotesService
        from tutor_scheduling.core.propagation import StatusPropagator
        assert all([
            AvailabilityExpander, BookingOrchestrator, ConflictDetector,
            SessionNotesService, StatusPropagator,
        ])

    def test_error_kinds(self):
        from tutor_scheduling.core.errors import (
            ConflictError, ForbiddenError, InternalError, InvalidInputError, NotFoundError,
        )
        kinds = [e.kind for e in (InvalidInputError, NotFoundError, ForbiddenError, ConflictError, InternalError)]
        assert kinds == ["invalid_input", "not_found", "forbidden", "conflict", "internal"]

    def test_error_to_dict(self):
        from tutor_scheduling.core.errors import NotFoundError
        err = NotFoundError("Tutor 9 not found", code="tutor_not_found")
        assert err.to_dict() == {
            "kind": "not_found", "code": "tutor_not_found", "message": "Tutor 9 not found",
        }

    def test_main_module(self):
        import main
        assert "lifecycle" in main.ConsoleDemo.SCENARIOS
