"""Tests for correlation-id logging."""

import logging

import pytest

from tutor_scheduling.logging_context import (
    NO_REQUEST_ID,
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    request_scope,
    set_request_id,
)
from tutor_scheduling.service import traced


class TestRequestId:
    def test_set_explicit(self):
        assert set_request_id("REQ-test") == "REQ-test"
        assert get_request_id() == "REQ-test"
        set_request_id(NO_REQUEST_ID)

    def test_generated_format(self):
        value = set_request_id()
        assert value.startswith("REQ-")
        assert len(value) == 12
        set_request_id(NO_REQUEST_ID)


class TestRequestIdFilter:
    def test_injects_request_id(self):
        set_request_id("REQ-filter")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert RequestIdFilter().filter(record)
        assert record.request_id == "REQ-filter"
        set_request_id(NO_REQUEST_ID)

    def test_filter_attached_once(self):
        logger = get_request_logger("tests.logging_context")
        get_request_logger("tests.logging_context")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1


class TestTraced:
    def test_assigns_and_clears_id(self):
        seen = []

        @traced
        def work():
            seen.append(get_request_id())

        work()
        assert seen[0].startswith("REQ-")
        assert get_request_id() == NO_REQUEST_ID

    def test_keeps_caller_id(self):
        seen = []

        @traced
        def work():
            seen.append(get_request_id())

        set_request_id("REQ-outer")
        work()
        assert seen == ["REQ-outer"]
        assert get_request_id() == "REQ-outer"
        set_request_id(NO_REQUEST_ID)

    def test_log_records_carry_id(self, service, caplog):
        set_request_id("REQ-booking")
        with caplog.at_level(logging.INFO, logger="tutor_scheduling"):
            service.expand_availability(1, {
                "is_recurring": False, "date": "2030-06-03",
                "start_time": "09:00", "end_time": "10:00",
            })
        set_request_id(NO_REQUEST_ID)
        records = [r for r in caplog.records if r.name == "tutor_scheduling.core.availability"]
        assert records
        assert all(r.request_id == "REQ-booking" for r in records)


class TestRequestScope:
    def test_restores_previous_id(self):
        with request_scope("REQ-outer"):
            with request_scope("REQ-inner") as inner:
                assert inner == get_request_id() == "REQ-inner"
            assert get_request_id() == "REQ-outer"
        assert get_request_id() == NO_REQUEST_ID

    def test_restores_on_error(self):
        with pytest.raises(RuntimeError):
            with request_scope("REQ-fail"):
                raise RuntimeError("boom")
        assert get_request_id() == NO_REQUEST_ID

    def test_traced_inside_scope_keeps_it(self):
        seen = []

        @traced
        def work():
            seen.append(get_request_id())

        with request_scope("REQ-scoped"):
            work()
            assert get_request_id() == "REQ-scoped"
        assert seen == ["REQ-scoped"]

    def test_traced_restores_after_error(self):
        @traced
        def work():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            work()
        assert get_request_id() == NO_REQUEST_ID
