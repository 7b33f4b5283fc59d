"""Tests for the structured logging system (placement_kernel/logging_config.py)."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from placement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "placement_kernel.test"
        assert "ts" in record

    def test_extra_fields_and_types(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "paid", extra={"student_id": uid, "amount": Decimal("750.00"), "count": 2}
        )

        record = _parse_log(stream)
        assert record["student_id"] == str(uid)
        assert record["amount"] == "750.00"
        assert record["count"] == 2

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(correlation_id="abc-123", operation="record_payment"):
            get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["operation"] == "record_payment"

    def test_kernel_exception_fields_extracted(self):
        from placement_kernel.exceptions import InvalidTransitionError

        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidTransitionError("Lead", "L-1", "lost", "hot")
        except InvalidTransitionError:
            get_logger("test").error("transition_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "INVALID_TRANSITION"
        assert record["exc_type"] == "InvalidTransitionError"
        assert record["exc_from_status"] == "lost"
        assert record["exc_to_status"] == "hot"
        assert "traceback" in record

    def test_debug_suppressed_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.debug("second")
        assert [r["message"] for r in _parse_all_logs(stream)] == ["first"]


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    def test_bind_restores_previous(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", actor_id="admin-1"):
            assert LogContext.get_all() == {"correlation_id": "inner", "actor_id": "admin-1"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_stringifies_values(self):
        uid = uuid4()
        with LogContext.bind(entity_id=uid):
            assert LogContext.get_all()["entity_id"] == str(uid)

    def test_unknown_fields_ignored(self):
        with LogContext.bind(tenant="x"):
            assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# Engine logging
# ---------------------------------------------------------------------------


class TestEngineLogging:
    def test_operation_context_on_every_record(self, engine, staff):
        handler, stream = _make_handler()
        configure_logging(level=logging.DEBUG, handler=handler)

        lead = engine.add_lead("Ana", "ana@example.test", actor_id="staff-7")

        records = _parse_all_logs(stream)
        created = [r for r in records if r["message"] == "lead_created"][0]
        assert created["operation"] == "add_lead"
        assert created["actor_id"] == "staff-7"
        assert created["lead_id"] == str(lead.id)
        correlation_ids = {r["correlation_id"] for r in records if "correlation_id" in r}
        assert len(correlation_ids) == 1
        assert LogContext.get_all() == {}

    def test_rejection_logged_with_code(self, engine, make_lead):
        lead = make_lead()
        engine.change_lead_status(lead.id, "lost")
        handler, stream = _make_handler()
        configure_logging(handler=handler)

        engine.change_lead_status(lead.id, "hot")

        rejected = [r for r in _parse_all_logs(stream) if r["message"] == "operation_rejected"]
        assert len(rejected) == 1
        assert rejected[0]["error_code"] == "INVALID_TRANSITION"
        assert rejected[0]["entity_id"] == str(lead.id)
