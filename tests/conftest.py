"""
Pytest fixtures for the placement kernel test suite.

Provides:
- An isolated in-memory SQLite engine per test (WorkflowEngine.from_config)
- Recording audit / notification sinks
- A DeterministicClock shared by the engine and the test
- Factories for staff, leads, students and universities
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy.orm import sessionmaker

from placement_config import get_active_config
from placement_kernel.db.engine import build_engine, create_tables
from placement_kernel.db.immutability import register_immutability_listeners
from placement_kernel.domain.clock import DeterministicClock
from placement_kernel.domain.sinks import RecordingAuditSink, RecordingNotificationSink
from placement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from placement_kernel.services.workflow_engine import WorkflowEngine

START_TIME = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture placement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.add_lead(...)
            logs = captured_logs()
            assert any(r["message"] == "lead_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("placement_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Engine fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(START_TIME)


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def notification_sink():
    return RecordingNotificationSink()


@pytest.fixture
def config():
    return get_active_config()


@pytest.fixture
def engine(clock, audit_sink, notification_sink, config):
    """A fresh engine over its own in-memory database."""
    return WorkflowEngine.from_config(
        config=config,
        clock=clock,
        audit_sink=audit_sink,
        notification_sink=notification_sink,
    )


@pytest.fixture
def session_factory(engine):
    """Direct session access to the engine's database, for white-box checks."""
    return engine._session_factory


@pytest.fixture
def raw_session_factory():
    """A bare database with tables and listeners but no engine on top."""
    db_engine = build_engine("sqlite:///:memory:")
    create_tables(db_engine)
    register_immutability_listeners()
    yield sessionmaker(bind=db_engine, expire_on_commit=False)
    db_engine.dispose()


# =============================================================================
# Factories
# =============================================================================


@pytest.fixture
def staff(engine):
    return engine.add_staff("Amina Staff", "amina@agency.test")


@pytest.fixture
def admin(engine):
    return engine.add_staff("Omar Admin", "omar@agency.test", role="admin")


@pytest.fixture
def university(engine):
    return engine.add_university("Zhejiang University", "China", city="Hangzhou")


@pytest.fixture
def make_university(engine):
    counter = iter(range(1, 1000))

    def _make(name: str | None = None):
        n = next(counter)
        return engine.add_university(name or f"University {n}", "China")

    return _make


@pytest.fixture
def make_lead(engine, staff):
    counter = iter(range(1, 1000))

    def _make(**kwargs):
        n = next(counter)
        kwargs.setdefault("assigned_to", staff.id)
        return engine.add_lead(f"Lead {n}", f"lead{n}@example.test", **kwargs)

    return _make


@pytest.fixture
def make_student(engine, staff, make_lead):
    """Convert a fresh lead; the student starts in pending_contract."""

    def _make():
        lead = make_lead()
        return engine.convert_lead_to_student(lead.id, staff.id)

    return _make


@pytest.fixture
def student(make_student):
    return make_student()


@pytest.fixture
def signed_student(engine, staff, student):
    """A student with a signed contract, moved on to active_profile."""
    contract = engine.create_contract(student.id, staff.id)
    assert engine.sign_contract(contract.id, "sig")
    assert engine.change_student_status(student.id, "active_profile")
    return engine.get_student_by_id(student.id)


@pytest.fixture
def pay_deposit(engine):
    """Invoice and pay a 750 deposit for a student; returns the invoice id."""

    def _pay(student_id, amount="750"):
        invoice = engine.create_invoice(student_id, "deposit", amount, "Deposit")
        assert engine.record_payment(invoice.id)
        return invoice.id

    return _pay
