"""
Pytest fixtures for the payroll test suite.

Provides:
- Structured logging configured once per session, LogContext isolation
- ``captured_logs`` for asserting on emitted JSON log records
- The bundled PH rate table and its ``PayrollRules``
- Deterministic clock
- In-memory providers wired into an orchestrator
- SQLite-backed session factory for the SQLAlchemy sink
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from payroll_config import get_active_config
from payroll_engines.calculation import PayrollCalculationEngine
from payroll_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.domain.types import EmployeeRecord, PayPeriod
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from payroll_services.processing_orchestrator import PayrollProcessingOrchestrator
from payroll_services.providers import (
    InMemoryAttendanceProvider,
    InMemoryEmployeeProvider,
    InMemoryOvertimeProvider,
    InMemoryPayPeriodProvider,
)
from payroll_services.sinks import InMemoryCalculationSink

# January 2024, first half: Monday 1st to Monday 15th, 11 weekdays
PERIOD_ID = "2024-01-A"
PERIOD_START = date(2024, 1, 1)
PERIOD_END = date(2024, 1, 15)
PERIOD_WEEKDAYS = 11


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
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
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.calculate(...)
            logs = captured_logs()
            assert any(r["message"] == "payroll_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
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
# Rules and engine
# =============================================================================


@pytest.fixture
def rate_config():
    """The bundled PH semi-monthly rate table."""
    return get_active_config("PH", PERIOD_END)


@pytest.fixture
def rules(rate_config):
    return rate_config.rules


@pytest.fixture
def engine(rules):
    return PayrollCalculationEngine(rules)


@pytest.fixture
def pay_period():
    return PayPeriod(PERIOD_ID, PERIOD_START, PERIOD_END, "January 2024, first half")


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(datetime(2024, 1, 16, 9, 0, tzinfo=timezone.utc))


# =============================================================================
# Providers and orchestrator
# =============================================================================


def _make_employee(
    employee_id: str = "E001",
    position_title: str = "Rank and File Associate",
    basic_monthly_salary: str = "20000.00",
    hourly_rate: str = "100.00",
    **kwargs,
) -> EmployeeRecord:
    return EmployeeRecord(
        employee_id=employee_id,
        position_title=position_title,
        basic_monthly_salary=Decimal(basic_monthly_salary),
        hourly_rate=Decimal(hourly_rate),
        **kwargs,
    )


@pytest.fixture
def make_employee():
    """Factory for EmployeeRecord with rank-and-file defaults."""
    return _make_employee


@pytest.fixture
def employees():
    return InMemoryEmployeeProvider()


@pytest.fixture
def attendance_provider():
    return InMemoryAttendanceProvider()


@pytest.fixture
def overtime_provider():
    return InMemoryOvertimeProvider()


@pytest.fixture
def pay_periods():
    provider = InMemoryPayPeriodProvider()
    provider.add(PERIOD_ID, PERIOD_START, PERIOD_END)
    return provider


@pytest.fixture
def memory_sink():
    return InMemoryCalculationSink()


@pytest.fixture
def orchestrator(
    employees, attendance_provider, overtime_provider, pay_periods, memory_sink, rules,
):
    return PayrollProcessingOrchestrator(
        employees=employees,
        attendance=attendance_provider,
        overtime=overtime_provider,
        pay_periods=pay_periods,
        sink=memory_sink,
        rules_provider=lambda period: rules,
    )


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def session_factory(tmp_path):
    """Session factory on a fresh SQLite file with the payroll tables created."""
    init_engine_from_url(f"sqlite:///{tmp_path / 'payroll.db'}")
    create_tables()
    yield get_session_factory()
    drop_tables()
    reset_engine()
