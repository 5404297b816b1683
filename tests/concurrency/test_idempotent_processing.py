"""
Concurrency tests for idempotent payroll processing.

Covers:
- Many threads processing the same (employee, period) store one row;
  exactly one reports PROCESSED, the rest ALREADY_PROCESSED
- Same guarantee against the SQLite-backed sink
- Overlapping threaded period runs never double-store an employee
"""

import threading
from datetime import date, time

import pytest

from payroll_kernel.domain.types import AttendanceDay
from payroll_services.processing_orchestrator import (
    OutcomeStatus,
    PayrollProcessingOrchestrator,
)
from payroll_services.sinks import SqlAlchemyCalculationSink

THREADS = 8


def _race(orchestrator, employee_id="E001", pay_period_id="2024-01-A"):
    barrier = threading.Barrier(THREADS)
    outcomes = []
    errors = []
    lock = threading.Lock()

    def _worker():
        try:
            barrier.wait()
            outcome = orchestrator.process_one(employee_id, pay_period_id)
            with lock:
                outcomes.append(outcome)
        except Exception as exc:  # surfaced by the assertion below
            with lock:
                errors.append(exc)

    threads = [threading.Thread(target=_worker) for _ in range(THREADS)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    return outcomes


@pytest.fixture
def staffed(employees, attendance_provider, make_employee):
    for i in range(1, 6):
        employee_id = f"E00{i}"
        employees.put(make_employee(employee_id))
        for d in (1, 2, 3, 4, 5):
            attendance_provider.add(
                employee_id, AttendanceDay(date(2024, 1, d), time(8, 0), time(17, 0)),
            )


class TestSamePairInParallel:

    def test_in_memory_sink_stores_once(self, orchestrator, staffed, memory_sink):
        outcomes = _race(orchestrator)

        statuses = [o.status for o in outcomes]
        assert statuses.count(OutcomeStatus.PROCESSED) == 1
        assert statuses.count(OutcomeStatus.ALREADY_PROCESSED) == THREADS - 1
        assert len(memory_sink) == 1
        stored = memory_sink.get("E001", "2024-01-A")
        assert all(o.calculation == stored for o in outcomes)

    @pytest.mark.slow
    def test_sql_sink_stores_once(
        self, staffed, session_factory, deterministic_clock, employees,
        attendance_provider, overtime_provider, pay_periods, rules,
    ):
        sink = SqlAlchemyCalculationSink(session_factory, deterministic_clock)
        orchestrator = PayrollProcessingOrchestrator(
            employees, attendance_provider, overtime_provider, pay_periods, sink,
            rules_provider=lambda period: rules,
        )

        outcomes = _race(orchestrator)

        statuses = [o.status for o in outcomes]
        assert statuses.count(OutcomeStatus.PROCESSED) == 1
        assert statuses.count(OutcomeStatus.FAILED) == 0
        assert len(sink.list_for_period("2024-01-A")) == 1
        assert sink.has_integrity("E001", "2024-01-A")


class TestOverlappingPeriodRuns:

    def test_two_threaded_runs_share_one_sink(self, orchestrator, staffed, memory_sink):
        results = []
        barrier = threading.Barrier(2)

        def _run():
            barrier.wait()
            results.append(orchestrator.process_period("2024-01-A", max_workers=4))

        threads = [threading.Thread(target=_run) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(memory_sink) == 5
        processed = sum(
            1 for r in results for o in r.outcomes if o.status is OutcomeStatus.PROCESSED
        )
        already = sum(r.already_processed_count for r in results)
        assert processed == 5
        assert already == 5
        assert all(r.failed_count == 0 for r in results)
