"""
payroll_services.processing_orchestrator -- Idempotent payroll runs.

Responsibility:
    Drive the calculation engine for one employee or for every employee of
    a pay period: gather inputs from the providers, compute, and write the
    result through the sink exactly once per (employee, period).

Architecture position:
    Services -- stateful orchestration over the pure engines.  Composes
    the providers (``payroll_services.providers``), the rate tables
    (``payroll_config``), ``PayrollCalculationEngine`` and a
    ``CalculationSink``.

Invariants enforced:
    - At most one stored calculation per (employee_id, pay_period_id); the
      sink is the only arbiter.
    - A pair already in the sink is reported ALREADY_PROCESSED without
      recomputation.
    - One employee's typed failure never stops the rest of the period.
    - ``process_period`` outcomes follow the directory's listing order,
      sequential or threaded.
    - Rules are looked up once per period per run and released when the
      run ends, so a table published between runs applies to the next run.

Failure modes:
    - ``PayrollKernelError`` subclasses become FAILED outcomes carrying the
      error code and message.
    - Anything else (programming errors, database outages) propagates.

Audit relevance:
    Every run binds ``batch_id``, ``employee_id`` and ``pay_period_id`` into
    the log context, and each employee's outcome is logged with its code.
"""

from __future__ import annotations

import contextvars
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from pathlib import Path
from uuid import uuid4

from payroll_config import get_active_config
from payroll_engines.calculation import PayrollCalculationEngine
from payroll_engines.rules import PayrollRules
from payroll_kernel.domain.types import PayPeriod, PayrollCalculation
from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import PayrollKernelError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_services.providers import (
    AttendanceProvider,
    EmployeeProvider,
    OvertimeProvider,
    PayPeriodProvider,
    PositionDirectory,
    TitleKeywordPositionDirectory,
    check_eligibility,
    resolve_compensation_profile,
)
from payroll_services.sinks import CalculationSink, UpsertOutcome

logger = get_logger("services.processing")

RulesProvider = Callable[[PayPeriod], PayrollRules]


class OutcomeStatus(str, Enum):
    PROCESSED = "processed"
    ALREADY_PROCESSED = "already_processed"
    FAILED = "failed"


@dataclass(frozen=True)
class EmployeeOutcome:
    """What happened to one employee in a run."""

    employee_id: str
    status: OutcomeStatus
    error_code: str | None = None
    message: str | None = None
    calculation: PayrollCalculation | None = None

    @property
    def is_success(self) -> bool:
        return self.status is not OutcomeStatus.FAILED


@dataclass(frozen=True)
class PayrollProcessingResult:
    """
    Aggregate of a period run.

    ``processed_count`` counts every successful employee (newly processed
    or already processed); totals cover only calculations computed and
    inserted by this run.
    """

    pay_period_id: str
    processed_count: int
    failed_count: int
    outcomes: tuple[EmployeeOutcome, ...] = field(default_factory=tuple)
    already_processed_count: int = 0
    flagged_for_review: tuple[str, ...] = ()
    total_gross: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_net: Decimal = ZERO

    @classmethod
    def from_outcomes(
        cls, pay_period_id: str, outcomes: list[EmployeeOutcome]
    ) -> PayrollProcessingResult:
        fresh = [
            o.calculation for o in outcomes
            if o.status is OutcomeStatus.PROCESSED and o.calculation is not None
        ]
        return cls(
            pay_period_id=pay_period_id,
            processed_count=sum(1 for o in outcomes if o.is_success),
            failed_count=sum(1 for o in outcomes if not o.is_success),
            outcomes=tuple(outcomes),
            already_processed_count=sum(
                1 for o in outcomes if o.status is OutcomeStatus.ALREADY_PROCESSED
            ),
            flagged_for_review=tuple(c.employee_id for c in fresh if c.requires_review),
            total_gross=sum((c.gross_income for c in fresh), ZERO),
            total_deductions=sum((c.total_deductions for c in fresh), ZERO),
            total_net=sum((c.net_salary for c in fresh), ZERO),
        )


class _RunEngines:
    """Calculation engines of one run, keyed by pay period id."""

    def __init__(self, rules_provider: RulesProvider):
        self._rules_provider = rules_provider
        self._engines: dict[str, PayrollCalculationEngine] = {}
        self._lock = threading.Lock()

    def for_period(self, pay_period: PayPeriod) -> PayrollCalculationEngine:
        # One rules lookup per period, shared by every employee of the run
        with self._lock:
            engine = self._engines.get(pay_period.pay_period_id)
            if engine is None:
                engine = PayrollCalculationEngine(self._rules_provider(pay_period))
                self._engines[pay_period.pay_period_id] = engine
            return engine


def active_rules(jurisdiction: str, config_dir: Path | None = None) -> RulesProvider:
    """Rules provider selecting the rate table in effect at each period's end date."""

    def _rules_for(pay_period: PayPeriod) -> PayrollRules:
        return get_active_config(jurisdiction, pay_period.end_date, config_dir).rules

    return _rules_for


class PayrollProcessingOrchestrator:
    """
    Runs payroll for employees and periods.

    Contract:
        ``process_one`` may be called any number of times, from any number
        of threads, for the same pair; the sink ends up with one row.

    Non-goals:
        - No authorization checks; callers decide who may run payroll.
        - Does not reprocess or correct an already stored calculation.
    """

    def __init__(
        self,
        employees: EmployeeProvider,
        attendance: AttendanceProvider,
        overtime: OvertimeProvider,
        pay_periods: PayPeriodProvider,
        sink: CalculationSink,
        rules_provider: RulesProvider,
        positions: PositionDirectory | None = None,
    ):
        self._employees = employees
        self._attendance = attendance
        self._overtime = overtime
        self._pay_periods = pay_periods
        self._sink = sink
        self._rules_provider = rules_provider
        self._positions = positions or TitleKeywordPositionDirectory()

    def process_one(
        self,
        employee_id: str,
        pay_period_id: str,
        actor_id: str | None = None,
    ) -> EmployeeOutcome:
        """Process one employee for one pay period; see class contract."""
        return self._process(
            employee_id, pay_period_id, actor_id, _RunEngines(self._rules_provider),
        )

    def _process(
        self,
        employee_id: str,
        pay_period_id: str,
        actor_id: str | None,
        engines: _RunEngines,
    ) -> EmployeeOutcome:
        with LogContext.bind(
            employee_id=employee_id, pay_period_id=pay_period_id, actor_id=actor_id,
        ):
            existing = self._sink.get(employee_id, pay_period_id)
            if existing is not None:
                logger.info("payroll_already_processed", extra={"source": "precheck"})
                return EmployeeOutcome(
                    employee_id=employee_id,
                    status=OutcomeStatus.ALREADY_PROCESSED,
                    calculation=existing,
                )

            try:
                calculation = self._compute(employee_id, pay_period_id, engines)
            except PayrollKernelError as exc:
                logger.warning("payroll_employee_failed", extra={
                    "error_code": exc.code,
                    "error_message": str(exc),
                })
                return EmployeeOutcome(
                    employee_id=employee_id,
                    status=OutcomeStatus.FAILED,
                    error_code=exc.code,
                    message=str(exc),
                )

            upsert = self._sink.upsert_if_absent(employee_id, pay_period_id, calculation)
            if upsert is UpsertOutcome.ALREADY_PRESENT:
                logger.info("payroll_already_processed", extra={"source": "sink"})
                return EmployeeOutcome(
                    employee_id=employee_id,
                    status=OutcomeStatus.ALREADY_PROCESSED,
                    calculation=self._sink.get(employee_id, pay_period_id),
                )

            logger.info("payroll_employee_processed", extra={
                "net_salary": str(calculation.net_salary),
                "requires_review": calculation.requires_review,
            })
            return EmployeeOutcome(
                employee_id=employee_id,
                status=OutcomeStatus.PROCESSED,
                calculation=calculation,
            )

    def process_period(
        self,
        pay_period_id: str,
        max_workers: int | None = None,
        actor_id: str | None = None,
    ) -> PayrollProcessingResult:
        """
        Process every employee the directory lists.

        Args:
            pay_period_id: Period to run.
            max_workers: When greater than 1, employees are processed on a
                thread pool of that size.
            actor_id: Recorded in the log context.
        """
        batch_id = str(uuid4())
        engines = _RunEngines(self._rules_provider)
        with LogContext.bind(batch_id=batch_id, pay_period_id=pay_period_id, actor_id=actor_id):
            employee_ids = self._employees.list_employee_ids()
            logger.info("payroll_period_started", extra={
                "employee_count": len(employee_ids),
                "max_workers": max_workers,
            })

            if max_workers and max_workers > 1:
                with ThreadPoolExecutor(max_workers=max_workers) as pool:
                    # Each task runs in its own copy of the context so the
                    # batch fields reach worker-thread log records
                    futures = [
                        pool.submit(
                            contextvars.copy_context().run,
                            self._process, employee_id, pay_period_id, actor_id, engines,
                        )
                        for employee_id in employee_ids
                    ]
                    outcomes = [f.result() for f in futures]
            else:
                outcomes = [
                    self._process(employee_id, pay_period_id, actor_id, engines)
                    for employee_id in employee_ids
                ]

            result = PayrollProcessingResult.from_outcomes(pay_period_id, outcomes)
            logger.info("payroll_period_completed", extra={
                "processed_count": result.processed_count,
                "already_processed_count": result.already_processed_count,
                "failed_count": result.failed_count,
                "flagged_for_review": list(result.flagged_for_review),
                "total_gross": str(result.total_gross),
                "total_deductions": str(result.total_deductions),
                "total_net": str(result.total_net),
            })
            return result

    def _compute(
        self, employee_id: str, pay_period_id: str, engines: _RunEngines,
    ) -> PayrollCalculation:
        pay_period = self._pay_periods.get_pay_period(pay_period_id)
        employee = self._employees.get_employee(employee_id)
        check_eligibility(employee, pay_period)
        profile = resolve_compensation_profile(employee, self._positions)

        attendance = self._attendance.attendance_for(
            employee_id, pay_period.start_date, pay_period.end_date,
        )
        overtime = self._overtime.overtime_for(
            employee_id, pay_period.start_date, pay_period.end_date,
        )

        engine = engines.for_period(pay_period)
        return engine.calculate(
            profile, attendance, overtime, pay_period, employee_id=employee_id,
        )
