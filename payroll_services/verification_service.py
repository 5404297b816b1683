"""
payroll_services.verification_service -- Period-level payroll verification.

Responsibility:
    Re-check every stored calculation of a pay period against the rate
    table in effect and the employee's compensation, and produce a
    ``PeriodVerificationReport`` with verified/discrepancy counts, money
    totals and a compliance score.

Architecture position:
    Services -- reads the sink and providers, delegates every check to the
    pure ``payroll_engines.verification`` module.

Invariants enforced:
    - Verification never writes; stored rows are reported on, not fixed.
    - Profiles are resolved from the employee records as they are now, so
      a compensation change after the run shows up as a basic-pay
      discrepancy.

Failure modes:
    - ``PayPeriodNotFoundError`` / rate-table errors propagate.
    - A stored row whose employee no longer exists is a discrepancy, not
      an exception.
    - So is a stored row whose employee record now carries a negative
      salary or hourly rate.
"""

from __future__ import annotations

from decimal import Decimal

from payroll_engines.verification import (
    DEFAULT_STATUTORY_TOLERANCE,
    PeriodVerificationReport,
    VerificationFinding,
    build_period_report,
    verify_calculation,
)
from payroll_kernel.exceptions import EmployeeNotFoundError, InvalidCompensationError
from payroll_kernel.logging_config import LogContext, get_logger
from payroll_services.processing_orchestrator import RulesProvider
from payroll_services.providers import (
    EmployeeProvider,
    PayPeriodProvider,
    PositionDirectory,
    TitleKeywordPositionDirectory,
    resolve_compensation_profile,
)
from payroll_services.sinks import CalculationSink, SqlAlchemyCalculationSink

logger = get_logger("services.verification")


class PayrollVerificationService:
    """Verifies stored payroll for a period."""

    def __init__(
        self,
        sink: CalculationSink,
        employees: EmployeeProvider,
        pay_periods: PayPeriodProvider,
        rules_provider: RulesProvider,
        positions: PositionDirectory | None = None,
        tolerance: Decimal = DEFAULT_STATUTORY_TOLERANCE,
    ):
        self._sink = sink
        self._employees = employees
        self._pay_periods = pay_periods
        self._rules_provider = rules_provider
        self._positions = positions or TitleKeywordPositionDirectory()
        self._tolerance = tolerance

    def verify_period(self, pay_period_id: str) -> PeriodVerificationReport:
        with LogContext.bind(pay_period_id=pay_period_id):
            pay_period = self._pay_periods.get_pay_period(pay_period_id)
            rules = self._rules_provider(pay_period)
            calculations = self._sink.list_for_period(pay_period_id)

            findings: list[VerificationFinding] = []
            for calculation in calculations:
                try:
                    employee = self._employees.get_employee(calculation.employee_id)
                except EmployeeNotFoundError:
                    logger.warning("verification_employee_missing", extra={
                        "calculation_employee_id": calculation.employee_id,
                    })
                    findings.append(VerificationFinding(
                        employee_id=calculation.employee_id,
                        pay_period_id=pay_period_id,
                        discrepancies=("employee record not found",),
                    ))
                    continue

                try:
                    profile = resolve_compensation_profile(employee, self._positions)
                except InvalidCompensationError as exc:
                    logger.warning("verification_invalid_compensation", extra={
                        "calculation_employee_id": calculation.employee_id,
                        "field_name": exc.field_name,
                    })
                    findings.append(VerificationFinding(
                        employee_id=calculation.employee_id,
                        pay_period_id=pay_period_id,
                        discrepancies=(f"employee record has invalid {exc.field_name}",),
                    ))
                    continue

                finding = verify_calculation(calculation, profile, rules, self._tolerance)

                if (
                    isinstance(self._sink, SqlAlchemyCalculationSink)
                    and not self._sink.has_integrity(calculation.employee_id, pay_period_id)
                ):
                    finding = VerificationFinding(
                        employee_id=finding.employee_id,
                        pay_period_id=finding.pay_period_id,
                        discrepancies=finding.discrepancies
                        + ("stored row does not match its calculation hash",),
                    )
                findings.append(finding)

            return build_period_report(pay_period_id, calculations, findings)
