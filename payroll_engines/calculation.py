"""
Payroll Calculation Engine (``payroll_engines.calculation``).

Responsibility
--------------
Compute one employee's pay for one pay period: basic pay, attendance
earnings, overtime pay, gross income, itemized statutory deductions,
withholding tax, total deductions and net salary.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads, no
hidden state.  All inputs (profile, attendance, overtime, period, rules)
are passed in explicitly; the result is a frozen ``PayrollCalculation``.

Invariants enforced
-------------------
* Every monetary field is rounded half-up to 2 places at the moment it is
  produced; sums are formed only from already-rounded fields.
* ``gross_income = basic_pay + attendance_earnings + overtime_pay``.
* ``total_deductions = statutory total + withholding_tax``.
* ``net_salary = gross_income - total_deductions``, never clamped.
* Same inputs always produce the same calculation.

Failure modes
-------------
* ``ProfileMismatchError`` when the profile belongs to another employee.
* ``DuplicateAttendanceDayError`` from attendance aggregation.
* Malformed punches, reversed overtime intervals and negative net salary
  are recorded as anomalies on the result, never raised.

Audit relevance
---------------
The result carries the intermediate quantities (taxable income, worked,
late and overtime hours, absent days) and the rules version, so a reviewer
can re-derive every field without re-reading the inputs.
"""

from __future__ import annotations

import time
from collections.abc import Iterable
from decimal import Decimal

from payroll_engines.attendance import AttendanceSummary, aggregate_attendance
from payroll_engines.overtime import aggregate_overtime, compute_overtime_pay
from payroll_engines.rules import ContributionBasis, PayrollRules
from payroll_engines.statutory import StatutoryDeductionCalculator
from payroll_engines.tracer import traced_engine
from payroll_engines.withholding import WithholdingTaxCalculator
from payroll_kernel.domain.types import (
    AnomalyCode,
    AttendanceDay,
    CalculationAnomaly,
    CompensationProfile,
    OvertimeInterval,
    PayPeriod,
    PayrollCalculation,
    PayrollCategory,
)
from payroll_kernel.domain.values import ZERO, round_money
from payroll_kernel.exceptions import ProfileMismatchError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.calculation")

ENGINE_VERSION = "1.0"


class PayrollCalculationEngine:
    """
    Deterministic payroll calculator for a single employee and period.

    Contract:
        ``calculate`` is a pure function of its arguments and the rules
        given at construction.

    Guarantees:
        - The three sum identities hold exactly on the result.
        - A negative net salary is returned as computed and flagged with a
          ``NEGATIVE_NET_SALARY`` anomaly (``requires_review`` is True).

    Non-goals:
        - Does not persist, fetch or cache anything.
    """

    def __init__(self, rules: PayrollRules):
        self._rules = rules
        self._statutory = StatutoryDeductionCalculator(rules.contributions)
        self._withholding = WithholdingTaxCalculator(rules.brackets)

    @property
    def rules(self) -> PayrollRules:
        return self._rules

    @property
    def withholding_calculator(self) -> WithholdingTaxCalculator:
        return self._withholding

    @traced_engine(
        "payroll_calculation",
        ENGINE_VERSION,
        fingerprint_fields=("compensation", "attendance", "overtime", "pay_period"),
    )
    def calculate(
        self,
        compensation: CompensationProfile,
        attendance: Iterable[AttendanceDay],
        overtime: Iterable[OvertimeInterval],
        pay_period: PayPeriod,
        employee_id: str | None = None,
    ) -> PayrollCalculation:
        """
        Compute the payroll calculation.

        Args:
            compensation: The employee's pay basis.
            attendance: Attendance rows; rows outside the period are ignored.
            overtime: Overtime intervals; only approved, in-period ones count.
            pay_period: The period being paid.
            employee_id: When given, must match ``compensation.employee_id``.

        Raises:
            ProfileMismatchError: If ``employee_id`` names a different employee.
            DuplicateAttendanceDayError: If two attendance rows share a date.
        """
        if employee_id is not None and employee_id != compensation.employee_id:
            raise ProfileMismatchError(employee_id, compensation.employee_id)

        t0 = time.monotonic()
        rules = self._rules
        emp = compensation.employee_id
        attendance = tuple(attendance)
        overtime = tuple(overtime)

        logger.info("payroll_calculation_started", extra={
            "employee_id": emp,
            "pay_period_id": pay_period.pay_period_id,
            "category": compensation.category.value,
            "attendance_rows": len(attendance),
            "overtime_intervals": len(overtime),
        })

        att = aggregate_attendance(attendance, pay_period, rules.schedule, employee_id=emp)
        ot = aggregate_overtime(overtime, pay_period, employee_id=emp)

        # (a) Basic pay: half the monthly salary, regardless of attendance
        basic_pay = round_money(compensation.basic_monthly_salary / rules.periods_per_month)

        # (b) Attendance earnings / adjustments
        attendance_earnings = self._attendance_earnings(compensation, att)

        # (c) Overtime
        overtime_pay = ZERO
        overtime_hours = ZERO
        if compensation.overtime_eligible:
            overtime_hours = ot.total_hours
            overtime_pay = compute_overtime_pay(
                overtime_hours,
                compensation.hourly_rate,
                rules.overtime.multiplier_for(compensation.category),
            )

        # (d) Gross
        gross_income = basic_pay + attendance_earnings + overtime_pay

        # (e) Statutory contributions
        if rules.contribution_basis is ContributionBasis.GROSS:
            statutory_base = max(gross_income, ZERO)
        else:
            statutory_base = compensation.basic_monthly_salary
        statutory = self._statutory.calculate(statutory_base)

        # (f) Withholding; the zero floor applies to the lookup only
        taxable_income = round_money(
            max(compensation.basic_monthly_salary - statutory.total, ZERO)
        )
        withholding_tax = self._withholding.calculate(taxable_income)

        # (g), (h)
        total_deductions = statutory.total + withholding_tax
        net_salary = gross_income - total_deductions

        anomalies = list(att.anomalies) + list(ot.anomalies)
        if net_salary < 0:
            anomalies.append(CalculationAnomaly(
                code=AnomalyCode.NEGATIVE_NET_SALARY,
                message=f"net salary {net_salary} is negative",
                reference=pay_period.pay_period_id,
            ))
            logger.warning("payroll_negative_net_salary", extra={
                "employee_id": emp,
                "pay_period_id": pay_period.pay_period_id,
                "gross_income": str(gross_income),
                "total_deductions": str(total_deductions),
                "net_salary": str(net_salary),
            })

        result = PayrollCalculation(
            employee_id=emp,
            pay_period_id=pay_period.pay_period_id,
            basic_pay=basic_pay,
            attendance_earnings=attendance_earnings,
            overtime_pay=overtime_pay,
            gross_income=gross_income,
            statutory_deductions=statutory,
            withholding_tax=withholding_tax,
            total_deductions=total_deductions,
            net_salary=net_salary,
            category=compensation.category,
            taxable_income=taxable_income,
            worked_hours=att.total_worked_hours,
            late_hours=att.total_late_hours,
            absent_days=att.absent_weekday_count,
            overtime_hours=overtime_hours,
            config_version=rules.version,
            anomalies=tuple(anomalies),
        )

        duration_ms = round((time.monotonic() - t0) * 1000, 2)
        logger.info("payroll_calculation_completed", extra={
            "employee_id": emp,
            "pay_period_id": pay_period.pay_period_id,
            "basic_pay": str(basic_pay),
            "attendance_earnings": str(attendance_earnings),
            "overtime_pay": str(overtime_pay),
            "gross_income": str(gross_income),
            "statutory_total": str(statutory.total),
            "withholding_tax": str(withholding_tax),
            "net_salary": str(net_salary),
            "anomaly_count": len(anomalies),
            "duration_ms": duration_ms,
        })
        return result

    def _attendance_earnings(
        self,
        compensation: CompensationProfile,
        att: AttendanceSummary,
    ) -> Decimal:
        rate = compensation.hourly_rate
        late_deduction = ZERO
        if compensation.late_deductible:
            late_deduction = round_money(att.total_late_hours * rate)

        if compensation.category is PayrollCategory.RANK_AND_FILE:
            return round_money(att.total_worked_hours * rate) - late_deduction

        daily_rate = rate * self._rules.schedule.standard_hours_per_day
        absence_deduction = round_money(att.absent_weekday_count * daily_rate)
        return ZERO - absence_deduction - late_deduction

