"""
Payroll Domain Types (``payroll_kernel.domain.types``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of a payroll
calculation: employee records, compensation profiles, pay periods,
attendance days, overtime intervals, statutory contribution lines,
anomalies, and the final ``PayrollCalculation``.

Architecture position
---------------------
**Kernel domain layer** -- pure data definitions with ZERO I/O.  Consumed by
``payroll_engines`` and ``payroll_services``.

Invariants enforced
-------------------
* All types are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``PayPeriod`` cannot be constructed with ``end_date < start_date``.
* ``CompensationProfile`` cannot carry a negative salary or hourly rate.

Failure modes
-------------
* ``InvalidPayPeriodError`` on an inverted period.
* ``ValueError`` on negative compensation amounts.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.values import ZERO
from payroll_kernel.exceptions import InvalidPayPeriodError


class PayrollCategory(str, Enum):
    """Payroll category resolved from an employee's position."""

    RANK_AND_FILE = "rank_and_file"  # Hourly basis, overtime and late rules apply
    NON_RANK_AND_FILE = "non_rank_and_file"  # Salaried basis

    @property
    def is_hourly(self) -> bool:
        return self is PayrollCategory.RANK_AND_FILE


class ApprovalState(str, Enum):
    """Approval state of an overtime request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AnomalyCode(str, Enum):
    """Reviewable, non-fatal conditions found during a calculation."""

    MALFORMED_PUNCH = "MALFORMED_PUNCH"
    MALFORMED_OVERTIME_INTERVAL = "MALFORMED_OVERTIME_INTERVAL"
    NEGATIVE_NET_SALARY = "NEGATIVE_NET_SALARY"


@dataclass(frozen=True)
class CalculationAnomaly:
    """A condition that was tolerated but must be visible to reviewers."""

    code: AnomalyCode
    message: str
    reference: str | None = None  # e.g. the work date or interval id


@dataclass(frozen=True)
class EmployeeRecord:
    """
    Employee data as supplied by the employee provider.

    ``overtime_eligible`` / ``late_deductible`` of ``None`` mean "follow the
    category default".
    """

    employee_id: str
    position_title: str
    basic_monthly_salary: Decimal
    hourly_rate: Decimal
    overtime_eligible: bool | None = None
    late_deductible: bool | None = None
    is_active: bool = True
    hire_date: date | None = None
    termination_date: date | None = None


@dataclass(frozen=True)
class CompensationProfile:
    """An employee's pay basis for one calculation."""

    employee_id: str
    basic_monthly_salary: Decimal
    hourly_rate: Decimal
    category: PayrollCategory
    overtime_eligible: bool
    late_deductible: bool

    def __post_init__(self) -> None:
        if self.basic_monthly_salary < 0:
            raise ValueError("basic_monthly_salary cannot be negative")
        if self.hourly_rate < 0:
            raise ValueError("hourly_rate cannot be negative")


@dataclass(frozen=True)
class PayPeriod:
    """A semi-monthly pay period, inclusive of both end dates."""

    pay_period_id: str
    start_date: date
    end_date: date
    label: str = ""

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise InvalidPayPeriodError(
                self.pay_period_id,
                self.start_date.isoformat(),
                self.end_date.isoformat(),
            )

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    def days(self) -> Iterator[date]:
        """Every calendar day in the period, in order."""
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)


@dataclass(frozen=True)
class AttendanceDay:
    """Time-in / time-out observation for one employee on one day."""

    work_date: date
    time_in: time | None = None
    time_out: time | None = None

    @property
    def is_complete(self) -> bool:
        return self.time_in is not None and self.time_out is not None


@dataclass(frozen=True)
class OvertimeInterval:
    """A requested overtime interval and its approval state."""

    start: datetime
    end: datetime
    approval_state: ApprovalState = ApprovalState.PENDING
    interval_id: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.approval_state is ApprovalState.APPROVED


@dataclass(frozen=True)
class ContributionLine:
    """One itemized statutory contribution."""

    code: str
    name: str
    base: Decimal  # Amount the rate was applied to (after floor/ceiling)
    rate: Decimal  # As decimal (e.g., 0.045 for 4.5%)
    amount: Decimal


@dataclass(frozen=True)
class StatutoryDeductions:
    """Itemized statutory contributions; ``total`` sums rounded lines only."""

    lines: tuple[ContributionLine, ...] = ()

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)

    def amount_for(self, code: str) -> Decimal:
        for line in self.lines:
            if line.code == code:
                return line.amount
        return ZERO


@dataclass(frozen=True)
class PayrollCalculation:
    """
    Immutable output of one engine run.

    Identities (exact, two decimals):
        gross_income = basic_pay + attendance_earnings + overtime_pay
        total_deductions = statutory_deductions.total + withholding_tax
        net_salary = gross_income - total_deductions   (never clamped)
    """

    employee_id: str
    pay_period_id: str
    basic_pay: Decimal
    attendance_earnings: Decimal
    overtime_pay: Decimal
    gross_income: Decimal
    statutory_deductions: StatutoryDeductions
    withholding_tax: Decimal
    total_deductions: Decimal
    net_salary: Decimal

    # Audit context
    category: PayrollCategory = PayrollCategory.NON_RANK_AND_FILE
    taxable_income: Decimal = ZERO
    worked_hours: Decimal = ZERO
    late_hours: Decimal = ZERO
    absent_days: int = 0
    overtime_hours: Decimal = ZERO
    config_version: str | None = None
    anomalies: tuple[CalculationAnomaly, ...] = field(default_factory=tuple)

    @property
    def requires_review(self) -> bool:
        return any(a.code is AnomalyCode.NEGATIVE_NET_SALARY for a in self.anomalies)

    @property
    def money_fields(self) -> dict[str, Decimal]:
        """Every stored monetary field, by name."""
        return {
            "basic_pay": self.basic_pay,
            "attendance_earnings": self.attendance_earnings,
            "overtime_pay": self.overtime_pay,
            "gross_income": self.gross_income,
            "statutory_total": self.statutory_deductions.total,
            "withholding_tax": self.withholding_tax,
            "total_deductions": self.total_deductions,
            "net_salary": self.net_salary,
        }
