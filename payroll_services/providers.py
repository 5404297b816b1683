"""
payroll_services.providers -- Input collaborators of the payroll run.

Responsibility:
    Declare the read-side collaborators the orchestrator depends on
    (employees, positions, attendance, overtime, pay periods) as
    ``typing.Protocol``s, provide in-memory implementations used by tests
    and the CLI, and derive the per-calculation ``CompensationProfile``
    from an employee record.

Architecture position:
    Services -- adapters at the edge of the pure core.  Imports kernel
    domain types and exceptions only.

Invariants enforced:
    - Providers return frozen domain objects; callers never mutate them.
    - Range queries are inclusive of both end dates.
    - ``resolve_compensation_profile`` fills unset eligibility flags from
      the category: rank-and-file employees are overtime-eligible and
      late-deductible, salaried employees are neither.

Failure modes:
    - ``EmployeeNotFoundError`` / ``PayPeriodNotFoundError`` for unknown ids.
    - ``IneligibleEmployeeError`` from ``check_eligibility``.
    - ``InvalidCompensationError`` from ``resolve_compensation_profile`` for
      a negative salary or hourly rate.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Protocol, runtime_checkable

from payroll_kernel.domain.types import (
    AttendanceDay,
    CompensationProfile,
    EmployeeRecord,
    OvertimeInterval,
    PayPeriod,
    PayrollCategory,
)
from payroll_kernel.exceptions import (
    EmployeeNotFoundError,
    IneligibleEmployeeError,
    InvalidCompensationError,
    PayPeriodNotFoundError,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("services.providers")


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class EmployeeProvider(Protocol):
    def get_employee(self, employee_id: str) -> EmployeeRecord: ...

    def list_employee_ids(self) -> list[str]: ...


@runtime_checkable
class PositionDirectory(Protocol):
    def category_for(self, position_title: str) -> PayrollCategory: ...


@runtime_checkable
class AttendanceProvider(Protocol):
    def attendance_for(
        self, employee_id: str, start: date, end: date
    ) -> Sequence[AttendanceDay]: ...


@runtime_checkable
class OvertimeProvider(Protocol):
    def overtime_for(
        self, employee_id: str, start: date, end: date
    ) -> Sequence[OvertimeInterval]: ...


@runtime_checkable
class PayPeriodProvider(Protocol):
    def get_pay_period(self, pay_period_id: str) -> PayPeriod: ...


# ---------------------------------------------------------------------------
# Position classification
# ---------------------------------------------------------------------------


class TitleKeywordPositionDirectory:
    """
    Classify positions by title.

    A title containing both "rank" and "file" (any case) is rank-and-file;
    explicit ``overrides`` (exact title -> category) take precedence.
    """

    def __init__(self, overrides: dict[str, PayrollCategory] | None = None):
        self._overrides = dict(overrides or {})

    def category_for(self, position_title: str) -> PayrollCategory:
        if position_title in self._overrides:
            return self._overrides[position_title]
        lowered = position_title.lower()
        if "rank" in lowered and "file" in lowered:
            return PayrollCategory.RANK_AND_FILE
        return PayrollCategory.NON_RANK_AND_FILE


def resolve_compensation_profile(
    employee: EmployeeRecord,
    positions: PositionDirectory,
) -> CompensationProfile:
    """Build the pay basis for one calculation from an employee record."""
    for field_name in ("basic_monthly_salary", "hourly_rate"):
        amount = getattr(employee, field_name)
        if amount < 0:
            raise InvalidCompensationError(employee.employee_id, field_name, str(amount))

    category = positions.category_for(employee.position_title)
    hourly = category.is_hourly

    overtime_eligible = employee.overtime_eligible
    if overtime_eligible is None:
        overtime_eligible = hourly
    late_deductible = employee.late_deductible
    if late_deductible is None:
        late_deductible = hourly

    return CompensationProfile(
        employee_id=employee.employee_id,
        basic_monthly_salary=employee.basic_monthly_salary,
        hourly_rate=employee.hourly_rate,
        category=category,
        overtime_eligible=overtime_eligible,
        late_deductible=late_deductible,
    )


def check_eligibility(employee: EmployeeRecord, pay_period: PayPeriod) -> None:
    """
    Raise ``IneligibleEmployeeError`` if the employee cannot be paid for the period.

    Inactive employees, employees hired after the period ends and employees
    terminated before it starts are ineligible.
    """
    reason = None
    if not employee.is_active:
        reason = "employee is inactive"
    elif employee.hire_date is not None and employee.hire_date > pay_period.end_date:
        reason = f"hired {employee.hire_date.isoformat()} after period end"
    elif (
        employee.termination_date is not None
        and employee.termination_date < pay_period.start_date
    ):
        reason = f"terminated {employee.termination_date.isoformat()} before period start"

    if reason is not None:
        raise IneligibleEmployeeError(employee.employee_id, pay_period.pay_period_id, reason)


# ---------------------------------------------------------------------------
# In-memory implementations
# ---------------------------------------------------------------------------


class InMemoryEmployeeProvider:
    """Employee records keyed by id; listing follows insertion order."""

    def __init__(self, employees: Iterable[EmployeeRecord] = ()):
        self._lock = threading.Lock()
        self._employees: dict[str, EmployeeRecord] = {}
        for employee in employees:
            self.put(employee)

    def put(self, employee: EmployeeRecord) -> None:
        with self._lock:
            self._employees[employee.employee_id] = employee

    def get_employee(self, employee_id: str) -> EmployeeRecord:
        with self._lock:
            employee = self._employees.get(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee

    def list_employee_ids(self) -> list[str]:
        with self._lock:
            return list(self._employees)


class InMemoryAttendanceProvider:
    """Attendance rows per employee, filtered by date range on read."""

    def __init__(self, rows: dict[str, Iterable[AttendanceDay]] | None = None):
        self._rows: dict[str, list[AttendanceDay]] = defaultdict(list)
        for employee_id, days in (rows or {}).items():
            self._rows[employee_id].extend(days)

    def add(self, employee_id: str, day: AttendanceDay) -> None:
        self._rows[employee_id].append(day)

    def attendance_for(
        self, employee_id: str, start: date, end: date
    ) -> list[AttendanceDay]:
        return [d for d in self._rows.get(employee_id, ()) if start <= d.work_date <= end]


class InMemoryOvertimeProvider:
    """Overtime intervals per employee, filtered by start date on read."""

    def __init__(self, rows: dict[str, Iterable[OvertimeInterval]] | None = None):
        self._rows: dict[str, list[OvertimeInterval]] = defaultdict(list)
        for employee_id, intervals in (rows or {}).items():
            self._rows[employee_id].extend(intervals)

    def add(self, employee_id: str, interval: OvertimeInterval) -> None:
        self._rows[employee_id].append(interval)

    def overtime_for(
        self, employee_id: str, start: date, end: date
    ) -> list[OvertimeInterval]:
        return [
            i for i in self._rows.get(employee_id, ())
            if start <= i.start.date() <= end
        ]


class InMemoryPayPeriodProvider:
    """
    Pay periods keyed by id.

    Periods are stored as raw ``(start, end, label)`` so that an inverted
    range surfaces as ``InvalidPayPeriodError`` when the period is fetched
    for a run rather than when it is registered.
    """

    def __init__(self) -> None:
        self._periods: dict[str, tuple[date, date, str]] = {}

    def add(self, pay_period_id: str, start_date: date, end_date: date, label: str = "") -> None:
        self._periods[pay_period_id] = (start_date, end_date, label)

    def get_pay_period(self, pay_period_id: str) -> PayPeriod:
        try:
            start, end, label = self._periods[pay_period_id]
        except KeyError:
            raise PayPeriodNotFoundError(pay_period_id) from None
        return PayPeriod(pay_period_id, start, end, label)
