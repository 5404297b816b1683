"""
payroll_services.fixtures -- YAML payroll fixtures for the CLI and tests.

Responsibility:
    Load a YAML document describing pay periods, employees, attendance and
    overtime into the in-memory providers.

Failure modes:
    - ``KeyError`` for a missing required key; ``ValueError`` for a bad
      date, time, amount or enum value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

from payroll_config.loader import load_yaml_file, parse_date, parse_decimal, parse_time
from payroll_kernel.domain.types import (
    ApprovalState,
    AttendanceDay,
    EmployeeRecord,
    OvertimeInterval,
)
from payroll_services.providers import (
    InMemoryAttendanceProvider,
    InMemoryEmployeeProvider,
    InMemoryOvertimeProvider,
    InMemoryPayPeriodProvider,
)


@dataclass
class PayrollFixture:
    employees: InMemoryEmployeeProvider = field(default_factory=InMemoryEmployeeProvider)
    attendance: InMemoryAttendanceProvider = field(default_factory=InMemoryAttendanceProvider)
    overtime: InMemoryOvertimeProvider = field(default_factory=InMemoryOvertimeProvider)
    pay_periods: InMemoryPayPeriodProvider = field(default_factory=InMemoryPayPeriodProvider)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _optional_time(value: Any):
    return parse_time(value) if value is not None else None


def load_fixture(path: Path) -> PayrollFixture:
    """Parse a fixture file into populated in-memory providers."""
    data = load_yaml_file(path)
    fixture = PayrollFixture()

    for period in data.get("pay_periods") or ():
        fixture.pay_periods.add(
            str(period["id"]),
            parse_date(period["start_date"]),
            parse_date(period["end_date"]),
            period.get("label", ""),
        )

    for entry in data.get("employees") or ():
        employee_id = str(entry["employee_id"])
        fixture.employees.put(EmployeeRecord(
            employee_id=employee_id,
            position_title=entry["position_title"],
            basic_monthly_salary=parse_decimal(
                entry["basic_monthly_salary"], f"{employee_id}.basic_monthly_salary"
            ),
            hourly_rate=parse_decimal(entry["hourly_rate"], f"{employee_id}.hourly_rate"),
            overtime_eligible=entry.get("overtime_eligible"),
            late_deductible=entry.get("late_deductible"),
            is_active=entry.get("is_active", True),
            hire_date=parse_date(entry["hire_date"]) if entry.get("hire_date") else None,
            termination_date=(
                parse_date(entry["termination_date"]) if entry.get("termination_date") else None
            ),
        ))

        for row in entry.get("attendance") or ():
            fixture.attendance.add(employee_id, AttendanceDay(
                work_date=parse_date(row["date"]),
                time_in=_optional_time(row.get("time_in")),
                time_out=_optional_time(row.get("time_out")),
            ))

        for row in entry.get("overtime") or ():
            fixture.overtime.add(employee_id, OvertimeInterval(
                start=_parse_datetime(row["start"]),
                end=_parse_datetime(row["end"]),
                approval_state=ApprovalState(row.get("approval_state", "pending")),
                interval_id=row.get("id"),
            ))

    return fixture
