"""
Attendance Aggregation Engine (``payroll_engines.attendance``).

Responsibility
--------------
Reduce an employee's daily time-in / time-out rows for one pay period to
worked hours, late hours and absent workdays.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
The work schedule is passed in; nothing is read from configuration.

Invariants enforced
-------------------
* Worked and late hours are rounded half-up to 2 places per day, then
  summed; a day never contributes negative hours.
* A workday without both punches is one whole absent day (no partial pay).
* At most one row per calendar day.

Failure modes
-------------
* ``DuplicateAttendanceDayError`` when two rows share a work date.
* A reversed punch (time-out before time-in) is NOT an error: the day
  yields zero worked hours and a ``MALFORMED_PUNCH`` anomaly.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from payroll_engines.rules import WorkSchedule
from payroll_kernel.domain.types import (
    AnomalyCode,
    AttendanceDay,
    CalculationAnomaly,
    PayPeriod,
)
from payroll_kernel.domain.values import ZERO, minutes_between, minutes_to_hours
from payroll_kernel.exceptions import DuplicateAttendanceDayError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.attendance")


@dataclass(frozen=True)
class AttendanceSummary:
    """Totals for one employee over one pay period."""

    total_worked_hours: Decimal = ZERO
    total_late_hours: Decimal = ZERO
    absent_weekday_count: int = 0
    days_present: int = 0
    malformed_days: int = 0
    anomalies: tuple[CalculationAnomaly, ...] = field(default_factory=tuple)


def aggregate_attendance(
    days: Iterable[AttendanceDay],
    pay_period: PayPeriod,
    schedule: WorkSchedule | None = None,
    employee_id: str | None = None,
) -> AttendanceSummary:
    """
    Aggregate attendance rows over a pay period.

    Rows dated outside the period are ignored.  A workday (per
    ``schedule.work_weekdays``) inside the period that has no row, or a row
    missing either punch, counts as absent.

    Args:
        days: Attendance rows, in any order.
        pay_period: The period being paid.
        schedule: Work schedule; the standard 08:00 schedule when omitted.
        employee_id: Only used to label errors and log records.

    Raises:
        DuplicateAttendanceDayError: Two rows for the same date.
    """
    schedule = schedule or WorkSchedule()

    seen: set = set()
    present: set = set()
    worked_hours = ZERO
    late_hours = ZERO
    malformed_days = 0
    anomalies: list[CalculationAnomaly] = []

    for day in days:
        if day.work_date in seen:
            logger.error("attendance_duplicate_day", extra={
                "employee_id": employee_id,
                "work_date": day.work_date.isoformat(),
            })
            raise DuplicateAttendanceDayError(day.work_date.isoformat(), employee_id)
        seen.add(day.work_date)

        if not pay_period.contains(day.work_date):
            logger.debug("attendance_day_outside_period", extra={
                "employee_id": employee_id,
                "work_date": day.work_date.isoformat(),
                "pay_period_id": pay_period.pay_period_id,
            })
            continue

        if not day.is_complete:
            continue
        present.add(day.work_date)

        span_minutes = minutes_between(day.time_in, day.time_out)
        if span_minutes < 0:
            malformed_days += 1
            anomalies.append(CalculationAnomaly(
                code=AnomalyCode.MALFORMED_PUNCH,
                message=(
                    f"time_out {day.time_out.isoformat()} is earlier than "
                    f"time_in {day.time_in.isoformat()}"
                ),
                reference=day.work_date.isoformat(),
            ))
            logger.warning("attendance_malformed_punch", extra={
                "employee_id": employee_id,
                "work_date": day.work_date.isoformat(),
                "time_in": day.time_in.isoformat(),
                "time_out": day.time_out.isoformat(),
            })
            continue

        worked_minutes = max(0, span_minutes - schedule.lunch_minutes)
        worked_hours += minutes_to_hours(worked_minutes)

        # Lateness counts from the standard start once the grace period is exceeded
        if day.time_in > schedule.grace_end:
            late_minutes = minutes_between(schedule.standard_start, day.time_in)
            late_hours += minutes_to_hours(late_minutes)

    absent = sum(
        1
        for d in pay_period.days()
        if schedule.is_workday(d) and d not in present
    )

    summary = AttendanceSummary(
        total_worked_hours=worked_hours,
        total_late_hours=late_hours,
        absent_weekday_count=absent,
        days_present=len(present),
        malformed_days=malformed_days,
        anomalies=tuple(anomalies),
    )

    logger.debug("attendance_aggregated", extra={
        "employee_id": employee_id,
        "pay_period_id": pay_period.pay_period_id,
        "worked_hours": str(summary.total_worked_hours),
        "late_hours": str(summary.total_late_hours),
        "absent_days": summary.absent_weekday_count,
        "days_present": summary.days_present,
        "malformed_days": summary.malformed_days,
    })
    return summary
