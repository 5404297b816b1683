"""
Overtime Aggregation Engine (``payroll_engines.overtime``).

Responsibility
--------------
Sum approved overtime hours for a pay period and price them at the
hourly rate times a category multiplier.

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.

Invariants enforced
-------------------
* Only APPROVED intervals whose start date falls inside the period count.
* Hours are rounded half-up to 2 places per interval, then summed.
* An interval ending before it starts contributes zero hours.

Failure modes
-------------
* Reversed intervals produce a ``MALFORMED_OVERTIME_INTERVAL`` anomaly, not
  an exception.
* ``ValueError`` on a negative rate or multiplier (programming error).
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import Decimal

from payroll_kernel.domain.types import (
    AnomalyCode,
    CalculationAnomaly,
    OvertimeInterval,
    PayPeriod,
)
from payroll_kernel.domain.values import (
    ZERO,
    minutes_between_datetimes,
    minutes_to_hours,
    round_money,
)
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.overtime")


@dataclass(frozen=True)
class OvertimeSummary:
    """Approved overtime for one employee over one pay period."""

    total_hours: Decimal = ZERO
    approved_count: int = 0
    skipped_count: int = 0  # Not approved, or outside the period
    anomalies: tuple[CalculationAnomaly, ...] = field(default_factory=tuple)


def aggregate_overtime(
    intervals: Iterable[OvertimeInterval],
    pay_period: PayPeriod,
    employee_id: str | None = None,
) -> OvertimeSummary:
    """Sum the rounded hours of approved, in-period overtime intervals."""
    total = ZERO
    approved = 0
    skipped = 0
    anomalies: list[CalculationAnomaly] = []

    for interval in intervals:
        if not interval.is_approved or not pay_period.contains(interval.start.date()):
            skipped += 1
            continue

        approved += 1
        minutes = minutes_between_datetimes(interval.start, interval.end)
        if minutes < 0:
            anomalies.append(CalculationAnomaly(
                code=AnomalyCode.MALFORMED_OVERTIME_INTERVAL,
                message=(
                    f"overtime ends at {interval.end.isoformat()} before it "
                    f"starts at {interval.start.isoformat()}"
                ),
                reference=interval.interval_id or interval.start.isoformat(),
            ))
            logger.warning("overtime_malformed_interval", extra={
                "employee_id": employee_id,
                "interval_id": interval.interval_id,
                "start": interval.start.isoformat(),
                "end": interval.end.isoformat(),
            })
            continue

        total += minutes_to_hours(minutes)

    logger.debug("overtime_aggregated", extra={
        "employee_id": employee_id,
        "pay_period_id": pay_period.pay_period_id,
        "total_hours": str(total),
        "approved_count": approved,
        "skipped_count": skipped,
    })
    return OvertimeSummary(
        total_hours=total,
        approved_count=approved,
        skipped_count=skipped,
        anomalies=tuple(anomalies),
    )


def compute_overtime_pay(
    total_hours: Decimal,
    hourly_rate: Decimal,
    multiplier: Decimal,
) -> Decimal:
    """
    Price overtime hours: ``round(total_hours * hourly_rate * multiplier)``.

    >>> compute_overtime_pay(Decimal("4.00"), Decimal("200.00"), Decimal("1.25"))
    Decimal('1000.00')
    """
    if hourly_rate < 0:
        raise ValueError("hourly_rate cannot be negative")
    if multiplier < 0:
        raise ValueError("multiplier cannot be negative")
    return round_money(total_hours * hourly_rate * multiplier)
