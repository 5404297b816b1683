"""
Module: payroll_kernel.domain.values
Responsibility: Money and hour quantization rules shared by every engine.
    Centralizes precision and rounding so that each calculator rounds the
    same way at the moment a value is produced.
Architecture position: Kernel > Domain.  Pure, zero I/O.  May be imported by
    engines, config and services.  MUST NOT import from any of those layers.

Invariants enforced:
    - round_money() is the ONLY sanctioned rounding function for monetary
      values: two fractional digits, ROUND_HALF_UP.
    - round_hours() is the ONLY sanctioned rounding function for hour
      quantities: two fractional digits, ROUND_HALF_UP.
    - Inputs are Decimal; floats never enter a calculation.
"""

from datetime import datetime, time
from decimal import ROUND_HALF_UP, Decimal

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0.00")
SIXTY = Decimal("60")

_MONEY_QUANTUM = Decimal("0.01")
_HOURS_QUANTUM = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    """
    Round a monetary value to 2 decimal places, half-up.

    Preconditions: value is a Decimal.
    Postconditions: Returns a Decimal with exponent -2.
    """
    return value.quantize(_MONEY_QUANTUM, rounding=DEFAULT_ROUNDING)


def round_hours(value: Decimal) -> Decimal:
    """Round an hour quantity to 2 decimal places, half-up."""
    return value.quantize(_HOURS_QUANTUM, rounding=DEFAULT_ROUNDING)


def is_money(value: Decimal) -> bool:
    """True when ``value`` carries exactly two fractional digits."""
    return value.as_tuple().exponent == -MONEY_DECIMAL_PLACES


def minutes_between(start: time, end: time) -> int:
    """
    Signed whole minutes from ``start`` to ``end`` on the same day.

    Negative when ``end`` is earlier than ``start``; callers decide whether to
    clamp.  Seconds are truncated, matching punch-clock granularity.
    """
    start_minutes = start.hour * 60 + start.minute
    end_minutes = end.hour * 60 + end.minute
    return end_minutes - start_minutes


def minutes_between_datetimes(start: datetime, end: datetime) -> int:
    """Signed whole minutes from ``start`` to ``end`` (truncated toward zero)."""
    return int((end - start).total_seconds() / 60)


def minutes_to_hours(minutes: int) -> Decimal:
    """Convert whole minutes to hours, rounded to 2 decimal places."""
    return round_hours(Decimal(minutes) / SIXTY)
