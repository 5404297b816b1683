"""
Payroll Rule Types (``payroll_engines.rules``).

Responsibility
--------------
Frozen value objects describing the policy constants the calculators apply:
the work schedule, statutory contribution rates, the withholding tax
bracket table, overtime multipliers and the contribution basis.  Bundled
together as ``PayrollRules``, the single rules input of
``PayrollCalculationEngine``.

Architecture position
---------------------
**Engines layer** -- pure data definitions.  ``payroll_config`` builds
these from YAML rate tables; the engines never read configuration files.

Invariants enforced
-------------------
* Rates, bounds and multipliers are ``Decimal``; negative values are
  rejected at construction.
* A ``ContributionRate`` floor never exceeds its ceiling.
* A ``WorkSchedule`` grace end is never earlier than its standard start.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, time
from decimal import Decimal
from enum import Enum

from payroll_kernel.domain.types import PayrollCategory

DEFAULT_OVERTIME_MULTIPLIER = Decimal("1.25")


class ContributionBasis(str, Enum):
    """Amount statutory contributions are computed on."""

    NOMINAL = "nominal"  # Basic monthly salary as contracted
    GROSS = "gross"  # Period gross income after attendance and overtime


@dataclass(frozen=True)
class WorkSchedule:
    """
    Standard working day.

    ``work_weekdays`` holds ``date.weekday()`` numbers (Monday is 0).
    """

    standard_start: time = time(8, 0)
    grace_end: time = time(8, 10)
    lunch_minutes: int = 60
    standard_hours_per_day: Decimal = Decimal("8")
    work_weekdays: frozenset[int] = frozenset({0, 1, 2, 3, 4})

    def __post_init__(self) -> None:
        if self.grace_end < self.standard_start:
            raise ValueError("grace_end cannot be earlier than standard_start")
        if self.lunch_minutes < 0:
            raise ValueError("lunch_minutes cannot be negative")
        if self.standard_hours_per_day <= 0:
            raise ValueError("standard_hours_per_day must be positive")
        if not self.work_weekdays <= frozenset(range(7)):
            raise ValueError("work_weekdays must be weekday numbers 0-6")

    def is_workday(self, day: date) -> bool:
        return day.weekday() in self.work_weekdays


@dataclass(frozen=True)
class ContributionRate:
    """
    One statutory contribution (e.g. SSS, PhilHealth, Pag-IBIG).

    ``min_base`` / ``max_base`` clamp the salary the rate is applied to;
    ``None`` leaves that side unbounded.
    """

    code: str
    name: str
    rate: Decimal  # As decimal (e.g., 0.045 for 4.5%)
    min_base: Decimal | None = None
    max_base: Decimal | None = None

    def __post_init__(self) -> None:
        if self.rate < 0:
            raise ValueError(f"Contribution rate {self.code} cannot be negative")
        if (
            self.min_base is not None
            and self.max_base is not None
            and self.min_base > self.max_base
        ):
            raise ValueError(f"Contribution {self.code} has min_base above max_base")

    def base_for(self, amount: Decimal) -> Decimal:
        """Clamp ``amount`` to this contribution's floor and ceiling."""
        if amount == 0:
            return amount
        if self.min_base is not None and amount < self.min_base:
            return self.min_base
        if self.max_base is not None and amount > self.max_base:
            return self.max_base
        return amount


@dataclass(frozen=True)
class TaxBracket:
    """
    One row of a progressive withholding table, half-open ``[lower, upper)``.

    ``tax = base_tax + marginal_rate * (income - lower_bound)``.
    """

    lower_bound: Decimal
    upper_bound: Decimal | None
    base_tax: Decimal
    marginal_rate: Decimal

    def __post_init__(self) -> None:
        if self.lower_bound < 0 or self.base_tax < 0 or self.marginal_rate < 0:
            raise ValueError("Tax bracket values cannot be negative")
        if self.upper_bound is not None and self.upper_bound <= self.lower_bound:
            raise ValueError(
                f"Tax bracket upper bound {self.upper_bound} must exceed "
                f"lower bound {self.lower_bound}"
            )

    def contains(self, income: Decimal) -> bool:
        if income < self.lower_bound:
            return False
        return self.upper_bound is None or income < self.upper_bound


@dataclass(frozen=True)
class OvertimePolicy:
    """Overtime premium multipliers keyed by payroll category."""

    multipliers: Mapping[PayrollCategory, Decimal] = field(default_factory=dict)
    default_multiplier: Decimal = DEFAULT_OVERTIME_MULTIPLIER

    def __post_init__(self) -> None:
        if self.default_multiplier < 0:
            raise ValueError("default_multiplier cannot be negative")
        for category, multiplier in self.multipliers.items():
            if multiplier < 0:
                raise ValueError(f"Overtime multiplier for {category.value} cannot be negative")

    def multiplier_for(self, category: PayrollCategory) -> Decimal:
        return self.multipliers.get(category, self.default_multiplier)


@dataclass(frozen=True)
class PayrollRules:
    """Everything the calculation engine needs besides per-employee inputs."""

    contributions: tuple[ContributionRate, ...]
    brackets: tuple[TaxBracket, ...]
    schedule: WorkSchedule = field(default_factory=WorkSchedule)
    overtime: OvertimePolicy = field(default_factory=OvertimePolicy)
    contribution_basis: ContributionBasis = ContributionBasis.NOMINAL
    periods_per_month: Decimal = Decimal("2")  # Semi-monthly
    version: str | None = None

    def __post_init__(self) -> None:
        if self.periods_per_month <= 0:
            raise ValueError("periods_per_month must be positive")
