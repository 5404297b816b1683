"""
Statutory Deduction Engine (``payroll_engines.statutory``).

Applies each configured statutory contribution (SSS, PhilHealth, Pag-IBIG,
...) to a salary base.  Each line is rounded half-up to 2 places on its
own; the total is the sum of the rounded lines.  Pure, no I/O.

Usage:
    from payroll_engines.statutory import StatutoryDeductionCalculator
    from payroll_engines.rules import ContributionRate

    calculator = StatutoryDeductionCalculator([
        ContributionRate("SSS", "Social Security System", Decimal("0.045")),
    ])
    deductions = calculator.calculate(Decimal("50000.00"))
    print(deductions.total)  # 2250.00
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from payroll_engines.rules import ContributionRate
from payroll_kernel.domain.types import ContributionLine, StatutoryDeductions
from payroll_kernel.domain.values import round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.statutory")


class StatutoryDeductionCalculator:
    """
    Calculate itemized statutory contributions.

    Contribution order is preserved in the output lines.  Codes must be
    unique.
    """

    def __init__(self, contributions: Sequence[ContributionRate]):
        codes = [c.code for c in contributions]
        if len(codes) != len(set(codes)):
            raise ValueError(f"Duplicate contribution codes: {codes}")
        self._contributions = tuple(contributions)

    @property
    def contributions(self) -> tuple[ContributionRate, ...]:
        return self._contributions

    def calculate(self, base: Decimal) -> StatutoryDeductions:
        """
        Apply every contribution to ``base``.

        Args:
            base: Salary the contributions are computed on.

        Returns:
            StatutoryDeductions with one line per contribution.

        Raises:
            ValueError: If ``base`` is negative.
        """
        if base < 0:
            logger.error("statutory_negative_base", extra={"base": str(base)})
            raise ValueError(f"Statutory base cannot be negative: {base}")

        lines = []
        for contribution in self._contributions:
            applied_base = contribution.base_for(base)
            lines.append(ContributionLine(
                code=contribution.code,
                name=contribution.name,
                base=round_money(applied_base),
                rate=contribution.rate,
                amount=round_money(applied_base * contribution.rate),
            ))

        deductions = StatutoryDeductions(lines=tuple(lines))
        logger.debug("statutory_deductions_calculated", extra={
            "base": str(base),
            "total": str(deductions.total),
            "lines": {line.code: str(line.amount) for line in lines},
        })
        return deductions
