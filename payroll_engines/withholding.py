"""
Withholding Tax Engine (``payroll_engines.withholding``).

Responsibility
--------------
Progressive withholding tax lookup over a bracket table:
``tax = base_tax + marginal_rate * (income - lower_bound)`` for the
half-open bracket ``[lower_bound, upper_bound)`` containing the income.

Architecture position
---------------------
**Engines layer** -- pure functional core.  The bracket table is supplied
by the caller.

Invariants enforced
-------------------
* Brackets are sorted by lower bound and contiguous: each upper bound is
  the next bracket's lower bound; only the last bracket is open-ended.
* Income at or below the lowest lower bound is taxed zero.
* Income exactly equal to a lower bound falls in the bracket starting there.
* The tax is rounded half-up to 2 places.

Failure modes
-------------
* ``ValueError`` at construction for an empty, unsorted, overlapping or
  gapped table.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from payroll_engines.rules import TaxBracket
from payroll_kernel.domain.values import ZERO, round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.withholding")


def validate_brackets(brackets: Sequence[TaxBracket]) -> list[str]:
    """Return a list of structural problems with a bracket table (empty if none)."""
    errors: list[str] = []
    if not brackets:
        return ["Bracket table is empty"]

    for i, (current, following) in enumerate(zip(brackets, brackets[1:])):
        if current.upper_bound is None:
            errors.append(f"Bracket {i} is open-ended but is not the last bracket")
        elif current.upper_bound != following.lower_bound:
            errors.append(
                f"Bracket {i} ends at {current.upper_bound} but bracket {i + 1} "
                f"starts at {following.lower_bound}"
            )
    if brackets[-1].upper_bound is not None:
        errors.append("Last bracket must be open-ended")
    return errors


class WithholdingTaxCalculator:
    """
    Look up and compute withholding tax for a period's taxable income.

    Contract:
        ``find_bracket`` and ``calculate`` never raise for a non-negative
        income once the calculator is constructed.
    """

    def __init__(self, brackets: Sequence[TaxBracket]):
        ordered = tuple(sorted(brackets, key=lambda b: b.lower_bound))
        errors = validate_brackets(ordered)
        if errors:
            raise ValueError("Invalid withholding bracket table: " + "; ".join(errors))
        self._brackets = ordered

    @property
    def brackets(self) -> tuple[TaxBracket, ...]:
        return self._brackets

    def find_bracket(self, taxable_income: Decimal) -> TaxBracket | None:
        """Return the bracket containing ``taxable_income``, or None below the table."""
        for bracket in self._brackets:
            if bracket.contains(taxable_income):
                return bracket
        return None

    def calculate(self, taxable_income: Decimal) -> Decimal:
        """Withholding tax for ``taxable_income``, rounded to 2 places."""
        if taxable_income <= self._brackets[0].lower_bound:
            return ZERO

        bracket = self.find_bracket(taxable_income)
        if bracket is None:
            return ZERO

        tax = round_money(
            bracket.base_tax
            + bracket.marginal_rate * (taxable_income - bracket.lower_bound)
        )
        logger.debug("withholding_tax_calculated", extra={
            "taxable_income": str(taxable_income),
            "bracket_lower_bound": str(bracket.lower_bound),
            "bracket_upper_bound": (
                str(bracket.upper_bound) if bracket.upper_bound is not None else None
            ),
            "tax": str(tax),
        })
        return tax
