"""
Tests for the withholding tax calculator.

Covers:
- Bracket lookup, including exact lower-bound boundaries
- Progressive formula base_tax + rate * (income - lower)
- Income at or below the lowest bound
- Bracket table validation (gaps, open-ended rows, empty table)
"""

from decimal import Decimal

import pytest

from payroll_engines.rules import TaxBracket
from payroll_engines.withholding import WithholdingTaxCalculator, validate_brackets


def _bracket(lower: str, upper: str | None, base: str, rate: str) -> TaxBracket:
    return TaxBracket(
        lower_bound=Decimal(lower),
        upper_bound=Decimal(upper) if upper is not None else None,
        base_tax=Decimal(base),
        marginal_rate=Decimal(rate),
    )


PH_BRACKETS = (
    _bracket("0", "20833", "0", "0"),
    _bracket("20833", "33333", "0", "0.15"),
    _bracket("33333", "66667", "2500", "0.20"),
    _bracket("66667", "166667", "10833.33", "0.25"),
    _bracket("166667", "666667", "40833.33", "0.30"),
    _bracket("666667", None, "200833.33", "0.35"),
)


class TestBracketLookup:

    def setup_method(self):
        self.calculator = WithholdingTaxCalculator(PH_BRACKETS)

    def test_exact_lower_bound_uses_that_bracket(self):
        bracket = self.calculator.find_bracket(Decimal("20833"))

        assert bracket.lower_bound == Decimal("20833")

    def test_just_below_boundary_uses_previous_bracket(self):
        bracket = self.calculator.find_bracket(Decimal("20832.99"))

        assert bracket.lower_bound == Decimal("0")

    def test_open_ended_top_bracket(self):
        bracket = self.calculator.find_bracket(Decimal("5000000"))

        assert bracket.upper_bound is None

    def test_unsorted_input_is_sorted(self):
        calculator = WithholdingTaxCalculator(tuple(reversed(PH_BRACKETS)))

        assert calculator.brackets == PH_BRACKETS


class TestWithholdingCalculation:

    def setup_method(self):
        self.calculator = WithholdingTaxCalculator(PH_BRACKETS)

    def test_exempt_bracket(self):
        assert self.calculator.calculate(Decimal("18150.00")) == Decimal("0.00")

    def test_boundary_income_pays_base_tax_only(self):
        assert self.calculator.calculate(Decimal("20833")) == Decimal("0.00")
        assert self.calculator.calculate(Decimal("33333")) == Decimal("2500.00")

    def test_progressive_formula(self):
        # 2500 + 0.20 * (45375 - 33333) = 4908.40
        assert self.calculator.calculate(Decimal("45375.00")) == Decimal("4908.40")

    def test_top_bracket(self):
        # 200833.33 + 0.35 * 333333 = 317499.88
        assert self.calculator.calculate(Decimal("1000000")) == Decimal("317499.88")

    def test_result_rounded_half_up(self):
        # 0.15 * 0.03 = 0.0045 -> 0.00; 0.15 * 0.05 = 0.0075 -> 0.01
        assert self.calculator.calculate(Decimal("20833.03")) == Decimal("0.00")
        assert self.calculator.calculate(Decimal("20833.05")) == Decimal("0.01")

    def test_zero_income(self):
        assert self.calculator.calculate(Decimal("0.00")) == Decimal("0.00")


class TestIncomeBelowTable:

    def setup_method(self):
        self.calculator = WithholdingTaxCalculator((
            _bracket("1000", "5000", "50", "0.10"),
            _bracket("5000", None, "450", "0.20"),
        ))

    def test_below_lowest_bound_is_zero(self):
        assert self.calculator.calculate(Decimal("500")) == Decimal("0.00")
        assert self.calculator.find_bracket(Decimal("500")) is None

    def test_at_lowest_bound_is_zero(self):
        assert self.calculator.calculate(Decimal("1000")) == Decimal("0.00")

    def test_just_above_lowest_bound(self):
        assert self.calculator.calculate(Decimal("1001")) == Decimal("50.10")


class TestBracketValidation:

    def test_valid_table_has_no_errors(self):
        assert validate_brackets(PH_BRACKETS) == []

    def test_empty_table(self):
        assert validate_brackets(()) == ["Bracket table is empty"]
        with pytest.raises(ValueError):
            WithholdingTaxCalculator(())

    def test_gap_between_brackets(self):
        brackets = (
            _bracket("0", "1000", "0", "0"),
            _bracket("2000", None, "0", "0.10"),
        )

        errors = validate_brackets(brackets)

        assert len(errors) == 1
        assert "ends at 1000" in errors[0]
        with pytest.raises(ValueError, match="Invalid withholding bracket table"):
            WithholdingTaxCalculator(brackets)

    def test_overlap_between_brackets(self):
        brackets = (
            _bracket("0", "2000", "0", "0"),
            _bracket("1000", None, "0", "0.10"),
        )

        assert validate_brackets(brackets)

    def test_open_ended_bracket_must_be_last(self):
        brackets = (
            _bracket("0", None, "0", "0"),
            _bracket("1000", None, "0", "0.10"),
        )

        errors = validate_brackets(brackets)

        assert any("open-ended but is not the last" in e for e in errors)

    def test_closed_last_bracket(self):
        errors = validate_brackets((_bracket("0", "1000", "0", "0"),))

        assert errors == ["Last bracket must be open-ended"]

    def test_bracket_upper_must_exceed_lower(self):
        with pytest.raises(ValueError):
            _bracket("1000", "1000", "0", "0.1")
