"""
Rate Table Validator (``payroll_config.validator``).

Responsibility
--------------
Validates a parsed ``PayrollRateConfig`` before it is handed to the
calculation engine.

Invariants enforced
-------------------
* Withholding brackets are non-empty, sorted, contiguous and end
  open-ended.
* Contribution codes are unique; rates are fractions (at most 1).
* The effective range is not inverted.
* Overtime multipliers below 1 are flagged as warnings.

Failure modes
-------------
* Errors  -> the table MUST NOT be used (``get_active_config`` raises
  ``InvalidRateTableError``).
* Warnings  -> the table may be used but should be reviewed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_config.schema import PayrollRateConfig
from payroll_engines.withholding import validate_brackets

_ONE = Decimal("1")


@dataclass
class ConfigValidationResult:
    """
    Result of rate table validation.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_rate_config(config: PayrollRateConfig) -> ConfigValidationResult:
    """Validate a rate table.  A table with errors MUST NOT be used."""
    result = ConfigValidationResult()

    _validate_effective_range(config, result)
    _validate_contributions(config, result)
    _validate_brackets(config, result)
    _validate_overtime(config, result)

    return result


def _validate_effective_range(
    config: PayrollRateConfig, result: ConfigValidationResult
) -> None:
    if config.effective_to is not None and config.effective_to < config.effective_from:
        result.add_error(
            f"effective_to {config.effective_to} is before effective_from "
            f"{config.effective_from}"
        )


def _validate_contributions(
    config: PayrollRateConfig, result: ConfigValidationResult
) -> None:
    contributions = config.rules.contributions
    if not contributions:
        result.add_warning("No statutory contributions configured")

    seen: set[str] = set()
    for contribution in contributions:
        if contribution.code in seen:
            result.add_error(f"Duplicate contribution code: {contribution.code}")
        seen.add(contribution.code)
        if contribution.rate > _ONE:
            result.add_error(
                f"Contribution {contribution.code} rate {contribution.rate} exceeds 1; "
                "rates are fractions (0.045 for 4.5%)"
            )


def _validate_brackets(
    config: PayrollRateConfig, result: ConfigValidationResult
) -> None:
    brackets = config.rules.brackets
    lowers = [b.lower_bound for b in brackets]
    if lowers != sorted(lowers):
        result.add_error("Withholding brackets are not sorted by lower_bound")
    for error in validate_brackets(brackets):
        result.add_error(error)
    for i, bracket in enumerate(brackets):
        if bracket.marginal_rate > _ONE:
            result.add_error(f"Bracket {i} marginal_rate {bracket.marginal_rate} exceeds 1")


def _validate_overtime(
    config: PayrollRateConfig, result: ConfigValidationResult
) -> None:
    policy = config.rules.overtime
    if policy.default_multiplier < _ONE:
        result.add_warning(
            f"Default overtime multiplier {policy.default_multiplier} pays less than straight time"
        )
    for category, multiplier in policy.multipliers.items():
        if multiplier < _ONE:
            result.add_warning(
                f"Overtime multiplier for {category.value} ({multiplier}) pays less "
                "than straight time"
            )
