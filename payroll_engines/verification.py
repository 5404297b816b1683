"""
Payroll Verification Engine (``payroll_engines.verification``).

Responsibility
--------------
Re-check stored payroll calculations against the rules that produced
them and roll the results up into a period report with a compliance score.

Architecture position
---------------------
**Engines layer** -- pure.  ``payroll_services.verification_service`` reads
the rows and profiles and calls into this module.

Invariants enforced
-------------------
* ``basic_pay == round(basic_monthly_salary / periods_per_month)``.
* The gross, total-deductions and net identities hold exactly.
* Every money field carries exactly two fractional digits.
* The stored statutory total is within ``tolerance`` (default 1.00) of a
  fresh recomputation.

Failure modes
-------------
* Discrepancies are reported on the finding, never raised.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal

from payroll_engines.rules import ContributionBasis, PayrollRules
from payroll_engines.statutory import StatutoryDeductionCalculator
from payroll_kernel.domain.types import CompensationProfile, PayrollCalculation
from payroll_kernel.domain.values import ZERO, is_money, round_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.verification")

DEFAULT_STATUTORY_TOLERANCE = Decimal("1.00")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class VerificationFinding:
    """Outcome of re-checking one stored calculation."""

    employee_id: str
    pay_period_id: str
    discrepancies: tuple[str, ...] = ()

    @property
    def is_verified(self) -> bool:
        return not self.discrepancies


@dataclass(frozen=True)
class PeriodVerificationReport:
    """Verification roll-up for a pay period."""

    pay_period_id: str
    total_records: int
    verified_records: int
    discrepancy_records: int
    findings: tuple[VerificationFinding, ...] = field(default_factory=tuple)
    total_gross: Decimal = ZERO
    total_deductions: Decimal = ZERO
    total_net: Decimal = ZERO
    compliance_score: Decimal = Decimal("100.00")

    @property
    def is_fully_compliant(self) -> bool:
        return self.discrepancy_records == 0


def verify_calculation(
    calculation: PayrollCalculation,
    profile: CompensationProfile,
    rules: PayrollRules,
    tolerance: Decimal = DEFAULT_STATUTORY_TOLERANCE,
) -> VerificationFinding:
    """Re-check one stored calculation; see module invariants."""
    problems: list[str] = []

    expected_basic = round_money(profile.basic_monthly_salary / rules.periods_per_month)
    if calculation.basic_pay != expected_basic:
        problems.append(
            f"basic_pay {calculation.basic_pay} != expected {expected_basic}"
        )

    expected_gross = (
        calculation.basic_pay + calculation.attendance_earnings + calculation.overtime_pay
    )
    if calculation.gross_income != expected_gross:
        problems.append(
            f"gross_income {calculation.gross_income} != components {expected_gross}"
        )

    statutory_total = calculation.statutory_deductions.total
    expected_deductions = statutory_total + calculation.withholding_tax
    if calculation.total_deductions != expected_deductions:
        problems.append(
            f"total_deductions {calculation.total_deductions} != "
            f"statutory + withholding {expected_deductions}"
        )

    expected_net = calculation.gross_income - calculation.total_deductions
    if calculation.net_salary != expected_net:
        problems.append(
            f"net_salary {calculation.net_salary} != gross - deductions {expected_net}"
        )

    for name, value in calculation.money_fields.items():
        if not is_money(value):
            problems.append(f"{name} {value} does not have exactly two decimal places")

    if rules.contribution_basis is ContributionBasis.GROSS:
        base = max(calculation.gross_income, ZERO)
    else:
        base = profile.basic_monthly_salary
    recomputed = StatutoryDeductionCalculator(rules.contributions).calculate(base).total
    if abs(statutory_total - recomputed) > tolerance:
        problems.append(
            f"statutory total {statutory_total} differs from recomputed "
            f"{recomputed} by more than {tolerance}"
        )

    finding = VerificationFinding(
        employee_id=calculation.employee_id,
        pay_period_id=calculation.pay_period_id,
        discrepancies=tuple(problems),
    )
    if problems:
        logger.warning("payroll_verification_discrepancy", extra={
            "employee_id": calculation.employee_id,
            "pay_period_id": calculation.pay_period_id,
            "discrepancies": list(problems),
        })
    return finding


def build_period_report(
    pay_period_id: str,
    calculations: Sequence[PayrollCalculation],
    findings: Sequence[VerificationFinding],
) -> PeriodVerificationReport:
    """
    Aggregate findings and money totals for a period.

    The compliance score is ``verified / total * 100`` rounded to 2 places;
    an empty period scores 100.00.
    """
    total = len(findings)
    verified = sum(1 for f in findings if f.is_verified)

    if total:
        score = round_money(Decimal(verified) / Decimal(total) * _HUNDRED)
    else:
        score = Decimal("100.00")

    report = PeriodVerificationReport(
        pay_period_id=pay_period_id,
        total_records=total,
        verified_records=verified,
        discrepancy_records=total - verified,
        findings=tuple(findings),
        total_gross=sum((c.gross_income for c in calculations), ZERO),
        total_deductions=sum((c.total_deductions for c in calculations), ZERO),
        total_net=sum((c.net_salary for c in calculations), ZERO),
        compliance_score=score,
    )
    logger.info("payroll_period_verified", extra={
        "pay_period_id": pay_period_id,
        "total_records": report.total_records,
        "verified_records": report.verified_records,
        "discrepancy_records": report.discrepancy_records,
        "compliance_score": str(report.compliance_score),
    })
    return report
