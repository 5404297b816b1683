"""
Tests for payroll verification checks and the period report.

Covers:
- A fresh engine result verifies clean
- Basic pay, identity, precision and statutory tolerance discrepancies
- Compliance score rounding and the empty-period score
"""

from dataclasses import replace
from datetime import date, time
from decimal import Decimal

from payroll_engines.verification import build_period_report, verify_calculation
from payroll_kernel.domain.types import (
    AttendanceDay,
    CompensationProfile,
    ContributionLine,
    PayrollCategory,
    StatutoryDeductions,
)


def _profile(salary: str = "50000.00") -> CompensationProfile:
    return CompensationProfile(
        employee_id="E002",
        basic_monthly_salary=Decimal(salary),
        hourly_rate=Decimal("284.09"),
        category=PayrollCategory.NON_RANK_AND_FILE,
        overtime_eligible=False,
        late_deductible=False,
    )


def _attendance() -> list[AttendanceDay]:
    return [
        AttendanceDay(date(2024, 1, d), time(8, 0), time(17, 0))
        for d in (1, 2, 3, 4, 5, 8, 9, 10, 11, 12, 15)
    ]


class TestVerifyCalculation:

    def test_engine_result_verifies(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)

        finding = verify_calculation(calc, _profile(), rules)

        assert finding.is_verified
        assert finding.employee_id == "E002"
        assert finding.pay_period_id == "2024-01-A"

    def test_negative_net_still_verifies(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), [], [], pay_period)

        assert calc.requires_review
        assert verify_calculation(calc, _profile(), rules).is_verified

    def test_basic_pay_mismatch_after_salary_change(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)

        finding = verify_calculation(calc, _profile("52000.00"), rules)

        assert not finding.is_verified
        assert any("basic_pay" in d for d in finding.discrepancies)

    def test_broken_net_identity(self, engine, rules, pay_period, captured_logs):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        tampered = replace(calc, net_salary=calc.net_salary + Decimal("0.01"))

        finding = verify_calculation(tampered, _profile(), rules)

        assert finding.discrepancies == (
            f"net_salary {tampered.net_salary} != gross - deductions {calc.net_salary}",
        )
        assert any(r["message"] == "payroll_verification_discrepancy" for r in captured_logs())

    def test_broken_gross_identity(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        tampered = replace(calc, overtime_pay=Decimal("5.00"))

        finding = verify_calculation(tampered, _profile(), rules)

        assert any(d.startswith("gross_income") for d in finding.discrepancies)

    def test_wrong_precision_flagged(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        # Same value, three fractional digits
        tampered = replace(calc, withholding_tax=Decimal("4908.400"))

        finding = verify_calculation(tampered, _profile(), rules)

        assert any("two decimal places" in d for d in finding.discrepancies)

    def test_statutory_within_tolerance_passes(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        lines = list(calc.statutory_deductions.lines)
        lines[0] = replace(lines[0], amount=lines[0].amount + Decimal("0.50"))
        statutory = StatutoryDeductions(tuple(lines))
        adjusted = replace(
            calc,
            statutory_deductions=statutory,
            total_deductions=statutory.total + calc.withholding_tax,
            net_salary=calc.gross_income - (statutory.total + calc.withholding_tax),
        )

        assert verify_calculation(adjusted, _profile(), rules).is_verified

    def test_statutory_beyond_tolerance_flagged(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        statutory = StatutoryDeductions((
            ContributionLine("SSS", "SSS", Decimal("50000.00"), Decimal("0.045"), Decimal("2000.00")),
        ))
        adjusted = replace(
            calc,
            statutory_deductions=statutory,
            total_deductions=statutory.total + calc.withholding_tax,
            net_salary=calc.gross_income - (statutory.total + calc.withholding_tax),
        )

        finding = verify_calculation(adjusted, _profile(), rules)

        assert len(finding.discrepancies) == 1
        assert "statutory total" in finding.discrepancies[0]

    def test_custom_tolerance(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        lines = list(calc.statutory_deductions.lines)
        lines[0] = replace(lines[0], amount=lines[0].amount + Decimal("0.50"))
        statutory = StatutoryDeductions(tuple(lines))
        adjusted = replace(
            calc,
            statutory_deductions=statutory,
            total_deductions=statutory.total + calc.withholding_tax,
            net_salary=calc.gross_income - (statutory.total + calc.withholding_tax),
        )

        finding = verify_calculation(adjusted, _profile(), rules, tolerance=Decimal("0.10"))

        assert not finding.is_verified


class TestBuildPeriodReport:

    def test_empty_period_scores_hundred(self, captured_logs):
        report = build_period_report("2024-01-A", [], [])

        assert report.total_records == 0
        assert report.compliance_score == Decimal("100.00")
        assert report.is_fully_compliant
        assert any(r["message"] == "payroll_period_verified" for r in captured_logs())

    def test_score_is_rounded_percentage(self, engine, rules, pay_period):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        good = verify_calculation(calc, _profile(), rules)
        bad = verify_calculation(replace(calc, net_salary=Decimal("0.00")), _profile(), rules)

        report = build_period_report("2024-01-A", [calc] * 3, [good, good, bad])

        assert report.total_records == 3
        assert report.verified_records == 2
        assert report.discrepancy_records == 1
        assert report.compliance_score == Decimal("66.67")
        assert not report.is_fully_compliant

    def test_totals_sum_calculations(self, engine, pay_period, rules):
        calc = engine.calculate(_profile(), _attendance(), [], pay_period)
        finding = verify_calculation(calc, _profile(), rules)

        report = build_period_report("2024-01-A", [calc, calc], [finding, finding])

        assert report.total_gross == Decimal("50000.00")
        assert report.total_deductions == Decimal("19066.80")
        assert report.total_net == Decimal("30933.20")
        assert report.compliance_score == Decimal("100.00")
