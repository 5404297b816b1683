"""
Tests for PayrollVerificationService.

Covers:
- A freshly processed period verifies at 100.00
- Employee records changed after processing are reported
- Calculations whose employee no longer exists are reported
- Employee records that now carry a negative amount are reported
- Rows edited in the database fail the integrity check
- Unknown periods raise; empty periods score 100.00
"""

from datetime import date, time
from decimal import Decimal

import pytest
from sqlalchemy import update

from payroll_kernel.domain.types import AttendanceDay
from payroll_kernel.exceptions import PayPeriodNotFoundError
from payroll_kernel.models.payroll_calculation import PayrollCalculationRecord
from payroll_services.processing_orchestrator import PayrollProcessingOrchestrator
from payroll_services.sinks import SqlAlchemyCalculationSink
from payroll_services.verification_service import PayrollVerificationService


@pytest.fixture
def staffed(employees, attendance_provider, make_employee):
    employees.put(make_employee("E001"))
    employees.put(make_employee(
        "E002", position_title="Finance Manager",
        basic_monthly_salary="50000.00", hourly_rate="284.09",
    ))
    for employee_id in ("E001", "E002"):
        for d in (1, 2, 3, 4, 5, 8, 9, 10, 11, 12, 15):
            attendance_provider.add(
                employee_id, AttendanceDay(date(2024, 1, d), time(8, 0), time(17, 0)),
            )


def _verifier(sink, employees, pay_periods, rules, **kwargs):
    return PayrollVerificationService(
        sink=sink,
        employees=employees,
        pay_periods=pay_periods,
        rules_provider=lambda period: rules,
        **kwargs,
    )


class TestVerifyPeriod:

    def test_processed_period_is_fully_compliant(
        self, orchestrator, staffed, memory_sink, employees, pay_periods, rules,
    ):
        orchestrator.process_period("2024-01-A")

        report = _verifier(memory_sink, employees, pay_periods, rules).verify_period("2024-01-A")

        assert report.total_records == 2
        assert report.verified_records == 2
        assert report.compliance_score == Decimal("100.00")
        assert report.is_fully_compliant
        assert report.total_net == Decimal("32416.60")

    def test_salary_change_after_processing(
        self, orchestrator, staffed, memory_sink, employees, pay_periods, rules, make_employee,
    ):
        orchestrator.process_period("2024-01-A")
        employees.put(make_employee(
            "E002", position_title="Finance Manager",
            basic_monthly_salary="55000.00", hourly_rate="284.09",
        ))

        report = _verifier(memory_sink, employees, pay_periods, rules).verify_period("2024-01-A")

        assert report.verified_records == 1
        assert report.discrepancy_records == 1
        assert report.compliance_score == Decimal("50.00")
        flagged = [f for f in report.findings if not f.is_verified]
        assert flagged[0].employee_id == "E002"
        assert any("basic_pay" in d for d in flagged[0].discrepancies)

    def test_missing_employee_record(
        self, orchestrator, staffed, memory_sink, pay_periods, rules, captured_logs,
    ):
        from payroll_services.providers import InMemoryEmployeeProvider

        orchestrator.process_period("2024-01-A")

        report = _verifier(
            memory_sink, InMemoryEmployeeProvider(), pay_periods, rules,
        ).verify_period("2024-01-A")

        assert report.verified_records == 0
        assert report.compliance_score == Decimal("0.00")
        assert report.findings[0].discrepancies == ("employee record not found",)
        assert any(r["message"] == "verification_employee_missing" for r in captured_logs())

    def test_negative_salary_after_processing(
        self, orchestrator, staffed, memory_sink, employees, pay_periods, rules, make_employee,
        captured_logs,
    ):
        orchestrator.process_period("2024-01-A")
        employees.put(make_employee("E001", basic_monthly_salary="-20000.00"))

        report = _verifier(memory_sink, employees, pay_periods, rules).verify_period("2024-01-A")

        assert report.total_records == 2
        assert report.verified_records == 1
        flagged = [f for f in report.findings if not f.is_verified]
        assert flagged[0].employee_id == "E001"
        assert flagged[0].discrepancies == ("employee record has invalid basic_monthly_salary",)
        assert any(
            r["message"] == "verification_invalid_compensation" for r in captured_logs()
        )

    def test_tighter_tolerance_is_applied(
        self, orchestrator, staffed, memory_sink, employees, pay_periods, rules,
    ):
        orchestrator.process_period("2024-01-A")

        report = _verifier(
            memory_sink, employees, pay_periods, rules, tolerance=Decimal("0.00"),
        ).verify_period("2024-01-A")

        assert report.is_fully_compliant

    def test_empty_period(self, memory_sink, employees, pay_periods, rules):
        report = _verifier(memory_sink, employees, pay_periods, rules).verify_period("2024-01-A")

        assert report.total_records == 0
        assert report.compliance_score == Decimal("100.00")

    def test_unknown_period(self, memory_sink, employees, pay_periods, rules):
        with pytest.raises(PayPeriodNotFoundError):
            _verifier(memory_sink, employees, pay_periods, rules).verify_period("2099-01-A")


class TestVerifyStoredRows:

    @pytest.fixture
    def sql_sink(self, session_factory, deterministic_clock):
        return SqlAlchemyCalculationSink(session_factory, deterministic_clock)

    @pytest.fixture
    def processed(
        self, staffed, sql_sink, employees, attendance_provider, overtime_provider,
        pay_periods, rules,
    ):
        PayrollProcessingOrchestrator(
            employees, attendance_provider, overtime_provider, pay_periods, sql_sink,
            rules_provider=lambda period: rules,
        ).process_period("2024-01-A")

    def test_untouched_rows_verify(self, processed, sql_sink, employees, pay_periods, rules):
        report = _verifier(sql_sink, employees, pay_periods, rules).verify_period("2024-01-A")

        assert report.total_records == 2
        assert report.is_fully_compliant

    def test_edited_row_fails_integrity(
        self, processed, sql_sink, session_factory, employees, pay_periods, rules,
    ):
        with session_factory() as session:
            session.execute(
                update(PayrollCalculationRecord)
                .where(PayrollCalculationRecord.employee_id == "E001")
                .values(config_version="edited")
            )
            session.commit()

        report = _verifier(sql_sink, employees, pay_periods, rules).verify_period("2024-01-A")

        assert report.discrepancy_records == 1
        finding = next(f for f in report.findings if f.employee_id == "E001")
        assert finding.discrepancies == ("stored row does not match its calculation hash",)
