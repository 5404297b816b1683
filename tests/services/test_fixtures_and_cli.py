"""
Tests for YAML fixture loading and the run_payroll script.

Covers:
- load_fixture populates every in-memory provider from the sample file
- run_payroll in memory: table output, review flag, failure exit code
- run_payroll against SQLite: second run reports already processed
- --verify prints the compliance summary
"""

import importlib.util
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path

import pytest

from payroll_kernel.db.engine import reset_engine
from payroll_kernel.domain.types import ApprovalState
from payroll_services.fixtures import load_fixture

SCRIPTS_DIR = Path(__file__).resolve().parents[2] / "scripts"
SAMPLE_FIXTURE = SCRIPTS_DIR / "sample_payroll.yaml"


def _load_script():
    spec = importlib.util.spec_from_file_location("run_payroll", SCRIPTS_DIR / "run_payroll.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestLoadFixture:

    def setup_method(self):
        self.fixture = load_fixture(SAMPLE_FIXTURE)

    def test_pay_period(self):
        period = self.fixture.pay_periods.get_pay_period("2024-01-A")

        assert period.start_date == date(2024, 1, 1)
        assert period.end_date == date(2024, 1, 15)
        assert period.label == "January 2024, first half"

    def test_employees(self):
        employees = self.fixture.employees

        assert employees.list_employee_ids() == ["E001", "E002", "E003"]
        assert employees.get_employee("E001").hourly_rate == Decimal("113.64")
        assert employees.get_employee("E002").position_title == "Finance Manager"
        assert employees.get_employee("E003").is_active is False

    def test_attendance(self):
        rows = self.fixture.attendance.attendance_for("E001", date(2024, 1, 1), date(2024, 1, 15))

        assert len(rows) == 4
        assert rows[1].time_in == time(8, 25)

    def test_overtime(self):
        rows = self.fixture.overtime.overtime_for("E001", date(2024, 1, 1), date(2024, 1, 15))

        assert [r.interval_id for r in rows] == ["OT-1", "OT-2"]
        assert rows[0].approval_state is ApprovalState.APPROVED
        assert rows[0].start == datetime(2024, 1, 2, 17, 0)
        assert rows[1].approval_state is ApprovalState.PENDING


class TestRunPayrollScript:

    @pytest.fixture(autouse=True)
    def _reset_database(self):
        yield
        reset_engine()

    def setup_method(self):
        self.script = _load_script()

    def test_in_memory_run(self, capsys):
        exit_code = self.script.main(["--fixture", str(SAMPLE_FIXTURE), "--period", "2024-01-A"])

        out = capsys.readouterr().out
        # E003 is inactive
        assert exit_code == 1
        assert "INELIGIBLE_EMPLOYEE" in out
        assert "Processed: 2 (already processed: 0), Failed: 1" in out
        e002_line = next(line for line in out.splitlines() if line.startswith("E002"))
        assert e002_line.endswith("REVIEW")

    def test_missing_fixture(self, tmp_path, capsys):
        exit_code = self.script.main(["--fixture", str(tmp_path / "none.yaml"), "--period", "x"])

        assert exit_code == 2
        assert "Fixture not found" in capsys.readouterr().err

    def test_rerun_against_database(self, tmp_path, capsys):
        argv = [
            "--fixture", str(SAMPLE_FIXTURE),
            "--period", "2024-01-A",
            "--database-url", f"sqlite:///{tmp_path / 'run.db'}",
        ]

        self.script.main(argv)
        capsys.readouterr()
        self.script.main(argv + ["--workers", "2", "--verify"])

        out = capsys.readouterr().out
        assert "Processed: 2 (already processed: 2), Failed: 1" in out
        assert "Totals (this run): gross 0.00" in out
        assert "Verification: 2/2 verified, compliance 100.00%" in out
