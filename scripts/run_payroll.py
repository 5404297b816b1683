#!/usr/bin/env python3
"""
Run payroll for one pay period from a YAML fixture and print the results.

Employees, attendance, overtime and pay periods come from the fixture; rate
tables come from payroll_config (get_active_config).  Results are stored in
memory, or in a database when --database-url is given, in which case a
second run of the same period reports every employee as already processed.

Usage:
    python3 scripts/run_payroll.py --fixture <path> --period <id> [options]

Examples:
    # Sequential run against the bundled sample
    python3 scripts/run_payroll.py --fixture scripts/sample_payroll.yaml --period 2024-01-A

    # Threaded run persisted to SQLite, then verified
    python3 scripts/run_payroll.py --fixture scripts/sample_payroll.yaml --period 2024-01-A \\
        --database-url sqlite:///payroll.db --workers 4 --verify
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from payroll_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from payroll_kernel.domain.clock import SystemClock
from payroll_kernel.exceptions import PayrollKernelError
from payroll_kernel.logging_config import SALARY_FIELDS, configure_logging, parse_level
from payroll_services.fixtures import load_fixture
from payroll_services.processing_orchestrator import (
    OutcomeStatus,
    PayrollProcessingOrchestrator,
    active_rules,
)
from payroll_services.sinks import InMemoryCalculationSink, SqlAlchemyCalculationSink
from payroll_services.verification_service import PayrollVerificationService


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run payroll for a pay period from a YAML fixture.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--fixture",
        required=True,
        type=Path,
        help="YAML file with pay_periods and employees.",
    )
    parser.add_argument(
        "--period",
        required=True,
        help="Pay period id to run.",
    )
    parser.add_argument(
        "--jurisdiction",
        default="PH",
        help="Rate table jurisdiction (default: PH).",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Rate table directory (default: payroll_config/sets).",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy URL to persist results (default: in memory).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker threads (default: 1, sequential).",
    )
    parser.add_argument(
        "--verify",
        action="store_true",
        help="Verify stored results for the period after the run.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Structured log level on stderr (default: WARNING).",
    )
    parser.add_argument(
        "--redact-amounts",
        action="store_true",
        help="Mask per-employee amounts in log records.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(
        level=parse_level(args.log_level),
        redact=SALARY_FIELDS if args.redact_amounts else (),
    )

    if not args.fixture.is_file():
        print(f"ERROR: Fixture not found: {args.fixture}", file=sys.stderr)
        return 2

    fixture = load_fixture(args.fixture)

    if args.database_url:
        init_engine_from_url(args.database_url)
        create_tables()
        sink = SqlAlchemyCalculationSink(get_session_factory(), SystemClock())
    else:
        sink = InMemoryCalculationSink()

    rules_provider = active_rules(args.jurisdiction, args.config_dir)
    orchestrator = PayrollProcessingOrchestrator(
        employees=fixture.employees,
        attendance=fixture.attendance,
        overtime=fixture.overtime,
        pay_periods=fixture.pay_periods,
        sink=sink,
        rules_provider=rules_provider,
    )

    result = orchestrator.process_period(args.period, max_workers=args.workers)

    print(f"Pay period {result.pay_period_id}")
    print(f"{'Employee':<12} {'Status':<18} {'Gross':>12} {'Deductions':>12} {'Net':>12}")
    for outcome in result.outcomes:
        calc = outcome.calculation
        if outcome.status is OutcomeStatus.FAILED or calc is None:
            print(f"{outcome.employee_id:<12} {outcome.status.value:<18} {outcome.error_code}: {outcome.message}")
            continue
        flag = "  REVIEW" if calc.requires_review else ""
        print(
            f"{outcome.employee_id:<12} {outcome.status.value:<18} "
            f"{calc.gross_income:>12} {calc.total_deductions:>12} {calc.net_salary:>12}{flag}"
        )
    print(
        f"Processed: {result.processed_count} "
        f"(already processed: {result.already_processed_count}), "
        f"Failed: {result.failed_count}"
    )
    print(
        f"Totals (this run): gross {result.total_gross}, "
        f"deductions {result.total_deductions}, net {result.total_net}"
    )

    if args.verify:
        verifier = PayrollVerificationService(
            sink=sink,
            employees=fixture.employees,
            pay_periods=fixture.pay_periods,
            rules_provider=rules_provider,
        )
        try:
            report = verifier.verify_period(args.period)
        except PayrollKernelError as e:
            print(f"ERROR: Verification failed: {e}", file=sys.stderr)
            return 1
        print(
            f"Verification: {report.verified_records}/{report.total_records} verified, "
            f"compliance {report.compliance_score}%"
        )
        for finding in report.findings:
            for problem in finding.discrepancies:
                print(f"  {finding.employee_id}: {problem}")

    return 1 if result.failed_count else 0


if __name__ == "__main__":
    sys.exit(main())
