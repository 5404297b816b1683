"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    payroll calculators.  This is the import surface for payroll_services
    and payroll_config.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (domain, exceptions, logging, utils)
    and sibling engine modules.  MUST NOT import payroll_services or
    payroll_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
    - Decimal-only arithmetic: floats are never used for money or hours.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    ``PayrollCalculationEngine.calculate`` is traced via ``@traced_engine``
    (see ``payroll_engines.tracer``), emitting PAYROLL_ENGINE_TRACE records
    with an input fingerprint.
"""

from payroll_engines.attendance import AttendanceSummary, aggregate_attendance
from payroll_engines.calculation import ENGINE_VERSION, PayrollCalculationEngine
from payroll_engines.overtime import (
    OvertimeSummary,
    aggregate_overtime,
    compute_overtime_pay,
)
from payroll_engines.rules import (
    DEFAULT_OVERTIME_MULTIPLIER,
    ContributionBasis,
    ContributionRate,
    OvertimePolicy,
    PayrollRules,
    TaxBracket,
    WorkSchedule,
)
from payroll_engines.statutory import StatutoryDeductionCalculator
from payroll_engines.tracer import compute_input_fingerprint, traced_engine
from payroll_engines.verification import (
    DEFAULT_STATUTORY_TOLERANCE,
    PeriodVerificationReport,
    VerificationFinding,
    build_period_report,
    verify_calculation,
)
from payroll_engines.withholding import WithholdingTaxCalculator, validate_brackets

__all__ = [
    "AttendanceSummary",
    "ContributionBasis",
    "ContributionRate",
    "DEFAULT_OVERTIME_MULTIPLIER",
    "DEFAULT_STATUTORY_TOLERANCE",
    "ENGINE_VERSION",
    "OvertimePolicy",
    "OvertimeSummary",
    "PayrollCalculationEngine",
    "PayrollRules",
    "PeriodVerificationReport",
    "StatutoryDeductionCalculator",
    "TaxBracket",
    "VerificationFinding",
    "WithholdingTaxCalculator",
    "WorkSchedule",
    "aggregate_attendance",
    "aggregate_overtime",
    "build_period_report",
    "compute_input_fingerprint",
    "compute_overtime_pay",
    "traced_engine",
    "validate_brackets",
    "verify_calculation",
]
