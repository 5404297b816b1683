"""
payroll_services -- Orchestration and adapters around the payroll engines.

Re-exports the orchestrator, its collaborator protocols and in-memory
implementations, the persistence sinks, the verification service and the
compensation change log.
"""

from payroll_services.compensation_changes import (
    TRACKED_FIELDS,
    CompensationChangeEvent,
    CompensationChangeLog,
)
from payroll_services.processing_orchestrator import (
    EmployeeOutcome,
    OutcomeStatus,
    PayrollProcessingOrchestrator,
    PayrollProcessingResult,
    RulesProvider,
    active_rules,
)
from payroll_services.providers import (
    AttendanceProvider,
    EmployeeProvider,
    InMemoryAttendanceProvider,
    InMemoryEmployeeProvider,
    InMemoryOvertimeProvider,
    InMemoryPayPeriodProvider,
    OvertimeProvider,
    PayPeriodProvider,
    PositionDirectory,
    TitleKeywordPositionDirectory,
    check_eligibility,
    resolve_compensation_profile,
)
from payroll_services.sinks import (
    CalculationSink,
    InMemoryCalculationSink,
    SqlAlchemyCalculationSink,
    UpsertOutcome,
    calculation_hash,
)
from payroll_services.verification_service import PayrollVerificationService

__all__ = [
    "AttendanceProvider",
    "CalculationSink",
    "CompensationChangeEvent",
    "CompensationChangeLog",
    "EmployeeOutcome",
    "EmployeeProvider",
    "InMemoryAttendanceProvider",
    "InMemoryCalculationSink",
    "InMemoryEmployeeProvider",
    "InMemoryOvertimeProvider",
    "InMemoryPayPeriodProvider",
    "OutcomeStatus",
    "OvertimeProvider",
    "PayPeriodProvider",
    "PayrollProcessingOrchestrator",
    "PayrollProcessingResult",
    "PayrollVerificationService",
    "PositionDirectory",
    "RulesProvider",
    "SqlAlchemyCalculationSink",
    "TRACKED_FIELDS",
    "TitleKeywordPositionDirectory",
    "UpsertOutcome",
    "active_rules",
    "calculation_hash",
    "check_eligibility",
    "resolve_compensation_profile",
]
