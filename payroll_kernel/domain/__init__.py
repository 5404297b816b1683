"""Pure domain layer of the payroll kernel: value types, rounding, clock."""

from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.types import (
    AnomalyCode,
    ApprovalState,
    AttendanceDay,
    CalculationAnomaly,
    CompensationProfile,
    ContributionLine,
    EmployeeRecord,
    OvertimeInterval,
    PayPeriod,
    PayrollCalculation,
    PayrollCategory,
    StatutoryDeductions,
)
from payroll_kernel.domain.values import ZERO, round_hours, round_money

__all__ = [
    "AnomalyCode",
    "ApprovalState",
    "AttendanceDay",
    "CalculationAnomaly",
    "Clock",
    "CompensationProfile",
    "ContributionLine",
    "DeterministicClock",
    "EmployeeRecord",
    "OvertimeInterval",
    "PayPeriod",
    "PayrollCalculation",
    "PayrollCategory",
    "StatutoryDeductions",
    "SystemClock",
    "ZERO",
    "round_hours",
    "round_money",
]
