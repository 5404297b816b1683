"""SQLAlchemy ORM models for persisted payroll calculations."""

from payroll_kernel.models.payroll_calculation import (
    ContributionLineRecord,
    PayrollCalculationRecord,
)

__all__ = ["ContributionLineRecord", "PayrollCalculationRecord"]
