"""
Payroll Calculation ORM Models (``payroll_kernel.models.payroll_calculation``).

Responsibility:
    SQLAlchemy ORM models that persist the frozen ``PayrollCalculation`` DTO
    and its itemized ``ContributionLine``s.  Each ORM class mirrors a DTO and
    provides ``to_dto()`` / ``from_dto()`` conversion.

Invariants enforced:
    - UNIQUE (employee_id, pay_period_id): the database is the final arbiter
      of "already processed".  A second insert for the same pair raises
      IntegrityError, which the SQLAlchemy sink reports as ALREADY_PRESENT.
    - Monetary columns are Numeric(18, 2) -- NEVER float.
    - Enum fields stored as String(50) containing the enum .value string.

Audit relevance:
    ``calculation_hash`` is the SHA-256 of the canonical DTO at insert time
    so a later verification pass can detect rows edited outside the engine.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_kernel.db.base import Base
from payroll_kernel.domain.types import (
    AnomalyCode,
    CalculationAnomaly,
    ContributionLine,
    PayrollCalculation,
    PayrollCategory,
    StatutoryDeductions,
)
from payroll_kernel.domain.values import round_hours, round_money

# ---------------------------------------------------------------------------
# PayrollCalculationRecord
# ---------------------------------------------------------------------------


class PayrollCalculationRecord(Base):
    """
    ORM model for ``PayrollCalculation`` -- one computed payroll row.

    Guarantees:
        - At most one row per (employee_id, pay_period_id)
          (uq_payroll_calculation_employee_period).
        - ``anomalies`` stores a list of {code, message, reference} dicts.
    """

    __tablename__ = "payroll_calculations"

    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    pay_period_id: Mapped[str] = mapped_column(String(50), nullable=False)

    basic_pay: Mapped[Decimal] = mapped_column(nullable=False)
    attendance_earnings: Mapped[Decimal] = mapped_column(nullable=False)
    overtime_pay: Mapped[Decimal] = mapped_column(nullable=False)
    gross_income: Mapped[Decimal] = mapped_column(nullable=False)
    withholding_tax: Mapped[Decimal] = mapped_column(nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(nullable=False)

    category: Mapped[str] = mapped_column(String(50), nullable=False)
    taxable_income: Mapped[Decimal] = mapped_column(nullable=False)
    worked_hours: Mapped[Decimal] = mapped_column(nullable=False)
    late_hours: Mapped[Decimal] = mapped_column(nullable=False)
    absent_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_hours: Mapped[Decimal] = mapped_column(nullable=False)
    config_version: Mapped[str | None] = mapped_column(String(100), nullable=True)
    anomalies: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    calculation_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    processed_at: Mapped[datetime] = mapped_column(nullable=False)

    contribution_lines: Mapped[list["ContributionLineRecord"]] = relationship(
        "ContributionLineRecord",
        back_populates="calculation",
        cascade="all, delete-orphan",
        order_by="ContributionLineRecord.position",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint(
            "employee_id", "pay_period_id",
            name="uq_payroll_calculation_employee_period",
        ),
        Index("idx_payroll_calculation_period", "pay_period_id"),
    )

    def to_dto(self) -> PayrollCalculation:
        return PayrollCalculation(
            employee_id=self.employee_id,
            pay_period_id=self.pay_period_id,
            basic_pay=round_money(self.basic_pay),
            attendance_earnings=round_money(self.attendance_earnings),
            overtime_pay=round_money(self.overtime_pay),
            gross_income=round_money(self.gross_income),
            statutory_deductions=StatutoryDeductions(
                lines=tuple(line.to_dto() for line in self.contribution_lines),
            ),
            withholding_tax=round_money(self.withholding_tax),
            total_deductions=round_money(self.total_deductions),
            net_salary=round_money(self.net_salary),
            category=PayrollCategory(self.category),
            taxable_income=round_money(self.taxable_income),
            worked_hours=round_hours(self.worked_hours),
            late_hours=round_hours(self.late_hours),
            absent_days=self.absent_days,
            overtime_hours=round_hours(self.overtime_hours),
            config_version=self.config_version,
            anomalies=tuple(
                CalculationAnomaly(
                    code=AnomalyCode(item["code"]),
                    message=item["message"],
                    reference=item.get("reference"),
                )
                for item in self.anomalies or ()
            ),
        )

    @classmethod
    def from_dto(
        cls,
        dto: PayrollCalculation,
        processed_at: datetime,
        calculation_hash: str,
    ) -> "PayrollCalculationRecord":
        return cls(
            employee_id=dto.employee_id,
            pay_period_id=dto.pay_period_id,
            basic_pay=dto.basic_pay,
            attendance_earnings=dto.attendance_earnings,
            overtime_pay=dto.overtime_pay,
            gross_income=dto.gross_income,
            withholding_tax=dto.withholding_tax,
            total_deductions=dto.total_deductions,
            net_salary=dto.net_salary,
            category=dto.category.value,
            taxable_income=dto.taxable_income,
            worked_hours=dto.worked_hours,
            late_hours=dto.late_hours,
            absent_days=dto.absent_days,
            overtime_hours=dto.overtime_hours,
            config_version=dto.config_version,
            anomalies=[
                {"code": a.code.value, "message": a.message, "reference": a.reference}
                for a in dto.anomalies
            ],
            calculation_hash=calculation_hash,
            processed_at=processed_at,
            contribution_lines=[
                ContributionLineRecord.from_dto(line, position=i)
                for i, line in enumerate(dto.statutory_deductions.lines)
            ],
        )

    def __repr__(self) -> str:
        return (
            f"<PayrollCalculationRecord employee={self.employee_id} "
            f"period={self.pay_period_id} net={self.net_salary}>"
        )


# ---------------------------------------------------------------------------
# ContributionLineRecord
# ---------------------------------------------------------------------------


class ContributionLineRecord(Base):
    """ORM model for one itemized statutory contribution of a calculation."""

    __tablename__ = "payroll_contribution_lines"

    calculation_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_calculations.id"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    base: Mapped[Decimal] = mapped_column(nullable=False)
    rate: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)

    calculation: Mapped["PayrollCalculationRecord"] = relationship(
        "PayrollCalculationRecord", back_populates="contribution_lines",
    )

    __table_args__ = (
        Index("idx_payroll_contribution_line_calculation", "calculation_id"),
    )

    def to_dto(self) -> ContributionLine:
        return ContributionLine(
            code=self.code,
            name=self.name,
            base=round_money(self.base),
            rate=Decimal(self.rate),
            amount=round_money(self.amount),
        )

    @classmethod
    def from_dto(cls, dto: ContributionLine, position: int) -> "ContributionLineRecord":
        # Rates keep their full precision as text; Numeric(18, 2) would truncate 0.0275
        return cls(
            position=position,
            code=dto.code,
            name=dto.name,
            base=dto.base,
            rate=str(dto.rate),
            amount=dto.amount,
        )
