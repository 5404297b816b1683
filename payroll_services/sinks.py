"""
payroll_services.sinks -- Persistence sinks for payroll calculations.

Responsibility:
    Store at most one ``PayrollCalculation`` per (employee_id, pay_period_id)
    and report whether a write inserted a row or found one already there.

Architecture position:
    Services -- persistence adapters.  The engines never see a sink; the
    orchestrator writes through the ``CalculationSink`` protocol.

Invariants enforced:
    - Insert-if-absent is atomic: of any number of concurrent writers for
      the same key, exactly one gets ``INSERTED``.
    - An existing row is never overwritten.
    - ``InMemoryCalculationSink`` guards its map with a lock;
      ``SqlAlchemyCalculationSink`` relies on the
      ``uq_payroll_calculation_employee_period`` constraint and treats
      ``IntegrityError`` on insert as ``ALREADY_PRESENT``.

Failure modes:
    - Database errors other than the uniqueness violation propagate.

Audit relevance:
    The SQLAlchemy sink stores a SHA-256 ``calculation_hash`` of each row
    as written; ``has_integrity`` re-derives it to detect edits made
    outside the engine.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.types import PayrollCalculation
from payroll_kernel.logging_config import get_logger
from payroll_kernel.models.payroll_calculation import PayrollCalculationRecord
from payroll_kernel.utils.hashing import hash_payload

logger = get_logger("services.sinks")


class UpsertOutcome(str, Enum):
    """Result of an insert-if-absent write."""

    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


@runtime_checkable
class CalculationSink(Protocol):
    def upsert_if_absent(
        self,
        employee_id: str,
        pay_period_id: str,
        calculation: PayrollCalculation,
    ) -> UpsertOutcome: ...

    def get(self, employee_id: str, pay_period_id: str) -> PayrollCalculation | None: ...

    def list_for_period(self, pay_period_id: str) -> list[PayrollCalculation]: ...


def calculation_hash(calculation: PayrollCalculation) -> str:
    """SHA-256 of the canonical form of a calculation."""
    return hash_payload(calculation)


class InMemoryCalculationSink:
    """Thread-safe dict-backed sink; listing follows insertion order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[tuple[str, str], PayrollCalculation] = {}

    def upsert_if_absent(
        self,
        employee_id: str,
        pay_period_id: str,
        calculation: PayrollCalculation,
    ) -> UpsertOutcome:
        key = (employee_id, pay_period_id)
        with self._lock:
            if key in self._rows:
                return UpsertOutcome.ALREADY_PRESENT
            self._rows[key] = calculation
        logger.debug("calculation_stored", extra={
            "employee_id": employee_id,
            "pay_period_id": pay_period_id,
        })
        return UpsertOutcome.INSERTED

    def get(self, employee_id: str, pay_period_id: str) -> PayrollCalculation | None:
        with self._lock:
            return self._rows.get((employee_id, pay_period_id))

    def list_for_period(self, pay_period_id: str) -> list[PayrollCalculation]:
        with self._lock:
            return [c for (_, period), c in self._rows.items() if period == pay_period_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._rows)


class SqlAlchemyCalculationSink:
    """
    Sink backed by the ``payroll_calculations`` table.

    Each call runs in its own short session from ``session_factory``, so a
    sink instance can be shared between worker threads.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def upsert_if_absent(
        self,
        employee_id: str,
        pay_period_id: str,
        calculation: PayrollCalculation,
    ) -> UpsertOutcome:
        with self._session_factory() as session:
            if self._find(session, employee_id, pay_period_id) is not None:
                return UpsertOutcome.ALREADY_PRESENT

            record = PayrollCalculationRecord.from_dto(
                calculation,
                processed_at=self._clock.now(),
                calculation_hash=calculation_hash(calculation),
            )
            session.add(record)
            try:
                session.commit()
            except IntegrityError:
                # Concurrent insert won the unique constraint
                session.rollback()
                logger.warning("concurrent_insert_conflict", extra={
                    "employee_id": employee_id,
                    "pay_period_id": pay_period_id,
                })
                return UpsertOutcome.ALREADY_PRESENT

        logger.debug("calculation_stored", extra={
            "employee_id": employee_id,
            "pay_period_id": pay_period_id,
        })
        return UpsertOutcome.INSERTED

    def get(self, employee_id: str, pay_period_id: str) -> PayrollCalculation | None:
        with self._session_factory() as session:
            record = self._find(session, employee_id, pay_period_id)
            return record.to_dto() if record is not None else None

    def list_for_period(self, pay_period_id: str) -> list[PayrollCalculation]:
        with self._session_factory() as session:
            records = session.execute(
                select(PayrollCalculationRecord)
                .where(PayrollCalculationRecord.pay_period_id == pay_period_id)
                .order_by(PayrollCalculationRecord.processed_at, PayrollCalculationRecord.employee_id)
            ).scalars().all()
            return [r.to_dto() for r in records]

    def has_integrity(self, employee_id: str, pay_period_id: str) -> bool:
        """True when the stored row still hashes to the value recorded at insert."""
        with self._session_factory() as session:
            record = self._find(session, employee_id, pay_period_id)
            if record is None:
                return False
            return calculation_hash(record.to_dto()) == record.calculation_hash

    @staticmethod
    def _find(
        session: Session, employee_id: str, pay_period_id: str
    ) -> PayrollCalculationRecord | None:
        return session.execute(
            select(PayrollCalculationRecord).where(
                PayrollCalculationRecord.employee_id == employee_id,
                PayrollCalculationRecord.pay_period_id == pay_period_id,
            )
        ).scalar_one_or_none()
