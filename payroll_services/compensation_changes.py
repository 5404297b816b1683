"""
payroll_services.compensation_changes -- Versioned compensation change events.

Responsibility:
    Apply changes to the compensation-relevant fields of an employee record
    and emit one explicit, versioned change event per field that actually
    changed, instead of silently touching an "updated at" stamp.

Architecture position:
    Services -- pure with respect to I/O; time comes from an injected
    ``Clock``.  Callers persist the new record and the events.

Invariants enforced:
    - Records are never mutated; ``apply`` returns a new frozen record.
    - Versions increase by one per event, per employee, with no gaps.
    - A change that leaves a field at its current value emits no event.
    - Only compensation fields may be changed here.

Failure modes:
    - ``ValueError`` for an unknown field, a float amount, a negative
      amount or a non-boolean flag.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.types import EmployeeRecord
from payroll_kernel.logging_config import get_logger

logger = get_logger("services.compensation_changes")

_AMOUNT_FIELDS = ("basic_monthly_salary", "hourly_rate")
_FLAG_FIELDS = ("overtime_eligible", "late_deductible")
TRACKED_FIELDS: tuple[str, ...] = _AMOUNT_FIELDS + ("position_title",) + _FLAG_FIELDS


@dataclass(frozen=True)
class CompensationChangeEvent:
    """One field change on one employee's compensation."""

    employee_id: str
    field_name: str
    old_value: Any
    new_value: Any
    version: int
    changed_at: datetime
    actor_id: str


class CompensationChangeLog:
    """
    In-process change log with per-employee version counters.

    Thread-safe: concurrent ``apply`` calls for the same employee receive
    distinct, consecutive versions.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._events: dict[str, list[CompensationChangeEvent]] = {}

    def apply(
        self,
        record: EmployeeRecord,
        changes: dict[str, Any],
        actor_id: str,
    ) -> tuple[EmployeeRecord, list[CompensationChangeEvent]]:
        """Apply ``changes`` to ``record``; return the new record and its events."""
        for name, value in changes.items():
            _check_change(name, value)

        effective = {
            name: value for name, value in changes.items()
            if getattr(record, name) != value
        }
        if not effective:
            return record, []

        new_record = replace(record, **effective)
        changed_at = self._clock.now()

        with self._lock:
            history = self._events.setdefault(record.employee_id, [])
            version = len(history)
            events = []
            # Field order follows TRACKED_FIELDS so versions are deterministic
            for name in TRACKED_FIELDS:
                if name not in effective:
                    continue
                version += 1
                events.append(CompensationChangeEvent(
                    employee_id=record.employee_id,
                    field_name=name,
                    old_value=getattr(record, name),
                    new_value=effective[name],
                    version=version,
                    changed_at=changed_at,
                    actor_id=actor_id,
                ))
            history.extend(events)

        for event in events:
            logger.info("compensation_changed", extra={
                "employee_id": event.employee_id,
                "field_name": event.field_name,
                "old_value": str(event.old_value),
                "new_value": str(event.new_value),
                "version": event.version,
                "actor_id": actor_id,
            })
        return new_record, events

    def history(self, employee_id: str) -> list[CompensationChangeEvent]:
        with self._lock:
            return list(self._events.get(employee_id, ()))

    def current_version(self, employee_id: str) -> int:
        with self._lock:
            return len(self._events.get(employee_id, ()))


def _check_change(name: str, value: Any) -> None:
    if name not in TRACKED_FIELDS:
        raise ValueError(f"Unknown compensation field: {name}")
    if name in _AMOUNT_FIELDS:
        if not isinstance(value, Decimal):
            raise ValueError(f"{name} must be a Decimal, got {type(value).__name__}")
        if value < 0:
            raise ValueError(f"{name} cannot be negative")
    elif name in _FLAG_FIELDS:
        if value is not None and not isinstance(value, bool):
            raise ValueError(f"{name} must be a bool or None")
    elif not isinstance(value, str) or not value.strip():
        raise ValueError("position_title must be a non-empty string")
