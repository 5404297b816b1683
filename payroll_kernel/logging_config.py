"""
Structured JSON logging for the payroll kernel.

Every record is rendered as one JSON object:

* an envelope: ``ts``, ``level``, ``logger``, ``message``;
* the fields bound in ``LogContext`` for the running batch and employee;
* whatever the call site passed as ``extra``.

Context fields win over extras of the same name, so a worker thread cannot
mislabel the employee it is processing.  Compensation amounts can be masked
at the formatter (``redact=SALARY_FIELDS``) when logs leave the payroll
team.
"""

__all__ = [
    "CONTEXT_FIELDS",
    "SALARY_FIELDS",
    "StructuredFormatter",
    "LogContext",
    "get_logger",
    "configure_logging",
    "parse_level",
    "reset_logging",
]

import json
import logging
import sys
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

CONTEXT_FIELDS: tuple[str, ...] = (
    "correlation_id",
    "batch_id",
    "employee_id",
    "pay_period_id",
    "actor_id",
    "trace_id",
)

# Extra keys the engines and services use for per-employee amounts
SALARY_FIELDS: frozenset[str] = frozenset({
    "basic_pay",
    "attendance_earnings",
    "overtime_pay",
    "gross_income",
    "statutory_total",
    "withholding_tax",
    "total_deductions",
    "net_salary",
    "taxable_income",
    "old_value",
    "new_value",
})

REDACTED = "***"

_vars: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"payroll_log_{name}", default=None) for name in CONTEXT_FIELDS
}


class LogContext:
    """
    Batch- and employee-scoped log fields.

    Backed by ``contextvars``, so values follow the current thread and are
    carried into thread-pool tasks started via ``copy_context().run``.
    Names outside ``CONTEXT_FIELDS`` are ignored everywhere.
    """

    @staticmethod
    def set(**fields: str | None) -> None:
        """Set fields for the rest of the current context; None leaves a field as is."""
        for name, value in fields.items():
            var = _vars.get(name)
            if var is not None and value is not None:
                var.set(value)

    @staticmethod
    def get_all() -> dict[str, str]:
        values = {name: var.get() for name, var in _vars.items()}
        return {name: value for name, value in values.items() if value is not None}

    @staticmethod
    def clear() -> None:
        for var in _vars.values():
            var.set(None)

    @staticmethod
    @contextmanager
    def bind(**fields: str | None) -> Iterator[None]:
        """Set fields for the duration of a ``with`` block, then restore them."""
        tokens = []
        for name, value in fields.items():
            var = _vars.get(name)
            if var is not None and value is not None:
                tokens.append((var, var.set(value)))
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


# ---------------------------------------------------------------------------
# Formatter
# ---------------------------------------------------------------------------

_RESERVED: frozenset[str] = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "taskName"}


def _to_json(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if isinstance(obj, UUID):
        return str(obj)
    return str(obj)


def _exception_fields(exc: BaseException) -> dict[str, Any]:
    # PayrollKernelError subclasses carry their context as attributes
    fields: dict[str, Any] = {
        "exc_type": type(exc).__name__,
        "exc_message": str(exc),
    }
    code = getattr(exc, "code", None)
    if code is not None:
        fields["exc_code"] = code
    for key, value in vars(exc).items():
        if not key.startswith("_") and key not in ("args", "code"):
            fields[f"exc_{key}"] = value
    return fields


class StructuredFormatter(logging.Formatter):
    """One JSON line per record; optionally masks the named extra keys."""

    def __init__(self, redact: Iterable[str] = ()):
        super().__init__()
        self._redact = frozenset(redact)

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **LogContext.get_all(),
        }

        for key, value in vars(record).items():
            if key in _RESERVED or key in payload:
                continue
            payload[key] = REDACTED if key in self._redact and value is not None else value

        if record.exc_info and record.exc_info[1] is not None:
            payload.update(_exception_fields(record.exc_info[1]))
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_to_json)


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

_ROOT = "payroll_kernel"
_configured = False
_handler: logging.Handler | None = None
_lock = threading.Lock()


def get_logger(name: str) -> logging.Logger:
    """Logger ``payroll_kernel.<name>``; every payroll package logs under this root."""
    return logging.getLogger(f"{_ROOT}.{name}")


def parse_level(name: str) -> int:
    """Map a level name such as ``"info"`` to its ``logging`` constant."""
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {name}")
    return level


def configure_logging(
    *,
    level: int = logging.INFO,
    stream: Any = None,
    handler: logging.Handler | None = None,
    redact: Iterable[str] = (),
) -> None:
    """
    Attach one JSON handler to the ``payroll_kernel`` root.

    Only the first call has an effect until ``reset_logging`` runs.
    """
    global _configured, _handler
    with _lock:
        if _configured:
            return
        _configured = True

        root = logging.getLogger(_ROOT)
        root.setLevel(level)
        root.propagate = False

        target = handler if handler is not None else logging.StreamHandler(stream or sys.stderr)
        target.setFormatter(StructuredFormatter(redact=redact))
        root.addHandler(target)
        _handler = target


def reset_logging() -> None:
    """Detach the handler ``configure_logging`` added and clear the flag. Tests only."""
    global _configured, _handler
    with _lock:
        _configured = False
        root = logging.getLogger(_ROOT)
        if _handler is not None:
            root.removeHandler(_handler)
            _handler = None
        root.setLevel(logging.WARNING)
