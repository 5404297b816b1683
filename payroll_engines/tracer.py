"""
payroll_engines.tracer -- Engine invocation tracer emitting PAYROLL_ENGINE_TRACE.

Responsibility:
    Provide a lightweight decorator (``@traced_engine``) that wraps pure
    engine invocations with structured trace logging.  The trace captures
    engine_name, engine_version, input_fingerprint (deterministic SHA-256
    hash of selected arguments), and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Does NOT introduce I/O into engines; emits a log record only.

Invariants enforced:
    - Fingerprints are deterministic: arguments are rendered through
      ``canonicalize_json`` (sorted keys, normalized Decimals, dataclasses
      expanded), then hashed with SHA-256 truncated to 16 hex chars.
    - Positional and keyword arguments are fingerprinted alike; they are
      bound to the wrapped function's signature first.
    - The decorator never mutates inputs or the result.

Failure modes:
    - A fingerprint field that is not a parameter of the wrapped function
      is recorded as null.
    - Arguments canonicalize_json cannot render fall back to ``repr``,
      which is not stable across processes for objects without a
      deterministic repr.

Audit relevance:
    The input_fingerprint lets an auditor confirm that two runs of the
    same employee and period saw identical inputs.

Usage:
    from payroll_engines.tracer import traced_engine

    @traced_engine("withholding", "1.0", fingerprint_fields=("taxable_income",))
    def calculate(self, taxable_income):
        ...
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import time
from collections.abc import Callable
from typing import Any

from payroll_kernel.logging_config import get_logger
from payroll_kernel.utils.hashing import canonicalize_json

_logger = get_logger("engines.tracer")


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    arguments: dict[str, Any],
) -> str:
    """Compute a deterministic SHA-256 fingerprint of selected arguments.

    Only the fields listed in fingerprint_fields are included.  Missing
    fields are recorded as null.  The result is a hex digest prefix
    (16 chars).
    """
    selected = {name: arguments.get(name) for name in fingerprint_fields}
    try:
        canonical = canonicalize_json(selected)
    except TypeError:
        # Unserializable argument (e.g. a generator); fall back to repr
        canonical = repr(selected)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits PAYROLL_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "payroll_calculation").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Parameter names to include in the input
            fingerprint hash.

    Returns:
        Decorator function.
    """

    def decorator(func: Callable) -> Callable:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                bound = signature.bind_partial(*args, **kwargs)
                fp = compute_input_fingerprint(fingerprint_fields, bound.arguments)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.info(
                "PAYROLL_ENGINE_TRACE",
                extra={
                    "trace_type": "PAYROLL_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
