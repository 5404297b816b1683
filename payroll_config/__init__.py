"""
payroll_config -- single public entrypoint for payroll rate tables.

Responsibility:
    Provides the runtime way to obtain payroll rules through
    ``get_active_config()``: the rate table for a jurisdiction that is in
    effect on a given date, parsed, validated and checksummed.

Architecture position:
    Configuration -- YAML-driven rate tables.  This package sits above
    ``payroll_engines`` (whose ``PayrollRules`` it produces) and below
    ``payroll_services``.  The kernel and the engines MUST NEVER import
    from ``payroll_config``.

Invariants enforced:
    - Only tables whose jurisdiction matches and whose effective range
      covers the date are candidates; DRAFT tables never are.
    - Among candidates, PUBLISHED tables win, then the highest version.
    - A selected table must pass ``validate_rate_config``.

Failure modes:
    - ``RateTableNotFoundError`` -- no table matches jurisdiction and date.
    - ``InvalidRateTableError`` -- any table in the directory is unreadable
      or has a malformed header for the requested jurisdiction; also when
      the matching table fails to parse or validate.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``PAYROLL_CONFIG_TRACE`` log entry carrying the table identifier,
    checksum and effective range.  Calculations record the identifier as
    ``config_version``.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

import yaml

from payroll_config.loader import load_yaml_file, parse_date, parse_rate_config
from payroll_config.schema import ConfigStatus, PayrollRateConfig
from payroll_config.validator import ConfigValidationResult, validate_rate_config
from payroll_kernel.exceptions import InvalidRateTableError, RateTableNotFoundError
from payroll_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default rate table directory
_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    jurisdiction: str,
    as_of_date: date,
    config_dir: Path | None = None,
) -> PayrollRateConfig:
    """Return the validated rate table in effect for ``jurisdiction`` on ``as_of_date``.

    Guarantees:
        - The returned table has passed ``validate_rate_config``.
        - A ``PAYROLL_CONFIG_TRACE`` log entry is emitted on every
          successful call.

    Non-goals:
        - Does NOT cache tables across calls; callers hold the returned
          table for the duration of a batch.

    Args:
        jurisdiction: Jurisdiction code declared in the table (e.g. "PH").
        as_of_date: Date the table must be effective on (normally the
            pay period end date).
        config_dir: Override path to the rate table directory.
            Defaults to payroll_config/sets/.

    Raises:
        RateTableNotFoundError: No table matches.
        InvalidRateTableError: The matching table fails to parse or validate.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    path, document = _find_matching_document(sets_dir, jurisdiction, as_of_date)
    table_id = f"{document.get('config_id', path.stem)}@v{document.get('version', '?')}"

    try:
        config = parse_rate_config(document)
    except (KeyError, ValueError) as exc:
        _logger.error("rate_table_parse_failed", extra={
            "table_id": table_id,
            "path": str(path),
            "error": str(exc),
        })
        raise InvalidRateTableError(table_id, [f"{type(exc).__name__}: {exc}"]) from exc

    validation = validate_rate_config(config)
    for warning in validation.warnings:
        _logger.warning("rate_table_warning", extra={"table_id": table_id, "warning": warning})
    if not validation.is_valid:
        _logger.error("rate_table_invalid", extra={
            "table_id": table_id,
            "errors": list(validation.errors),
        })
        raise InvalidRateTableError(table_id, list(validation.errors))

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "jurisdiction": config.jurisdiction,
            "status": config.status.value,
            "effective_from": config.effective_from.isoformat(),
            "effective_to": config.effective_to.isoformat() if config.effective_to else None,
            "as_of_date": as_of_date.isoformat(),
            "contribution_count": len(config.rules.contributions),
            "bracket_count": len(config.rules.brackets),
        },
    )
    return config


def _find_matching_document(
    sets_dir: Path, jurisdiction: str, as_of_date: date
) -> tuple[Path, dict[str, Any]]:
    """Scan ``sets_dir`` for the best table document covering the request.

    Only the header fields are read here; the winning document is parsed
    in full by the caller.

    Raises:
        RateTableNotFoundError: No document matches.
        InvalidRateTableError: A document in ``sets_dir`` cannot be read, or a
            same-jurisdiction document has an unreadable header.
    """
    if not sets_dir.is_dir():
        raise RateTableNotFoundError(jurisdiction, as_of_date.isoformat())

    candidates: list[tuple[Path, dict[str, Any], int]] = []
    for path in sorted(sets_dir.glob("*.yaml")):
        try:
            document = load_yaml_file(path)
            if document.get("jurisdiction") != jurisdiction:
                continue
            status = document.get("status", ConfigStatus.PUBLISHED.value)
            if status == ConfigStatus.DRAFT.value:
                continue
            effective_from = parse_date(document["effective_from"])
            effective_to = (
                parse_date(document["effective_to"]) if document.get("effective_to") else None
            )
            version = int(document.get("version", 0))
        except (KeyError, ValueError, TypeError, yaml.YAMLError) as exc:
            error = f"{type(exc).__name__}: {exc}"
            _logger.error("rate_table_header_invalid", extra={
                "path": str(path),
                "error": error,
            })
            raise InvalidRateTableError(path.stem, [error]) from exc
        if effective_from <= as_of_date and (effective_to is None or as_of_date <= effective_to):
            candidates.append((path, document, version))

    if not candidates:
        raise RateTableNotFoundError(jurisdiction, as_of_date.isoformat())

    # Multiple matches: prefer PUBLISHED, then highest version
    published = [
        c for c in candidates
        if c[1].get("status", ConfigStatus.PUBLISHED.value) == ConfigStatus.PUBLISHED.value
    ]
    path, document, _ = max(published or candidates, key=lambda c: c[2])
    return path, document


__all__ = [
    "ConfigStatus",
    "ConfigValidationResult",
    "PayrollRateConfig",
    "get_active_config",
    "validate_rate_config",
]
