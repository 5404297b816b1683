"""
Rate Table Loader (``payroll_config.loader``).

Responsibility
--------------
Loads rate-table YAML files and parses them into ``PayrollRateConfig``
instances whose ``rules`` feed the calculation engine directly.  Runtime
callers go through ``payroll_config.get_active_config()``; tests and the
CLI may load a file explicitly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends on the engine rule
types only.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* Amounts and rates are parsed as ``Decimal`` from their string form;
  YAML floats are refused.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed document for identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Invalid date, time, amount or enum value  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date, time
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import ConfigStatus, PayrollRateConfig
from payroll_engines.rules import (
    DEFAULT_OVERTIME_MULTIPLIER,
    ContributionBasis,
    ContributionRate,
    OvertimePolicy,
    PayrollRules,
    TaxBracket,
    WorkSchedule,
)
from payroll_kernel.domain.types import PayrollCategory

_WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    return data


def parse_date(value: Any) -> date:
    """Parse a date from YAML (ISO string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_time(value: Any) -> time:
    """
    Parse a wall-clock time from an ``HH:MM`` string.

    Unquoted ``8:00`` is read by YAML 1.1 as the integer 480, so integers
    are refused rather than guessed at.
    """
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        return time.fromisoformat(value)
    raise ValueError(f"Cannot parse time from {value!r}; quote it as 'HH:MM'")


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a Decimal from a YAML string or int."""
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(
            f"{field_name}: {value!r} must be written as a quoted string or an integer"
        )
    if isinstance(value, (int, str, Decimal)):
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{field_name}: {value!r} is not a number") from exc
    raise ValueError(f"{field_name}: cannot parse amount from {value!r}")


def _optional_decimal(data: dict[str, Any], key: str) -> Decimal | None:
    if data.get(key) is None:
        return None
    return parse_decimal(data[key], key)


def parse_schedule(data: dict[str, Any]) -> WorkSchedule:
    """Parse a WorkSchedule; omitted keys take the standard 08:00 schedule."""
    defaults = WorkSchedule()
    weekdays = defaults.work_weekdays
    if "work_weekdays" in data:
        try:
            weekdays = frozenset(_WEEKDAYS[str(d).lower()] for d in data["work_weekdays"])
        except KeyError as exc:
            raise ValueError(f"Unknown weekday {exc.args[0]!r}") from exc

    return WorkSchedule(
        standard_start=parse_time(data.get("standard_start", defaults.standard_start)),
        grace_end=parse_time(data.get("grace_end", defaults.grace_end)),
        lunch_minutes=int(data.get("lunch_minutes", defaults.lunch_minutes)),
        standard_hours_per_day=parse_decimal(
            data.get("standard_hours_per_day", defaults.standard_hours_per_day),
            "standard_hours_per_day",
        ),
        work_weekdays=weekdays,
    )


def parse_overtime(data: dict[str, Any]) -> OvertimePolicy:
    multipliers = {
        PayrollCategory(category): parse_decimal(value, f"overtime.multipliers.{category}")
        for category, value in (data.get("multipliers") or {}).items()
    }
    return OvertimePolicy(
        multipliers=multipliers,
        default_multiplier=parse_decimal(
            data.get("default_multiplier", DEFAULT_OVERTIME_MULTIPLIER),
            "overtime.default_multiplier",
        ),
    )


def parse_contribution(data: dict[str, Any]) -> ContributionRate:
    """Parse a ContributionRate from a dict."""
    return ContributionRate(
        code=data["code"],
        name=data.get("name", data["code"]),
        rate=parse_decimal(data["rate"], f"{data['code']}.rate"),
        min_base=_optional_decimal(data, "min_base"),
        max_base=_optional_decimal(data, "max_base"),
    )


def parse_bracket(data: dict[str, Any]) -> TaxBracket:
    """Parse a TaxBracket from a dict."""
    return TaxBracket(
        lower_bound=parse_decimal(data["lower_bound"], "lower_bound"),
        upper_bound=_optional_decimal(data, "upper_bound"),
        base_tax=parse_decimal(data.get("base_tax", 0), "base_tax"),
        marginal_rate=parse_decimal(data.get("marginal_rate", 0), "marginal_rate"),
    )


def parse_rate_config(data: dict[str, Any]) -> PayrollRateConfig:
    """
    Parse a full rate table document.

    Brackets are kept in declaration order; the validator reports ordering
    and contiguity problems.
    """
    config_id = data["config_id"]
    version = int(data["version"])
    identifier = f"{config_id}@v{version}"

    rules = PayrollRules(
        contributions=tuple(parse_contribution(c) for c in data.get("contributions") or ()),
        brackets=tuple(parse_bracket(b) for b in data.get("withholding_brackets") or ()),
        schedule=parse_schedule(data.get("schedule") or {}),
        overtime=parse_overtime(data.get("overtime") or {}),
        contribution_basis=ContributionBasis(
            data.get("contribution_basis", ContributionBasis.NOMINAL.value)
        ),
        periods_per_month=parse_decimal(data.get("periods_per_month", 2), "periods_per_month"),
        version=identifier,
    )

    return PayrollRateConfig(
        config_id=config_id,
        version=version,
        jurisdiction=data["jurisdiction"],
        effective_from=parse_date(data["effective_from"]),
        effective_to=parse_date(data["effective_to"]) if data.get("effective_to") else None,
        status=ConfigStatus(data.get("status", ConfigStatus.PUBLISHED.value)),
        description=data.get("description", ""),
        rules=rules,
        checksum=compute_checksum(data),
    )


def load_rate_config(path: Path) -> PayrollRateConfig:
    """Load and parse one rate table file (not validated)."""
    return parse_rate_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
