"""
Rate Table Schema (``payroll_config.schema``).

Responsibility
--------------
Frozen dataclasses describing one versioned, effective-dated payroll rate
table as it is declared in YAML.  The calculation rules themselves are the
engine's own ``PayrollRules``; this module adds the identity and lifecycle
metadata a configuration needs for selection and audit.

Architecture position
---------------------
**Config layer** -- pure data definitions.  Produced by
``payroll_config.loader``, checked by ``payroll_config.validator``,
selected by ``payroll_config.get_active_config``.

Invariants enforced
-------------------
* All dataclasses are ``frozen=True``.
* ``checksum`` is the SHA-256 of the source YAML document, so two tables
  with the same checksum carry identical rules.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum, unique

from payroll_engines.rules import PayrollRules


@unique
class ConfigStatus(str, Enum):
    """Lifecycle status for a rate table."""

    DRAFT = "draft"
    APPROVED = "approved"
    PUBLISHED = "published"
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class PayrollRateConfig:
    """
    One payroll rate table.

    Contract
    --------
    * ``effective_to`` of ``None`` means open-ended.
    * ``rules.version`` equals ``identifier`` so every calculation records
      the table that produced it.
    """

    config_id: str
    version: int
    jurisdiction: str
    effective_from: date
    rules: PayrollRules
    effective_to: date | None = None
    status: ConfigStatus = ConfigStatus.PUBLISHED
    description: str = ""
    checksum: str = ""

    @property
    def identifier(self) -> str:
        return f"{self.config_id}@v{self.version}"

    def is_effective(self, on_date: date) -> bool:
        if on_date < self.effective_from:
            return False
        return self.effective_to is None or on_date <= self.effective_to
