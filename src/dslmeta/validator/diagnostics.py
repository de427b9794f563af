"""Findings reported by the metadata validator.

Diagnostics point at declarations rather than source text: a
``Location`` names the entity identifier, optionally one of its fields,
and the module the declaration came from.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class DiagnosticSeverity(Enum):
    """How serious a finding is. Only ``ERROR`` fails validation."""

    ERROR = "error"
    WARNING = "warning"
    INFORMATION = "information"
    HINT = "hint"


@dataclass(frozen=True, slots=True)
class Location:
    """An entity, optionally narrowed to one field, plus its declaring module."""

    entity_id: str = ""
    field: str | None = None
    origin: str | None = None

    def __str__(self) -> str:
        if not self.entity_id:
            return "<registry>"
        return f"{self.entity_id}.{self.field}" if self.field else self.entity_id


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """One finding about the declared metadata.

    Parameters
    ----------
    severity:
        ``ERROR`` blocks schema generation in CI; the rest are advisory.
    code:
        Stable rule code, ``"DSL000"`` to ``"DSL006"`` for built-in rules.
    message:
        What is wrong, naming the entity and field.
    location:
        The declaration concerned.
    suggestion:
        How to fix it, when there is an obvious fix.
    rule:
        Name of the rule function that produced the finding.
    """

    severity: DiagnosticSeverity
    code: str
    message: str
    location: Location
    suggestion: str | None = None
    rule: str = ""

    @property
    def is_error(self) -> bool:
        return self.severity is DiagnosticSeverity.ERROR

    def with_severity(self, severity: DiagnosticSeverity) -> "Diagnostic":
        """Return a copy reported at ``severity``."""
        return replace(self, severity=severity)

    def to_dict(self) -> dict[str, Any]:
        """Plain-data form for machine-readable CLI output."""
        data: dict[str, Any] = {
            "code": self.code,
            "severity": self.severity.value,
            "entity": self.location.entity_id or None,
            "field": self.location.field,
            "origin": self.location.origin,
            "message": self.message,
        }
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data

    def __str__(self) -> str:
        text = f"{self.code} {self.severity.value} {self.location}: {self.message}"
        if self.suggestion:
            text += f" ({self.suggestion})"
        return text
