"""Metadata validator module.

Exports the ``Validator`` class, the ``validate`` convenience function,
``Diagnostic`` types, and all built-in validation rules.
"""
from __future__ import annotations

from dslmeta.validator.diagnostics import Diagnostic, DiagnosticSeverity, Location
from dslmeta.validator.rules import DEFAULT_RULES, Rule
from dslmeta.validator.validator import Validator, validate

__all__ = [
    "Validator",
    "validate",
    "Diagnostic",
    "DiagnosticSeverity",
    "Location",
    "Rule",
    "DEFAULT_RULES",
]
