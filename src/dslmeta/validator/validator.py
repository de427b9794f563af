"""Structural checks over the finalized registry.

``Validator.validate`` finalizes the store and hands the merged
descriptors to each rule in turn. A finalization failure (an extension
or relation naming an unregistered entity, a field collision) is not
raised: it comes back as a single ``DSL000`` error, because none of the
other rules can run against a store that does not merge.

Usage
-----
::

    from dslmeta.validator import Validator

    diagnostics = Validator(strict=True).validate(store)
    if any(d.is_error for d in diagnostics):
        raise SystemExit(1)
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from dslmeta.core.descriptors import EntityDescriptor
from dslmeta.core.errors import MetadataError
from dslmeta.registry.store import MetadataStore, default_store
from dslmeta.validator.diagnostics import Diagnostic, DiagnosticSeverity, Location
from dslmeta.validator.rules import DEFAULT_RULES, Rule

logger = logging.getLogger(__name__)


def _finalize_failure(exc: MetadataError) -> Diagnostic:
    return Diagnostic(
        severity=DiagnosticSeverity.ERROR,
        code="DSL000",
        message=str(exc),
        location=Location(entity_id=exc.entity_id or "", field=exc.field, origin=exc.origin),
        suggestion="Fix the declaration so the registry can finalize",
        rule="finalize",
    )


def _in_registration_order(
    diagnostics: list[Diagnostic],
    descriptors: Sequence[EntityDescriptor],
) -> list[Diagnostic]:
    position = {d.identifier: index for index, d in enumerate(descriptors)}
    return sorted(diagnostics, key=lambda d: (position.get(d.location.entity_id, -1), d.code))


class Validator:
    """Runs validation rules against a metadata store.

    Parameters
    ----------
    rules:
        Rule callables to run, in order. ``None`` selects
        ``DEFAULT_RULES``.
    strict:
        Report warnings as errors, for CI gates.
    """

    def __init__(
        self,
        rules: list[Rule] | None = None,
        strict: bool = False,
    ) -> None:
        self._rules: list[Rule] = rules if rules is not None else list(DEFAULT_RULES)
        self._strict = strict

    @property
    def rule_count(self) -> int:
        return len(self._rules)

    def add_rule(self, rule: Rule) -> None:
        """Append ``rule``; it runs after the rules already configured."""
        self._rules.append(rule)

    def validate(self, store: MetadataStore | None = None) -> list[Diagnostic]:
        """Validate ``store`` (the process-wide store by default).

        Returns
        -------
        list[Diagnostic]
            Findings ordered by the registration order of the entity they
            concern, then by code. Empty when nothing is wrong.
        """
        target = store if store is not None else default_store()
        try:
            descriptors = target.snapshot()
        except MetadataError as exc:
            logger.debug("Store failed to finalize during validation: %s", exc)
            return [_finalize_failure(exc)]

        found: list[Diagnostic] = []
        for rule in self._rules:
            found.extend(rule(descriptors))
        if self._strict:
            found = [
                d.with_severity(DiagnosticSeverity.ERROR) if d.severity is DiagnosticSeverity.WARNING else d
                for d in found
            ]

        logger.debug("Validation of %d descriptor(s) produced %d diagnostic(s)", len(descriptors), len(found))
        return _in_registration_order(found, descriptors)


def validate(store: MetadataStore | None = None, strict: bool = False) -> list[Diagnostic]:
    """Validate ``store`` with the default rules."""
    return Validator(strict=strict).validate(store)
