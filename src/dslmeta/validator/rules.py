"""Built-in validation rules.

A rule takes the merged descriptors of a finalized store and returns
its findings. Rules never raise for bad metadata; they report it.

Codes:

    DSL000  Metadata failed to finalize
    DSL001  Entity or DTO declares no fields
    DSL002  Entity has no usable primary key, or several
    DSL003  Entity relation targets a non-entity
    DSL004  Identifier is not PascalCase
    DSL005  Page declares no route
    DSL006  Extension field declared as primary key
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Callable

from dslmeta.core.descriptors import EntityDescriptor, EntityKind
from dslmeta.core.errors import SchemaError
from dslmeta.introspect.naming import is_pascal_case
from dslmeta.schema.generator import primary_key_field
from dslmeta.validator.diagnostics import Diagnostic, DiagnosticSeverity, Location

Rule = Callable[[Sequence[EntityDescriptor]], list[Diagnostic]]


def _make(
    code: str,
    severity: DiagnosticSeverity,
    message: str,
    location: Location,
    suggestion: str | None = None,
    rule: str = "",
) -> Diagnostic:
    return Diagnostic(
        severity=severity,
        code=code,
        message=message,
        location=location,
        suggestion=suggestion,
        rule=rule,
    )


def _at(descriptor: EntityDescriptor, field: str | None = None) -> Location:
    return Location(entity_id=descriptor.identifier, field=field, origin=descriptor.origin)


# ---------------------------------------------------------------------------
# DSL001 — declarations without fields
# ---------------------------------------------------------------------------

def rule_empty_declarations(descriptors: Sequence[EntityDescriptor]) -> list[Diagnostic]:
    """Warn when an entity or DTO declares no fields at all."""
    diagnostics: list[Diagnostic] = []
    for d in descriptors:
        if d.kind in (EntityKind.ENTITY, EntityKind.DTO) and not d.fields:
            diagnostics.append(_make(
                "DSL001",
                DiagnosticSeverity.WARNING,
                f"{d.kind.value.capitalize()} {d.identifier!r} declares no fields",
                _at(d),
                suggestion="Add annotated members to the class",
                rule="empty_declarations",
            ))
    return diagnostics


# ---------------------------------------------------------------------------
# DSL002 — primary key
# ---------------------------------------------------------------------------

def rule_primary_key(descriptors: Sequence[EntityDescriptor]) -> list[Diagnostic]:
    """Every entity needs exactly one primitive primary key."""
    diagnostics: list[Diagnostic] = []
    for d in descriptors:
        if d.kind is not EntityKind.ENTITY:
            continue
        try:
            primary_key_field(d)
        except SchemaError as exc:
            diagnostics.append(_make(
                "DSL002",
                DiagnosticSeverity.ERROR,
                str(exc),
                _at(d, exc.field),
                suggestion="Declare an 'id' field or mark exactly one with Field(primary_key=True)",
                rule="primary_key",
            ))
    return diagnostics


# ---------------------------------------------------------------------------
# DSL003 — relations from entities must target entities
# ---------------------------------------------------------------------------

def rule_relation_targets(descriptors: Sequence[EntityDescriptor]) -> list[Diagnostic]:
    """Entity relations can only point at other entities, which own tables."""
    by_id = {d.identifier: d for d in descriptors}
    diagnostics: list[Diagnostic] = []
    for d in descriptors:
        if d.kind is not EntityKind.ENTITY:
            continue
        for f in d.fields:
            if f.relation is None:
                continue
            target = by_id.get(f.relation.target)
            if target is not None and target.kind is not EntityKind.ENTITY:
                diagnostics.append(_make(
                    "DSL003",
                    DiagnosticSeverity.ERROR,
                    f"{d.identifier}.{f.name} references {target.kind.value} "
                    f"{target.identifier!r}, which has no table",
                    _at(d, f.name),
                    suggestion="Reference an entity, or move the field to a DTO",
                    rule="relation_targets",
                ))
    return diagnostics


# ---------------------------------------------------------------------------
# DSL004 — naming
# ---------------------------------------------------------------------------

def rule_identifier_naming(descriptors: Sequence[EntityDescriptor]) -> list[Diagnostic]:
    """Identifiers read best as PascalCase type names."""
    return [
        _make(
            "DSL004",
            DiagnosticSeverity.HINT,
            f"Identifier {d.identifier!r} is not PascalCase",
            _at(d),
            rule="identifier_naming",
        )
        for d in descriptors
        if not is_pascal_case(d.identifier)
    ]


# ---------------------------------------------------------------------------
# DSL005 — pages need a route
# ---------------------------------------------------------------------------

def rule_page_route(descriptors: Sequence[EntityDescriptor]) -> list[Diagnostic]:
    return [
        _make(
            "DSL005",
            DiagnosticSeverity.WARNING,
            f"Page {d.identifier!r} declares no route",
            _at(d),
            suggestion="Pass route='/path' to @page",
            rule="page_route",
        )
        for d in descriptors
        if d.kind is EntityKind.PAGE and not d.options.get("route")
    ]


# ---------------------------------------------------------------------------
# DSL006 — extensions should not define keys
# ---------------------------------------------------------------------------

def rule_extension_primary_key(descriptors: Sequence[EntityDescriptor]) -> list[Diagnostic]:
    diagnostics: list[Diagnostic] = []
    for d in descriptors:
        for f in d.extension_fields:
            if f.primary_key:
                diagnostics.append(_make(
                    "DSL006",
                    DiagnosticSeverity.WARNING,
                    f"Extension from {f.origin} declares {d.identifier}.{f.name} as primary key",
                    _at(d, f.name),
                    suggestion="Primary keys belong to the entity's own declaration",
                    rule="extension_primary_key",
                ))
    return diagnostics


# ---------------------------------------------------------------------------
# Rule registry
# ---------------------------------------------------------------------------

DEFAULT_RULES: list[Rule] = [
    rule_empty_declarations,
    rule_primary_key,
    rule_relation_targets,
    rule_identifier_naming,
    rule_page_route,
    rule_extension_primary_key,
]
