"""Structural diff between two schema descriptions.

Used to check that a checked-in schema file is still in sync with the
declared metadata. Both sides are compared in their ``to_dict`` form so
a description loaded back from JSON or YAML diffs exactly like a freshly
generated one.

Usage
-----
::

    from dslmeta.schema import diff_schema, generate_schema

    changes = diff_schema(json.loads(path.read_text()), generate_schema())
    for change in changes:
        print(change)
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Union

from dslmeta.schema.model import SchemaDescription

SchemaLike = Union[SchemaDescription, dict[str, Any]]


class ChangeKind(Enum):
    """Enumeration of all change kinds in a schema diff."""

    TABLE_ADDED = auto()
    TABLE_REMOVED = auto()
    COLUMN_ADDED = auto()
    COLUMN_REMOVED = auto()
    COLUMN_CHANGED = auto()
    RELATION_ADDED = auto()
    RELATION_REMOVED = auto()
    PRIMARY_KEY_CHANGED = auto()


@dataclass(frozen=True)
class SchemaChange:
    """One structural difference between the old and new schema."""

    kind: ChangeKind
    table: str
    name: str = ""
    old: str = ""
    new: str = ""

    def __str__(self) -> str:
        if self.kind is ChangeKind.TABLE_ADDED:
            return f"[+] Table '{self.table}' added"
        if self.kind is ChangeKind.TABLE_REMOVED:
            return f"[-] Table '{self.table}' removed"
        if self.kind is ChangeKind.COLUMN_ADDED:
            return f"[+] {self.table}.{self.name}: {self.new}"
        if self.kind is ChangeKind.COLUMN_REMOVED:
            return f"[-] {self.table}.{self.name}: {self.old}"
        if self.kind is ChangeKind.RELATION_ADDED:
            return f"[+] {self.table} relation '{self.name}' → {self.new}"
        if self.kind is ChangeKind.RELATION_REMOVED:
            return f"[-] {self.table} relation '{self.name}' → {self.old}"
        if self.kind is ChangeKind.PRIMARY_KEY_CHANGED:
            return f"[~] {self.table} primary key: {self.old!r} → {self.new!r}"
        return f"[~] {self.table}.{self.name}: {self.old} → {self.new}"


def _as_dict(schema: SchemaLike) -> dict[str, Any]:
    return schema.to_dict() if isinstance(schema, SchemaDescription) else schema


def _column_signature(column: dict[str, Any]) -> str:
    parts = [str(column.get("type", "?"))]
    if column.get("nullable"):
        parts.append("null")
    if column.get("primary_key"):
        parts.append("pk")
    fk = column.get("foreign_key")
    if fk:
        parts.append(f"→ {fk.get('table')}.{fk.get('column')}")
    if column.get("enum"):
        parts.append("enum(" + ",".join(column["enum"]) + ")")
    return " ".join(parts)


def _relation_signature(relation: dict[str, Any]) -> str:
    return f"{relation.get('target_table')} ({relation.get('cardinality')})"


def diff_schema(old: SchemaLike, new: SchemaLike) -> list[SchemaChange]:
    """Return every structural change from ``old`` to ``new``.

    Changes are ordered by the new schema's table order, then removals.
    """
    old_tables = {t["name"]: t for t in _as_dict(old).get("tables", [])}
    new_tables = {t["name"]: t for t in _as_dict(new).get("tables", [])}
    changes: list[SchemaChange] = []

    for name, table in new_tables.items():
        previous = old_tables.get(name)
        if previous is None:
            changes.append(SchemaChange(ChangeKind.TABLE_ADDED, name))
            continue
        if previous.get("primary_key") != table.get("primary_key"):
            changes.append(
                SchemaChange(
                    ChangeKind.PRIMARY_KEY_CHANGED,
                    name,
                    old=str(previous.get("primary_key")),
                    new=str(table.get("primary_key")),
                )
            )
        changes.extend(_diff_columns(name, previous.get("columns", []), table.get("columns", [])))
        changes.extend(_diff_relations(name, previous.get("relations", []), table.get("relations", [])))

    for name in old_tables:
        if name not in new_tables:
            changes.append(SchemaChange(ChangeKind.TABLE_REMOVED, name))
    return changes


def _diff_columns(table: str, old: list[dict[str, Any]], new: list[dict[str, Any]]) -> list[SchemaChange]:
    old_by_name = {c["name"]: c for c in old}
    new_by_name = {c["name"]: c for c in new}
    changes: list[SchemaChange] = []
    for name, column in new_by_name.items():
        signature = _column_signature(column)
        if name not in old_by_name:
            changes.append(SchemaChange(ChangeKind.COLUMN_ADDED, table, name, new=signature))
            continue
        previous = _column_signature(old_by_name[name])
        if previous != signature:
            changes.append(SchemaChange(ChangeKind.COLUMN_CHANGED, table, name, old=previous, new=signature))
    for name, column in old_by_name.items():
        if name not in new_by_name:
            changes.append(SchemaChange(ChangeKind.COLUMN_REMOVED, table, name, old=_column_signature(column)))
    return changes


def _diff_relations(table: str, old: list[dict[str, Any]], new: list[dict[str, Any]]) -> list[SchemaChange]:
    old_by_name = {r["name"]: r for r in old}
    new_by_name = {r["name"]: r for r in new}
    changes: list[SchemaChange] = []
    for name, relation in new_by_name.items():
        if name not in old_by_name or _relation_signature(old_by_name[name]) != _relation_signature(relation):
            if name in old_by_name:
                changes.append(
                    SchemaChange(ChangeKind.RELATION_REMOVED, table, name, old=_relation_signature(old_by_name[name]))
                )
            changes.append(SchemaChange(ChangeKind.RELATION_ADDED, table, name, new=_relation_signature(relation)))
    for name, relation in old_by_name.items():
        if name not in new_by_name:
            changes.append(SchemaChange(ChangeKind.RELATION_REMOVED, table, name, old=_relation_signature(relation)))
    return changes
