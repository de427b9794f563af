"""Schema description produced by the generator.

A ``SchemaDescription`` is a flat, order-stable list of tables. It is a
*description* for a query-builder layer: it names columns, foreign keys
and relations but says nothing about creation order or migrations.

Serializing the same description twice yields byte-identical text,
which is what makes it diffable against checked-in migration files.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import yaml


@dataclass(frozen=True, slots=True)
class Column:
    """One column of a table.

    ``foreign_key`` and ``references`` are set together on columns that
    materialize a single-valued relation.
    """

    name: str
    type: str
    nullable: bool = False
    primary_key: bool = False
    unique: bool = False
    foreign_key: str | None = None
    references: str | None = None
    source_field: str | None = None
    is_extension: bool = False
    enum_values: tuple[str, ...] = ()
    comment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "type": self.type, "nullable": self.nullable}
        if self.primary_key:
            data["primary_key"] = True
        if self.unique:
            data["unique"] = True
        if self.foreign_key is not None:
            data["foreign_key"] = {"table": self.foreign_key, "column": self.references}
        if self.source_field is not None:
            data["source_field"] = self.source_field
        if self.is_extension:
            data["extension"] = True
        if self.enum_values:
            data["enum"] = list(self.enum_values)
        if self.comment:
            data["comment"] = self.comment
        return data


@dataclass(frozen=True, slots=True)
class RelationDescriptor:
    """A relation declared by a reference field.

    ``column`` names the foreign-key column for ``one`` relations and is
    ``None`` for ``many`` relations, whose join strategy is left to the
    query-builder.
    """

    name: str
    target_entity: str
    target_table: str
    cardinality: str
    column: str | None = None
    cascade: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "target": self.target_entity,
            "target_table": self.target_table,
            "cardinality": self.cardinality,
        }
        if self.column is not None:
            data["column"] = self.column
        if self.cascade:
            data["cascade"] = True
        return data


@dataclass(frozen=True, slots=True)
class Table:
    """A table derived from one ``entity`` descriptor."""

    name: str
    entity: str
    primary_key: str
    columns: tuple[Column, ...] = ()
    relations: tuple[RelationDescriptor, ...] = ()
    comment: str | None = None

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.columns)

    def column(self, name: str) -> Column | None:
        for c in self.columns:
            if c.name == name:
                return c
        return None

    def relation(self, name: str) -> RelationDescriptor | None:
        for r in self.relations:
            if r.name == name:
                return r
        return None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "entity": self.entity,
            "primary_key": self.primary_key,
        }
        if self.comment:
            data["comment"] = self.comment
        data["columns"] = [c.to_dict() for c in self.columns]
        data["relations"] = [r.to_dict() for r in self.relations]
        return data


@dataclass(frozen=True, slots=True)
class SchemaDescription:
    """Every table derived from a finalized metadata store, in registration order."""

    tables: tuple[Table, ...] = ()

    def table(self, name: str) -> Table | None:
        """Return the table called ``name``, or ``None``."""
        for t in self.tables:
            if t.name == name:
                return t
        return None

    def table_for(self, entity_id: str) -> Table | None:
        """Return the table derived from entity ``entity_id``, or ``None``."""
        for t in self.tables:
            if t.entity == entity_id:
                return t
        return None

    @property
    def table_names(self) -> tuple[str, ...]:
        return tuple(t.name for t in self.tables)

    def to_dict(self) -> dict[str, Any]:
        return {"tables": [t.to_dict() for t in self.tables]}

    def to_json(self, indent: int = 2) -> str:
        """Serialize to JSON. Key and table order are fixed, never sorted."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False) + "\n"

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, allow_unicode=True, sort_keys=False)
