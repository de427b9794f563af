"""Schema generation.

Exports the ``SchemaGenerator`` class, the ``generate_schema``
convenience function, the description dataclasses and ``diff_schema``.
"""
from __future__ import annotations

from dslmeta.schema.diff import ChangeKind, SchemaChange, diff_schema
from dslmeta.schema.generator import (
    SchemaGenerator,
    foreign_key_column,
    generate_schema,
    primary_key_field,
    table_name,
)
from dslmeta.schema.model import Column, RelationDescriptor, SchemaDescription, Table

__all__ = [
    "ChangeKind",
    "Column",
    "RelationDescriptor",
    "SchemaChange",
    "SchemaDescription",
    "SchemaGenerator",
    "Table",
    "diff_schema",
    "foreign_key_column",
    "generate_schema",
    "primary_key_field",
    "table_name",
]
