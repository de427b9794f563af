"""Core domain model.

Descriptor dataclasses and the error taxonomy shared by every other
subpackage. Submodules in core/ should not import from registry/,
schema/ or cli/.
"""
from __future__ import annotations

from dslmeta.core.descriptors import (
    Cardinality,
    EntityDescriptor,
    EntityKind,
    ExtensionRecord,
    FieldDescriptor,
    Primitive,
    RelationInfo,
    Validation,
    ValueKind,
)
from dslmeta.core.errors import (
    ConflictError,
    FieldConflictError,
    MetadataError,
    SchemaError,
    StateError,
    UnknownEntityError,
)

__all__ = [
    "Cardinality",
    "EntityDescriptor",
    "EntityKind",
    "ExtensionRecord",
    "FieldDescriptor",
    "Primitive",
    "RelationInfo",
    "Validation",
    "ValueKind",
    "ConflictError",
    "FieldConflictError",
    "MetadataError",
    "SchemaError",
    "StateError",
    "UnknownEntityError",
]
