"""Type-helper utilities.

Turns Python type annotations into ``FieldDescriptor`` values so that
the annotation API can stay declarative: authors write ordinary type
hints and the value kind, nullability and relation shape are inferred.
"""
from __future__ import annotations

from dslmeta.introspect.inference import (
    ForwardName,
    build_field,
    field_annotations,
    forward_namespace,
    resolve_annotation,
)
from dslmeta.introspect.naming import is_pascal_case, to_snake_case

__all__ = [
    "ForwardName",
    "build_field",
    "field_annotations",
    "forward_namespace",
    "resolve_annotation",
    "is_pascal_case",
    "to_snake_case",
]
