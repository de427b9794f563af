"""dsl-meta: declarative metadata registry with extensions and schema generation.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
::

    from decimal import Decimal
    from typing import Annotated

    import dslmeta
    from dslmeta import Field, Relation, entity

    @entity
    class Order:
        id: str
        total: Annotated[Decimal, Field(precision=12, scale=2)]
        lines: Annotated[list[OrderLine], Relation(many=True)]

    @entity
    class OrderLine:
        id: str
        orderId: Annotated[Order, Relation(to="Order")]

    # Contribute a field from another module
    dslmeta.extend_entity(Order, {"priority": int})

    # Lock the registry and read merged descriptors
    dslmeta.finalize()
    dslmeta.get_entity("Order").field_names
    ('id', 'total', 'lines', 'priority')

    # Project entities onto tables
    schema = dslmeta.generate_schema()

    # Structural checks
    diagnostics = dslmeta.validate()

    dslmeta.__version__
    '0.1.0'
"""
from __future__ import annotations

from collections.abc import Iterator

from dslmeta.annotations import Field, Relation, action, component, dto, entity, enum_type, page
from dslmeta.core import (
    Cardinality,
    ConflictError,
    EntityDescriptor,
    EntityKind,
    FieldConflictError,
    FieldDescriptor,
    MetadataError,
    Primitive,
    SchemaError,
    StateError,
    UnknownEntityError,
    ValueKind,
)
from dslmeta.extension import extend_entity, get_extension_fields, has_extensions
from dslmeta.registry import (
    FinalizePolicy,
    MetadataStore,
    StoreConfig,
    default_store,
    load_definitions,
)
from dslmeta.schema import SchemaDescription, generate_schema
from dslmeta.validator import Diagnostic, validate

__version__: str = "0.1.0"


def get_entity(entity_id: str, store: MetadataStore | None = None) -> EntityDescriptor:
    """Return the descriptor registered as ``entity_id``.

    Before finalization this is the descriptor as declared; afterwards it
    includes extension fields.

    Raises
    ------
    UnknownEntityError
        If nothing is registered under ``entity_id``.
    """
    return (store if store is not None else default_store()).get(entity_id)


def all_entities(store: MetadataStore | None = None) -> Iterator[EntityDescriptor]:
    """Iterate over every registered descriptor in first-registration order."""
    return (store if store is not None else default_store()).all()


def finalize(store: MetadataStore | None = None) -> None:
    """Merge extensions and lock ``store`` (the process-wide store by default)."""
    (store if store is not None else default_store()).finalize()


__all__ = [
    "__version__",
    # Declaring
    "entity",
    "dto",
    "enum_type",
    "page",
    "component",
    "action",
    "Field",
    "Relation",
    "extend_entity",
    # Reading
    "get_entity",
    "all_entities",
    "finalize",
    "get_extension_fields",
    "has_extensions",
    "default_store",
    "load_definitions",
    "MetadataStore",
    "StoreConfig",
    "FinalizePolicy",
    # Descriptors
    "EntityDescriptor",
    "FieldDescriptor",
    "EntityKind",
    "ValueKind",
    "Primitive",
    "Cardinality",
    # Tooling
    "generate_schema",
    "SchemaDescription",
    "validate",
    "Diagnostic",
    # Errors
    "MetadataError",
    "ConflictError",
    "UnknownEntityError",
    "FieldConflictError",
    "SchemaError",
    "StateError",
]
