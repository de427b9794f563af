"""Project finalized metadata into a relational schema description.

Rules
-----
- Only ``entity`` descriptors become tables; DTOs, enums, pages and
  components stay registry-only.
- Tables follow registration order; columns follow field order, so
  extension fields always come after the entity's own fields.
- Every non-relation field becomes one column. Types map through a
  fixed table: string→text, integer→integer, number→real (or
  numeric(p,s) with a precision hint), boolean→boolean,
  decimal→numeric(p,s), date→timestamp, json and collections of
  primitives→json, enums→text.
- The primary key is the field marked ``primary_key``, otherwise a
  primitive field named ``id``. Several marked fields is an error.
- A ``one`` relation becomes a foreign-key column referencing the target
  table's primary key plus a relation entry; a ``many`` relation is a
  relation entry only.
- Cycles between entities need no special handling because nothing here
  depends on creation order.
"""
from __future__ import annotations

import logging

from dslmeta.core.descriptors import (
    Cardinality,
    EntityDescriptor,
    EntityKind,
    FieldDescriptor,
    Primitive,
    ValueKind,
)
from dslmeta.core.errors import SchemaError
from dslmeta.introspect.naming import to_snake_case
from dslmeta.registry.store import MetadataStore, default_store
from dslmeta.schema.model import Column, RelationDescriptor, SchemaDescription, Table

logger = logging.getLogger(__name__)

DEFAULT_DECIMAL_PRECISION = 18
DEFAULT_DECIMAL_SCALE = 2

COLUMN_TYPES: dict[Primitive, str] = {
    Primitive.STRING: "text",
    Primitive.INTEGER: "integer",
    Primitive.NUMBER: "real",
    Primitive.BOOLEAN: "boolean",
    Primitive.DECIMAL: "numeric",
    Primitive.DATE: "timestamp",
    Primitive.JSON: "json",
}


def table_name(descriptor: EntityDescriptor) -> str:
    """Return the explicit table name or the snake_case identifier."""
    return descriptor.table or to_snake_case(descriptor.identifier)


def foreign_key_column(field: FieldDescriptor) -> str:
    """Return the foreign-key column name for a single-valued relation field.

    An explicit ``join_column`` wins; a field already named like a key
    (``order_id``, ``orderId``) is used as-is; otherwise ``_id`` is
    appended to the field name.
    """
    if field.relation is not None and field.relation.join_column:
        return field.relation.join_column
    if field.column:
        return field.column
    if field.name.endswith(("_id", "Id")):
        return field.name
    return f"{field.name}_id"


def primary_key_field(descriptor: EntityDescriptor) -> FieldDescriptor:
    """Return the primary-key field of an entity descriptor.

    The field marked ``primary_key`` wins; otherwise a primitive field
    named ``id`` is used.

    Raises
    ------
    SchemaError
        If several fields are marked, or no primitive key can be found.
    """
    marked = [f for f in descriptor.fields if f.primary_key]
    if len(marked) > 1:
        names = ", ".join(f.name for f in marked)
        raise SchemaError(
            f"Entity {descriptor.identifier!r} marks {len(marked)} fields as primary key ({names}); "
            "exactly one is allowed",
            entity_id=descriptor.identifier,
            field=marked[1].name,
            origin=descriptor.origin,
        )
    key = marked[0] if marked else descriptor.field("id")
    if key is None:
        raise SchemaError(
            f"Entity {descriptor.identifier!r} has no primary key; mark a field with "
            "Field(primary_key=True) or declare a primitive 'id' field",
            entity_id=descriptor.identifier,
            origin=descriptor.origin,
        )
    if key.kind is not ValueKind.PRIMITIVE:
        raise SchemaError(
            f"Primary key {descriptor.identifier}.{key.name} must be a primitive field",
            entity_id=descriptor.identifier,
            field=key.name,
            origin=descriptor.origin,
        )
    return key


class SchemaGenerator:
    """Builds a ``SchemaDescription`` from a metadata store.

    Parameters
    ----------
    store:
        The store to read. Defaults to the process-wide store. It is
        finalized on first use if that has not happened yet.
    decimal_precision, decimal_scale:
        Precision and scale for ``decimal`` fields without explicit hints.
    """

    def __init__(
        self,
        store: MetadataStore | None = None,
        *,
        decimal_precision: int = DEFAULT_DECIMAL_PRECISION,
        decimal_scale: int = DEFAULT_DECIMAL_SCALE,
    ) -> None:
        self._store = store if store is not None else default_store()
        self._decimal_precision = decimal_precision
        self._decimal_scale = decimal_scale

    def generate(self) -> SchemaDescription:
        """Generate the schema description.

        Raises
        ------
        SchemaError
            If an entity declares several primary keys or none, a relation
            targets something that is not a table-backed entity, or two
            fields map to the same column.
        UnknownEntityError, FieldConflictError
            If the store fails to finalize.
        """
        descriptors = self._store.snapshot()
        by_id = {d.identifier: d for d in descriptors}
        entities = [d for d in descriptors if d.kind is EntityKind.ENTITY]
        primary_keys = {d.identifier: primary_key_field(d) for d in entities}

        tables = tuple(self._table(d, by_id, primary_keys) for d in entities)
        logger.debug("Generated schema with %d table(s)", len(tables))
        return SchemaDescription(tables=tables)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _column_type(self, field: FieldDescriptor) -> str:
        if field.kind is ValueKind.ENUM:
            return "text"
        if field.kind is ValueKind.COLLECTION:
            return "json"
        primitive = field.primitive or Primitive.STRING
        if primitive is Primitive.DECIMAL:
            precision = field.precision or self._decimal_precision
            scale = field.scale if field.scale is not None else self._decimal_scale
            return f"numeric({precision},{scale})"
        if primitive is Primitive.NUMBER and field.precision is not None:
            return f"numeric({field.precision},{field.scale or 0})"
        return COLUMN_TYPES[primitive]

    def _target_table(
        self,
        owner: EntityDescriptor,
        field: FieldDescriptor,
        by_id: dict[str, EntityDescriptor],
    ) -> EntityDescriptor:
        assert field.relation is not None
        target = by_id.get(field.relation.target)
        if target is None or target.kind is not EntityKind.ENTITY:
            what = "is not registered" if target is None else f"is a {target.kind.value}, not an entity"
            raise SchemaError(
                f"{owner.identifier}.{field.name} references {field.relation.target!r}, which {what}; "
                "only entities have tables",
                entity_id=owner.identifier,
                field=field.name,
                origin=field.origin or owner.origin,
            )
        return target

    def _table(
        self,
        descriptor: EntityDescriptor,
        by_id: dict[str, EntityDescriptor],
        primary_keys: dict[str, FieldDescriptor],
    ) -> Table:
        key = primary_keys[descriptor.identifier]
        key_column = key.column or key.name
        columns: list[Column] = []
        relations: list[RelationDescriptor] = []

        for field in descriptor.fields:
            if field.relation is None:
                columns.append(
                    Column(
                        name=field.column or field.name,
                        type=self._column_type(field),
                        nullable=field.nullable,
                        primary_key=field is key,
                        unique=field.unique,
                        source_field=field.name,
                        is_extension=field.is_extension,
                        enum_values=field.enum_values,
                        comment=field.comment or field.label,
                    )
                )
                continue

            target = self._target_table(descriptor, field, by_id)
            target_key = primary_keys[target.identifier]
            target_name = table_name(target)
            fk_name: str | None = None
            if field.relation.cardinality is Cardinality.ONE:
                fk_name = foreign_key_column(field)
                columns.append(
                    Column(
                        name=fk_name,
                        type=self._column_type(target_key),
                        nullable=field.nullable,
                        unique=field.unique,
                        foreign_key=target_name,
                        references=target_key.column or target_key.name,
                        source_field=field.name,
                        is_extension=field.is_extension,
                        comment=field.comment or field.label,
                    )
                )
            relations.append(
                RelationDescriptor(
                    name=field.name,
                    target_entity=target.identifier,
                    target_table=target_name,
                    cardinality=field.relation.cardinality.value,
                    column=fk_name,
                    cascade=field.relation.cascade,
                )
            )

        seen: set[str] = set()
        for column in columns:
            if column.name in seen:
                raise SchemaError(
                    f"Entity {descriptor.identifier!r} maps two fields to column {column.name!r}",
                    entity_id=descriptor.identifier,
                    field=column.source_field,
                    origin=descriptor.origin,
                )
            seen.add(column.name)

        return Table(
            name=table_name(descriptor),
            entity=descriptor.identifier,
            primary_key=key_column,
            columns=tuple(columns),
            relations=tuple(relations),
            comment=descriptor.comment,
        )


def generate_schema(store: MetadataStore | None = None) -> SchemaDescription:
    """Convenience function: generate a schema from ``store`` with default settings."""
    return SchemaGenerator(store).generate()
