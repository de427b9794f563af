"""Unit tests for dslmeta.schema.diff."""
from __future__ import annotations

import json

from dslmeta.annotations import entity
from dslmeta.registry.store import MetadataStore
from dslmeta.schema import ChangeKind, SchemaChange, diff_schema, generate_schema
from dslmeta.schema.model import Column, RelationDescriptor, SchemaDescription, Table


def _schema(*tables: Table) -> SchemaDescription:
    return SchemaDescription(tables=tables)


def _order_table(*extra: Column, relations: tuple[RelationDescriptor, ...] = ()) -> Table:
    columns = (Column("id", "text", primary_key=True), Column("total", "numeric(18,2)"), *extra)
    return Table(name="order", entity="Order", primary_key="id", columns=columns, relations=relations)


# ===========================================================================
# diff_schema
# ===========================================================================


class TestDiffSchema:
    def test_identical_schemas(self) -> None:
        assert diff_schema(_schema(_order_table()), _schema(_order_table())) == []

    def test_table_added_and_removed(self) -> None:
        old = _schema(Table("invoice", "Invoice", "id"))
        new = _schema(_order_table())
        kinds = [c.kind for c in diff_schema(old, new)]
        assert kinds == [ChangeKind.TABLE_ADDED, ChangeKind.TABLE_REMOVED]

    def test_column_added(self) -> None:
        changes = diff_schema(_schema(_order_table()), _schema(_order_table(Column("priority", "integer"))))
        assert changes == [SchemaChange(ChangeKind.COLUMN_ADDED, "order", "priority", new="integer")]

    def test_column_removed(self) -> None:
        changes = diff_schema(_schema(_order_table(Column("note", "text", nullable=True))), _schema(_order_table()))
        assert len(changes) == 1
        assert changes[0].kind is ChangeKind.COLUMN_REMOVED
        assert changes[0].old == "text null"

    def test_column_changed(self) -> None:
        old = _schema(_order_table(Column("priority", "integer")))
        new = _schema(_order_table(Column("priority", "text")))
        changes = diff_schema(old, new)
        assert [c.kind for c in changes] == [ChangeKind.COLUMN_CHANGED]
        assert str(changes[0]) == "[~] order.priority: integer → text"

    def test_primary_key_changed(self) -> None:
        old = _schema(Table("order", "Order", "id", columns=(Column("id", "text"),)))
        new = _schema(Table("order", "Order", "code", columns=(Column("id", "text"),)))
        assert [c.kind for c in diff_schema(old, new)] == [ChangeKind.PRIMARY_KEY_CHANGED]

    def test_relation_retargeted(self) -> None:
        old = _schema(_order_table(relations=(RelationDescriptor("lines", "OrderLine", "order_line", "many"),)))
        new = _schema(_order_table(relations=(RelationDescriptor("lines", "Item", "item", "many"),)))
        kinds = [c.kind for c in diff_schema(old, new)]
        assert kinds == [ChangeKind.RELATION_REMOVED, ChangeKind.RELATION_ADDED]

    def test_accepts_dict_loaded_from_json(self, order_domain: MetadataStore) -> None:
        current = generate_schema(order_domain)
        recorded = json.loads(current.to_json())
        assert diff_schema(recorded, current) == []

    def test_detects_new_entity(self, order_domain: MetadataStore) -> None:
        recorded = json.loads(generate_schema(order_domain).to_json())
        fresh = MetadataStore()

        @entity(store=fresh)
        class Invoice:
            id: str

        changes = diff_schema(recorded, generate_schema(fresh))
        assert SchemaChange(ChangeKind.TABLE_ADDED, "invoice") in changes
        assert SchemaChange(ChangeKind.TABLE_REMOVED, "order") in changes


class TestSchemaChangeStr:
    def test_prefixes(self) -> None:
        assert str(SchemaChange(ChangeKind.TABLE_ADDED, "order")).startswith("[+]")
        assert str(SchemaChange(ChangeKind.TABLE_REMOVED, "order")).startswith("[-]")
        assert str(SchemaChange(ChangeKind.COLUMN_CHANGED, "order", "total", "a", "b")).startswith("[~]")
