"""Unit tests for dslmeta.schema.generator and dslmeta.schema.model."""
from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Callable

import pytest
import yaml

from dslmeta.annotations import Field, Relation, dto, entity
from dslmeta.core.errors import SchemaError, UnknownEntityError
from dslmeta.extension import extend_entity
from dslmeta.registry.store import MetadataStore
from dslmeta.schema import SchemaGenerator, generate_schema, table_name
from dslmeta.schema.model import SchemaDescription


# ===========================================================================
# Tables and columns
# ===========================================================================


class TestTables:
    def test_only_entities_become_tables(self, order_domain: MetadataStore) -> None:
        schema = generate_schema(order_domain)
        assert schema.table_names == ("customer", "order", "order_line")

    def test_table_for_entity(self, order_domain: MetadataStore) -> None:
        schema = generate_schema(order_domain)
        table = schema.table_for("OrderLine")
        assert table is not None
        assert table.name == "order_line"
        assert schema.table("order_line") is table
        assert schema.table_for("OrderSummary") is None

    def test_columns_follow_field_order(self, order_domain: MetadataStore) -> None:
        table = generate_schema(order_domain).table("order")
        assert table is not None
        assert table.column_names == ("id", "total", "status", "customer_id")
        assert table.comment == "Customer orders"

    def test_primary_key_defaults_to_id(self, order_domain: MetadataStore) -> None:
        table = generate_schema(order_domain).table("customer")
        assert table is not None
        assert table.primary_key == "id"
        id_column = table.column("id")
        assert id_column is not None and id_column.primary_key is True

    def test_explicit_table_name(self, store: MetadataStore) -> None:
        @entity(table="purchase_orders", store=store)
        class PurchaseOrder:
            id: str

        assert generate_schema(store).table_names == ("purchase_orders",)
        assert table_name(store.get("PurchaseOrder")) == "purchase_orders"

    def test_explicit_column_name(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Invoice:
            id: str
            total: Annotated[Decimal, Field(column="total_amount")]

        table = generate_schema(store).table("invoice")
        assert table is not None
        assert table.column_names == ("id", "total_amount")
        column = table.column("total_amount")
        assert column is not None and column.source_field == "total"


class TestColumnTypes:
    def test_type_mapping(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Sample:
            id: int
            name: str
            ratio: float
            active: bool
            amount: Decimal
            created: datetime
            meta: dict
            tags: list[str]

        table = generate_schema(store).table("sample")
        assert table is not None
        assert {c.name: c.type for c in table.columns} == {
            "id": "integer",
            "name": "text",
            "ratio": "real",
            "active": "boolean",
            "amount": "numeric(18,2)",
            "created": "timestamp",
            "meta": "json",
            "tags": "json",
        }

    def test_precision_hints(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Measure:
            id: str
            price: Annotated[Decimal, Field(precision=12, scale=4)]
            weight: Annotated[float, Field(precision=10, scale=3)]

        table = generate_schema(store).table("measure")
        assert table is not None
        assert table.column("price").type == "numeric(12,4)"  # type: ignore[union-attr]
        assert table.column("weight").type == "numeric(10,3)"  # type: ignore[union-attr]

    def test_enum_column(self, order_domain: MetadataStore) -> None:
        table = generate_schema(order_domain).table("order")
        assert table is not None
        status = table.column("status")
        assert status is not None
        assert status.type == "text"
        assert status.enum_values == ("draft", "submitted", "cancelled")

    def test_nullable(self, order_domain: MetadataStore) -> None:
        table = generate_schema(order_domain).table("customer")
        assert table is not None
        assert table.column("email").nullable is True  # type: ignore[union-attr]
        assert table.column("name").nullable is False  # type: ignore[union-attr]

    def test_decimal_defaults_configurable(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Ledger:
            id: str
            balance: Decimal

        schema = SchemaGenerator(store, decimal_precision=20, decimal_scale=6).generate()
        assert schema.table("ledger").column("balance").type == "numeric(20,6)"  # type: ignore[union-attr]


# ===========================================================================
# Relations
# ===========================================================================


class TestRelations:
    def test_field_already_named_like_key_is_used_as_is(self, order_domain: MetadataStore) -> None:
        table = generate_schema(order_domain).table("order_line")
        assert table is not None
        fk = table.column("orderId")
        assert fk is not None
        assert fk.foreign_key == "order"
        assert fk.references == "id"
        assert fk.type == "text"

    def test_fk_type_matches_target_key(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Warehouse:
            id: int

        @entity(store=store)
        class Bin:
            id: str
            warehouse: Warehouse

        table = generate_schema(store).table("bin")
        assert table is not None
        column = table.column("warehouse_id")
        assert column is not None
        assert column.type == "integer"

    def test_one_relation_descriptor(self, order_domain: MetadataStore) -> None:
        table = generate_schema(order_domain).table("order")
        assert table is not None
        relation = table.relation("customer")
        assert relation is not None
        assert relation.target_entity == "Customer"
        assert relation.target_table == "customer"
        assert relation.cardinality == "one"
        assert relation.column == "customer_id"

    def test_many_relation_has_no_column(self, order_domain: MetadataStore) -> None:
        table = generate_schema(order_domain).table("order")
        assert table is not None
        assert "lines" not in table.column_names
        relation = table.relation("lines")
        assert relation is not None
        assert relation.cardinality == "many"
        assert relation.column is None
        assert relation.target_table == "order_line"

    def test_join_column(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Account:
            id: str

        @entity(store=store)
        class Payment:
            id: str
            payer: Annotated[Account, Relation(join_column="payer_account")]

        table = generate_schema(store).table("payment")
        assert table is not None
        assert table.column_names == ("id", "payer_account")

    def test_mutual_references_need_no_ordering(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Employee:
            id: str
            department: Department

        @entity(store=store)
        class Department:
            id: str
            manager: Employee | None

        schema = generate_schema(store)
        assert schema.table("employee").column("department_id").foreign_key == "department"  # type: ignore[union-attr]
        manager = schema.table("department").column("manager_id")  # type: ignore[union-attr]
        assert manager is not None
        assert manager.foreign_key == "employee"
        assert manager.nullable is True

    def test_extension_columns_come_last(self, order_domain: MetadataStore) -> None:
        extend_entity("Order", {"priority": int}, origin="loyalty.fields", store=order_domain)
        table = generate_schema(order_domain).table("order")
        assert table is not None
        assert table.column_names[-1] == "priority"
        assert table.column("priority").is_extension is True  # type: ignore[union-attr]


# ===========================================================================
# Errors
# ===========================================================================


class TestSchemaErrors:
    def test_two_primary_keys(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Broken:
            a: Annotated[str, Field(primary_key=True)]
            b: Annotated[str, Field(primary_key=True)]

        with pytest.raises(SchemaError) as excinfo:
            generate_schema(store)
        assert excinfo.value.entity_id == "Broken"

    def test_no_primary_key(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Keyless:
            name: str

        with pytest.raises(SchemaError, match="Keyless"):
            generate_schema(store)

    def test_relation_to_dto(self, store: MetadataStore) -> None:
        @dto(store=store)
        class Address:
            street: str

        @entity(store=store)
        class Site:
            id: str
            address: Address

        with pytest.raises(SchemaError, match="Site.address"):
            generate_schema(store)

    def test_duplicate_column(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Clash:
            id: str
            total: Annotated[Decimal, Field(column="amount")]
            amount: Decimal

        with pytest.raises(SchemaError, match="amount"):
            generate_schema(store)

    def test_dangling_reference_reported_at_finalize(self, store: MetadataStore) -> None:
        @entity(store=store)
        class Orphan:
            id: str
            parent: Ghost

        with pytest.raises(UnknownEntityError, match="Ghost"):
            generate_schema(store)


# ===========================================================================
# Output
# ===========================================================================


class TestDeterminism:
    def test_same_store_same_json(self, order_domain: MetadataStore) -> None:
        assert generate_schema(order_domain).to_json() == generate_schema(order_domain).to_json()

    def test_identical_declarations_give_identical_output(
        self, order_domain_factory: Callable[[MetadataStore], MetadataStore]
    ) -> None:
        first, second = order_domain_factory(MetadataStore()), order_domain_factory(MetadataStore())
        for target in (first, second):
            extend_entity("Customer", {"tier": int, "tags": list[str]}, origin="loyalty.fields", store=target)
        assert generate_schema(first).to_json() == generate_schema(second).to_json()
        assert generate_schema(first).to_yaml() == generate_schema(second).to_yaml()

    def test_json_is_valid(self, order_domain: MetadataStore) -> None:
        data = json.loads(generate_schema(order_domain).to_json())
        assert [t["name"] for t in data["tables"]] == ["customer", "order", "order_line"]

    def test_yaml_preserves_order(self, order_domain: MetadataStore) -> None:
        data = yaml.safe_load(generate_schema(order_domain).to_yaml())
        assert [c["name"] for c in data["tables"][1]["columns"]] == ["id", "total", "status", "customer_id"]

    def test_fk_serialized(self, order_domain: MetadataStore) -> None:
        data = generate_schema(order_domain).to_dict()
        line = data["tables"][2]
        fk = next(c for c in line["columns"] if c["name"] == "orderId")
        assert fk["foreign_key"] == {"table": "order", "column": "id"}

    def test_empty_store(self, store: MetadataStore) -> None:
        assert generate_schema(store) == SchemaDescription()
