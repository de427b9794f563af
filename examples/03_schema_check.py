#!/usr/bin/env python3
"""Example: Schema generation and drift check — dsl-meta

Generates the relational schema description for a small domain, then
diffs it against an older checked-in version to show what a migration
would need to cover.

Usage:
    python examples/03_schema_check.py

Requirements:
    pip install dsl-meta
"""
from __future__ import annotations

import json
from typing import Annotated

import dslmeta
from dslmeta import Field, Relation, entity, extend_entity
from dslmeta.schema import diff_schema


@entity(table="customers")
class Customer:
    code: Annotated[str, Field(primary_key=True, max_length=12)]
    name: str


@entity
class Invoice:
    id: int
    customer: Annotated[Customer, Relation(join_column="customer_code")]
    lines: Annotated[list[InvoiceLine], Relation(many=True, cascade=True)]


@entity
class InvoiceLine:
    id: int
    invoice: Invoice
    amount: float


def main() -> None:
    extend_entity("Invoice", {"due_days": int}, origin="billing.terms")
    schema = dslmeta.generate_schema()

    for table in schema.tables:
        print(f"{table.name} (pk {table.primary_key})")
        for column in table.columns:
            fk = f" -> {column.foreign_key}.{column.references}" if column.foreign_key else ""
            print(f"  {column.name:<15} {column.type}{fk}")

    # Pretend the checked-in file predates the billing extension
    recorded = json.loads(schema.to_json())
    invoice = next(t for t in recorded["tables"] if t["name"] == "invoice")
    invoice["columns"] = [c for c in invoice["columns"] if c["name"] != "due_days"]

    print("\nChanges since the recorded schema:")
    for change in diff_schema(recorded, schema):
        print(f"  {change}")


if __name__ == "__main__":
    main()
