#!/usr/bin/env python3
"""Example: Quickstart — dsl-meta

Minimal working example: declare entities with decorators, finalize the
registry, read merged descriptors and run the structural checks.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install dsl-meta
"""
from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Annotated

import dslmeta
from dslmeta import Field, Relation, action, dto, entity, enum_type


@enum_type
class OrderStatus(Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"


@entity(comment="Customer orders")
class Order:
    id: str
    total: Annotated[Decimal, Field(precision=12, scale=2, label="Total")]
    status: OrderStatus
    note: str | None
    lines: Annotated[list[OrderLine], Relation(many=True)]

    @action(transactional=True)
    def submit(self) -> None:
        """Declared actions are recorded by name."""


@entity
class OrderLine:
    id: int
    orderId: Annotated[Order, Relation(to="Order")]
    sku: str
    quantity: int


@dto
class OrderSummary:
    order_id: str
    total: Decimal


def main() -> None:
    print(f"dsl-meta version: {dslmeta.__version__}")

    # Step 1: Lock the registry
    dslmeta.finalize()

    # Step 2: Read descriptors in registration order
    for descriptor in dslmeta.all_entities():
        print(f"{descriptor.kind.value:<7} {descriptor.identifier:<13} fields={list(descriptor.field_names)}")

    # Step 3: Inspect one field
    total = dslmeta.get_entity("Order").field("total")
    assert total is not None
    print(f"\nOrder.total: type={total.type_name}, precision={total.precision}, scale={total.scale}")

    # Step 4: Structural checks
    diagnostics = dslmeta.validate()
    print(f"Validation: {len(diagnostics)} diagnostic(s)")
    for diag in diagnostics:
        print(f"  {diag}")


if __name__ == "__main__":
    main()
