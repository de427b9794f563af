#!/usr/bin/env python3
"""Example: Extensions — dsl-meta

Shows how a second module contributes fields to an entity it does not
own. The contribution is recorded when ``extend_entity`` runs and merged
when the registry is finalized; the original class is never touched.

Usage:
    python examples/02_extensions.py

Requirements:
    pip install dsl-meta
"""
from __future__ import annotations

from typing import Annotated

import dslmeta
from dslmeta import Field, entity, extend_entity


@entity
class Customer:
    id: str
    name: str


def install_loyalty_plugin() -> None:
    """Stand-in for a plugin module imported after the definitions."""
    extend_entity(
        "Customer",
        {
            "tier": Annotated[str, Field(label="Loyalty tier", max_length=20)],
            "points": int,
        },
        origin="loyalty.customer_fields",
    )


def main() -> None:
    install_loyalty_plugin()

    # Before finalization the raw declaration is visible
    print(f"Declared fields: {list(dslmeta.get_entity('Customer').field_names)}")
    # Asking about extensions finalizes the registry implicitly
    print(f"Has extensions:  {dslmeta.has_extensions('Customer')}")

    for field in dslmeta.get_extension_fields("Customer"):
        print(f"  + {field.name} ({field.type_name}) from {field.origin}")

    print(f"Merged fields:   {list(dslmeta.get_entity('Customer').field_names)}")

    # The store rejects late mutations by default
    try:
        extend_entity("Customer", {"referrer": str})
    except dslmeta.StateError as exc:
        print(f"\nLate extension rejected: {exc}")


if __name__ == "__main__":
    main()
