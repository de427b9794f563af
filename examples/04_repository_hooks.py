#!/usr/bin/env python3
"""Example: Metadata-driven repository with hooks and events — dsl-meta

An in-memory repository reads its table and key from the registry. A
before-create hook fills in defaults and an event subscriber sees every
change to ``Order`` records.

Usage:
    python examples/04_repository_hooks.py

Requirements:
    pip install dsl-meta
"""
from __future__ import annotations

from typing import Any

from dslmeta import entity
from dslmeta.runtime import (
    CreateContext,
    HookAction,
    HookRegistry,
    InMemoryRepository,
    LocalEventBus,
    PageOptions,
)


@entity
class Order:
    id: int
    customer: str
    total: float
    status: str


def default_status(ctx: CreateContext) -> None:
    ctx.data.setdefault("status", "draft")


def log_event(event: dict[str, Any]) -> None:
    print(f"  event: order {event['id']} ({event['status']})")


def main() -> None:
    hooks = HookRegistry()
    hooks.before(HookAction.CREATE, default_status, entity="Order")

    bus = LocalEventBus()
    bus.subscribe("Order.*", log_event)

    orders = InMemoryRepository("Order", hooks=hooks, events=bus)
    print(f"Table: {orders.metadata.table}, key column: {orders.metadata.primary_key_column}")

    for customer, total in [("acme", 120.0), ("globex", 75.5), ("acme", 19.9)]:
        orders.save({"customer": customer, "total": total})

    first = orders.find_by_id(1)
    assert first is not None
    first["status"] = "submitted"
    orders.save(first)

    page = orders.find_page({"customer": "acme"}, PageOptions(page_size=1, sort={"total": "desc"}))
    print(f"\nacme orders: {page.total}, pages: {page.total_pages}, first: {page.items[0]}")


if __name__ == "__main__":
    main()
