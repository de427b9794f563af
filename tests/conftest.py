"""Shared test fixtures for dsl-meta.

Fixtures defined here are available to all tests in the suite without
needing an explicit import. ``store`` gives every test its own empty
``MetadataStore``; the process-wide store is reset around every test so
that decorators used without ``store=`` never leak between tests.

Classes declared inside fixtures and test functions refer to each other
by name: with postponed annotations, a name that is not a module global
resolves to a forward reference carrying that name.
"""
from __future__ import annotations

import sys
import uuid
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, Callable, Iterator

import pytest

from dslmeta.annotations import Field, Relation, action, dto, entity, enum_type
from dslmeta.registry.store import MetadataStore, StoreConfig, default_store


class OrderStatus(Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    CANCELLED = "cancelled"


@pytest.fixture()
def package_name() -> str:
    """Return the importable package name for assertions."""
    return "dslmeta"


@pytest.fixture()
def expected_version() -> str:
    """Return the current expected version string.

    Update this fixture when cutting a release so that the version
    test immediately catches stale ``__version__`` values.
    """
    return "0.1.0"


@pytest.fixture(autouse=True)
def reset_default_store() -> Iterator[None]:
    default_store().reset()
    yield
    default_store().reset()
    default_store().configure(StoreConfig())


@pytest.fixture()
def store() -> MetadataStore:
    """Return a fresh, empty store."""
    return MetadataStore()


def declare_order_domain(store: MetadataStore) -> MetadataStore:
    """Declare a small purchasing domain into ``store`` and return it.

    Customer ← Order ⇄ OrderLine, plus an enum and a DTO.
    """
    enum_type(OrderStatus, store=store)

    @entity(store=store)
    class Customer:
        id: str
        name: Annotated[str, Field(label="Name", max_length=80)]
        email: str | None

    @entity(store=store, comment="Customer orders")
    class Order:
        id: str
        total: Annotated[Decimal, Field(precision=12, scale=2)]
        status: OrderStatus
        customer: Customer
        lines: list[OrderLine]

        @action(transactional=True)
        def submit(self) -> None: ...

    @entity(store=store)
    class OrderLine:
        id: int
        orderId: Annotated[Order, Relation(to="Order")]
        sku: str
        quantity: int

    @dto(store=store)
    class OrderSummary:
        order_id: str
        total: Decimal

    return store


@pytest.fixture()
def order_domain(store: MetadataStore) -> MetadataStore:
    return declare_order_domain(store)


@pytest.fixture()
def order_domain_factory() -> Callable[[MetadataStore], MetadataStore]:
    """Return the function that declares the purchasing domain into a store."""
    return declare_order_domain


# ---------------------------------------------------------------------------
# Importable definition packages
# ---------------------------------------------------------------------------

MODELS_SOURCE = '''\
from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from dslmeta import Field, Relation, entity


@entity
class Customer:
    id: str
    name: str


@entity
class Order:
    id: str
    total: Annotated[Decimal, Field(precision=12, scale=2)]
    customer: Customer
    lines: list[OrderLine]


@entity
class OrderLine:
    id: int
    orderId: Annotated[Order, Relation(to="Order")]
    sku: str
'''

EXTENSION_SOURCE = '''\
from __future__ import annotations

from dslmeta import extend_entity

extend_entity("Order", {"priority": int})
'''


@pytest.fixture()
def definition_package(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    """Write a uniquely named package with ``models`` and ``loyalty`` modules.

    Yields the package name. The package directory is put on ``sys.path``
    and every module imported from it is dropped afterwards, so the next
    test imports (and registers) it afresh.
    """
    name = f"shop_{uuid.uuid4().hex[:8]}"
    package = tmp_path / name
    package.mkdir()
    (package / "__init__.py").write_text("", encoding="utf-8")
    (package / "models.py").write_text(MODELS_SOURCE, encoding="utf-8")
    (package / "loyalty.py").write_text(EXTENSION_SOURCE, encoding="utf-8")
    monkeypatch.syspath_prepend(str(tmp_path))
    yield name
    for module in [m for m in sys.modules if m == name or m.startswith(f"{name}.")]:
        del sys.modules[module]
