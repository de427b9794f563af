"""Repository interface and registry-driven table metadata.

Query execution belongs to the host application's query-builder layer.
This module only fixes the shape a repository exposes and derives what a
repository needs to know from the finalized registry: the table name,
the primary-key field and the field→column mapping.

``InMemoryRepository`` is a reference implementation backed by a dict.
It runs lifecycle hooks and publishes ``<Entity>.created``,
``<Entity>.updated`` and ``<Entity>.deleted`` events when given a
``HookRegistry`` and an ``EventBus``, which makes it useful in tests of
business code.
"""
from __future__ import annotations

import copy
import itertools
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, Mapping, TypeVar

from dslmeta.core.descriptors import Cardinality, EntityKind
from dslmeta.core.errors import SchemaError
from dslmeta.registry.store import MetadataStore, default_store
from dslmeta.runtime.events import EventBus
from dslmeta.runtime.hooks import (
    CreateContext,
    DeleteContext,
    HookAction,
    HookRegistry,
    ReadContext,
    UpdateContext,
)
from dslmeta.schema.generator import foreign_key_column, primary_key_field, table_name

logger = logging.getLogger(__name__)

T = TypeVar("T")

SortSpec = Mapping[str, str]


# ---------------------------------------------------------------------------
# Paging
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PageOptions:
    """Paging request. ``page_no`` starts at 1.

    ``sort`` maps field names to ``"asc"`` or ``"desc"``; earlier keys take
    precedence.
    """

    page_no: int = 1
    page_size: int = 10
    sort: SortSpec = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.page_no < 1:
            raise ValueError(f"page_no must be >= 1, got {self.page_no}")
        if self.page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {self.page_size}")
        for name, direction in self.sort.items():
            if direction not in ("asc", "desc"):
                raise ValueError(f"Sort direction for {name!r} must be 'asc' or 'desc', got {direction!r}")

    @property
    def offset(self) -> int:
        return (self.page_no - 1) * self.page_size


@dataclass(frozen=True, slots=True)
class PageResult(Generic[T]):
    """One page of results together with the unpaged total."""

    items: tuple[T, ...]
    total: int
    page_no: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @property
    def has_next(self) -> bool:
        return self.page_no < self.total_pages


# ---------------------------------------------------------------------------
# Registry-derived metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RepositoryMetadata:
    """What a repository needs to know about the entity it serves."""

    entity_id: str
    table: str
    primary_key: str
    primary_key_column: str
    columns: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def for_entity(cls, entity_id: str, store: MetadataStore | None = None) -> "RepositoryMetadata":
        """Derive metadata for ``entity_id`` from the finalized store.

        Raises
        ------
        UnknownEntityError
            If ``entity_id`` is not registered.
        SchemaError
            If it is not an entity, or has no usable primary key.
        """
        target = store if store is not None else default_store()
        target.finalize()
        descriptor = target.get(entity_id)
        if descriptor.kind is not EntityKind.ENTITY:
            raise SchemaError(
                f"{entity_id!r} is a {descriptor.kind.value}; only entities are stored in tables",
                entity_id=entity_id,
                origin=descriptor.origin,
            )
        key = primary_key_field(descriptor)
        columns: dict[str, str] = {}
        for f in descriptor.fields:
            if f.relation is None:
                columns[f.name] = f.column or f.name
            elif f.relation.cardinality is Cardinality.ONE:
                columns[f.name] = foreign_key_column(f)
        return cls(
            entity_id=entity_id,
            table=table_name(descriptor),
            primary_key=key.name,
            primary_key_column=key.column or key.name,
            columns=columns,
        )

    def to_row(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """Rename field keys of ``record`` to column names, dropping unmapped keys."""
        return {column: record[name] for name, column in self.columns.items() if name in record}

    def from_row(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Inverse of ``to_row``."""
        return {name: row[column] for name, column in self.columns.items() if column in row}


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class Repository(ABC, Generic[T]):
    """Storage interface for one entity."""

    @abstractmethod
    def find_by_id(self, key: Any) -> T | None:
        ...

    @abstractmethod
    def find(self, query: Mapping[str, Any] | None = None, sort: SortSpec | None = None) -> list[T]:
        """Return every record whose fields equal all values in ``query``."""

    @abstractmethod
    def find_page(self, query: Mapping[str, Any] | None, options: PageOptions) -> PageResult[T]:
        ...

    @abstractmethod
    def save(self, record: T) -> T:
        """Insert or update ``record`` and return the stored version."""

    @abstractmethod
    def delete(self, key: Any) -> bool:
        """Delete by primary key. Returns False if nothing was stored under it."""

    @abstractmethod
    def count(self, query: Mapping[str, Any] | None = None) -> int:
        ...


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


def _sorted(records: list[dict[str, Any]], sort: SortSpec) -> list[dict[str, Any]]:
    # Stable sorts applied from the least significant key up.
    for name, direction in reversed(list(sort.items())):
        records.sort(
            key=lambda r: (r.get(name) is None, r.get(name)),
            reverse=direction == "desc",
        )
    return records


class InMemoryRepository(Repository[dict[str, Any]]):
    """Dict-backed repository for one registered entity.

    Records are plain dicts keyed by field name. Saved and returned
    records are deep copies, so callers never share state with the
    repository. Records saved without a primary key get the next integer
    from a per-repository sequence.

    Parameters
    ----------
    entity_id:
        Identifier of a registered entity.
    store:
        Store to read the entity's metadata from.
    hooks:
        Optional hook registry run around every operation.
    events:
        Optional bus receiving ``<Entity>.created|updated|deleted`` events.
    """

    def __init__(
        self,
        entity_id: str,
        store: MetadataStore | None = None,
        *,
        hooks: HookRegistry | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.metadata = RepositoryMetadata.for_entity(entity_id, store)
        self._hooks = hooks
        self._events = events
        self._rows: dict[Any, dict[str, Any]] = {}
        self._sequence = itertools.count(1)

    @property
    def entity_id(self) -> str:
        return self.metadata.entity_id

    def find_by_id(self, key: Any) -> dict[str, Any] | None:
        row = self._rows.get(key)
        return copy.deepcopy(row) if row is not None else None

    def find(self, query: Mapping[str, Any] | None = None, sort: SortSpec | None = None) -> list[dict[str, Any]]:
        if self._hooks is None:
            return [copy.deepcopy(r) for r in self._sorted_matches(query, sort)]

        context = ReadContext(self.entity_id, query=dict(query or {}))
        self._hooks.run_before(HookAction.READ, context)
        context.results = [copy.deepcopy(r) for r in self._sorted_matches(context.query, sort)]
        self._hooks.run_after(HookAction.READ, context)
        return list(context.results)

    def find_page(self, query: Mapping[str, Any] | None, options: PageOptions) -> PageResult[dict[str, Any]]:
        matches = self.find(query, options.sort)
        page = matches[options.offset:options.offset + options.page_size]
        return PageResult(
            items=tuple(page),
            total=len(matches),
            page_no=options.page_no,
            page_size=options.page_size,
        )

    def save(self, record: dict[str, Any]) -> dict[str, Any]:
        data = copy.deepcopy(dict(record))
        key_name = self.metadata.primary_key
        key = data.get(key_name)
        previous = self._rows.get(key) if key is not None else None

        if previous is None:
            context: CreateContext | UpdateContext = CreateContext(self.entity_id, data=data)
        else:
            context = UpdateContext(self.entity_id, key=key, data=data, previous=copy.deepcopy(previous))
        if self._hooks is not None:
            self._hooks.run_before(context.action, context)

        if data.get(key_name) is None:
            data[key_name] = self._next_key()
        self._rows[data[key_name]] = data
        logger.debug("Saved %s %r", self.entity_id, data[key_name])

        if self._hooks is not None:
            self._hooks.run_after(context.action, context)
        self._publish("created" if previous is None else "updated", data)
        return copy.deepcopy(data)

    def delete(self, key: Any) -> bool:
        row = self._rows.get(key)
        if row is None:
            return False
        context = DeleteContext(self.entity_id, key=key, record=copy.deepcopy(row))
        if self._hooks is not None:
            self._hooks.run_before(HookAction.DELETE, context)
        del self._rows[key]
        if self._hooks is not None:
            self._hooks.run_after(HookAction.DELETE, context)
        self._publish("deleted", row)
        return True

    def count(self, query: Mapping[str, Any] | None = None) -> int:
        return len(self._matching(query))

    def __len__(self) -> int:
        return len(self._rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _matching(self, query: Mapping[str, Any] | None) -> list[dict[str, Any]]:
        if not query:
            return list(self._rows.values())
        return [r for r in self._rows.values() if all(r.get(k) == v for k, v in query.items())]

    def _sorted_matches(self, query: Mapping[str, Any] | None, sort: SortSpec | None) -> list[dict[str, Any]]:
        matches = self._matching(query)
        return _sorted(matches, sort) if sort else matches

    def _next_key(self) -> int:
        key = next(self._sequence)
        while key in self._rows:
            key = next(self._sequence)
        return key

    def _publish(self, verb: str, record: dict[str, Any]) -> None:
        if self._events is not None:
            self._events.publish(copy.deepcopy(record), topic=f"{self.entity_id}.{verb}")
