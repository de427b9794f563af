"""Descriptor types recorded by the metadata registry.

Every descriptor is a frozen dataclass so that consumers (schema
generator, renderers, repositories) only ever receive read-only values.
The registry replaces a descriptor wholesale when it needs to change
one; nothing mutates a descriptor in place.

Field order inside an ``EntityDescriptor`` is significant: it is the
declaration order of the annotated class followed by extension fields
in the order their extensions were registered.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class EntityKind(Enum):
    """What a registered descriptor describes."""

    ENTITY = "entity"
    DTO = "dto"
    ENUM = "enum"
    PAGE = "page"
    COMPONENT = "component"


class ValueKind(Enum):
    """Shape of the value held by a field."""

    PRIMITIVE = "primitive"
    REFERENCE = "reference"
    ENUM = "enum"
    COLLECTION = "collection"


class Primitive(Enum):
    """Primitive value types understood by the schema generator."""

    STRING = "string"
    INTEGER = "integer"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DECIMAL = "decimal"
    DATE = "date"
    JSON = "json"

    @classmethod
    def parse(cls, value: "str | Primitive") -> "Primitive":
        """Return the member for ``value``, accepting common aliases.

        Raises
        ------
        ValueError
            If ``value`` names no known primitive.
        """
        if isinstance(value, Primitive):
            return value
        key = value.strip().lower()
        key = _PRIMITIVE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            known = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown primitive type {value!r}; expected one of: {known}") from None


_PRIMITIVE_ALIASES: dict[str, str] = {
    "str": "string",
    "text": "string",
    "int": "integer",
    "float": "number",
    "bool": "boolean",
    "datetime": "date",
    "timestamp": "date",
    "dict": "json",
}


class Cardinality(Enum):
    """Whether a relation points at one related entity or many."""

    ONE = "one"
    MANY = "many"


# ---------------------------------------------------------------------------
# Field-level value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RelationInfo:
    """Relation metadata attached to a reference field.

    Parameters
    ----------
    target:
        Identifier of the related entity.
    cardinality:
        ``ONE`` for a single related entity, ``MANY`` for a collection.
    join_column:
        Explicit foreign-key column name for ``ONE`` relations.
    cascade:
        Whether the consuming persistence layer should cascade writes.
    """

    target: str
    cardinality: Cardinality = Cardinality.ONE
    join_column: str | None = None
    cascade: bool = False


@dataclass(frozen=True, slots=True)
class Validation:
    """Validation hints for UI renderers. Recorded, never enforced here."""

    required: bool | None = None
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__slots__)


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """A single declared field of an entity, DTO, page or component.

    ``primitive`` is set for primitive fields and for collections of
    primitives. ``relation`` is set for references and collections of
    entities. ``enum_values`` is set for enum fields.
    """

    name: str
    kind: ValueKind
    primitive: Primitive | None = None
    nullable: bool = False
    primary_key: bool = False
    is_extension: bool = False
    origin: str | None = None
    relation: RelationInfo | None = None
    enum_values: tuple[str, ...] = ()
    label: str | None = None
    column: str | None = None
    precision: int | None = None
    scale: int | None = None
    default: object = field(default=None, compare=False, hash=False)
    unique: bool = False
    comment: str | None = None
    validation: Validation | None = None

    @property
    def is_reference(self) -> bool:
        """Return True for a single-valued reference to another entity."""
        return self.kind is ValueKind.REFERENCE

    @property
    def is_relation(self) -> bool:
        """Return True if this field points at another entity."""
        return self.relation is not None

    @property
    def cardinality(self) -> Cardinality | None:
        return self.relation.cardinality if self.relation is not None else None

    @property
    def type_name(self) -> str:
        """Short display type, e.g. ``"string"``, ``"Order"``, ``"list[Order]"``."""
        if self.kind is ValueKind.REFERENCE and self.relation is not None:
            return self.relation.target
        if self.kind is ValueKind.ENUM:
            return "enum"
        if self.kind is ValueKind.COLLECTION:
            inner = (
                self.relation.target
                if self.relation is not None
                else (self.primitive.value if self.primitive else "object")
            )
            return f"list[{inner}]"
        return self.primitive.value if self.primitive else "object"

    @property
    def required(self) -> bool:
        if self.validation is not None and self.validation.required is not None:
            return self.validation.required
        return not self.nullable

    def with_provenance(self, origin: str) -> "FieldDescriptor":
        """Return a copy flagged as contributed by the extension ``origin``."""
        return replace(self, is_extension=True, origin=origin)


# ---------------------------------------------------------------------------
# Entity-level descriptors
# ---------------------------------------------------------------------------


def freeze_options(options: Mapping[str, object] | None) -> Mapping[str, object]:
    """Return a read-only copy of ``options``, freezing nested mappings."""

    def freeze(value: object) -> object:
        if isinstance(value, Mapping):
            return MappingProxyType({k: freeze(v) for k, v in value.items()})
        return value

    return MappingProxyType({k: freeze(v) for k, v in (options or {}).items()})


@dataclass(frozen=True, slots=True)
class EntityDescriptor:
    """Everything the registry knows about one declared type.

    Parameters
    ----------
    identifier:
        Stable registry key, unique per process.
    kind:
        What the declaration describes.
    fields:
        Declared fields in declaration order.
    table:
        Explicit table name for ``ENTITY`` descriptors.
    primary_key:
        Name of the primary-key field, when one is explicitly marked.
    origin:
        Module the declaration lives in.
    actions:
        Names of methods marked with ``@action``.
    enum_values:
        Member values for ``ENUM`` descriptors.
    options:
        Free-form declaration options (route, title, props...). Stored as
        a read-only mapping; nested mappings are frozen too.
    """

    identifier: str
    kind: EntityKind
    fields: tuple[FieldDescriptor, ...] = ()
    table: str | None = None
    primary_key: str | None = None
    label: str | None = None
    comment: str | None = None
    origin: str | None = None
    actions: tuple[str, ...] = ()
    enum_values: tuple[str, ...] = ()
    options: Mapping[str, object] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        if not isinstance(self.options, MappingProxyType):
            object.__setattr__(self, "options", freeze_options(self.options))

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def extension_fields(self) -> tuple[FieldDescriptor, ...]:
        return tuple(f for f in self.fields if f.is_extension)

    def field(self, name: str) -> FieldDescriptor | None:
        """Return the field called ``name``, or ``None``."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def with_fields(self, fields: tuple[FieldDescriptor, ...]) -> "EntityDescriptor":
        """Return a copy carrying ``fields`` instead of the current list."""
        primary = next((f.name for f in fields if f.primary_key), None)
        return replace(self, fields=fields, primary_key=primary or self.primary_key)

    def __repr__(self) -> str:
        return (
            f"EntityDescriptor({self.identifier!r}, kind={self.kind.value}, "
            f"fields={list(self.field_names)})"
        )


@dataclass(frozen=True, slots=True)
class ExtensionRecord:
    """Fields contributed to ``target`` from another module.

    Records are resolved lazily at finalization because the target's own
    module may not have been imported yet when the extension runs.
    """

    target: str
    fields: tuple[FieldDescriptor, ...]
    origin: str
