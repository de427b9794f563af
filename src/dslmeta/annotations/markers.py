"""Member markers placed inside ``typing.Annotated``.

Markers are inert value objects: attaching one to an annotation changes
nothing about the annotated class at run time. They are only read when
the owning class decorator collects its fields.

Example
-------
::

    from typing import Annotated
    from decimal import Decimal

    @entity(table="orders")
    class Order:
        id: Annotated[str, Field(primary_key=True)]
        total: Annotated[Decimal, Field(label="Total", precision=12, scale=2)]
        lines: Annotated[list[OrderLine], Relation(cascade=True)]
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from dslmeta.core.descriptors import Primitive, Validation

if TYPE_CHECKING:
    from dslmeta.introspect.inference import Identify


@dataclass(frozen=True)
class Field:
    """Explicit options for a declared field.

    Any option left as ``None`` falls back to what the annotation implies.
    ``type`` overrides primitive inference (``"decimal"``, ``"date"``...).
    """

    label: str | None = None
    type: str | Primitive | None = None
    column: str | None = None
    primary_key: bool = False
    nullable: bool | None = None
    precision: int | None = None
    scale: int | None = None
    default: object = field(default=None, compare=False)
    unique: bool = False
    comment: str | None = None
    required: bool | None = None
    min: float | None = None
    max: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None

    def __post_init__(self) -> None:
        if self.type is not None:
            Primitive.parse(self.type)
        if self.scale is not None and self.precision is None:
            raise ValueError("Field(scale=...) requires precision to be set as well")

    def validation(self) -> Validation:
        return Validation(
            required=self.required,
            min=self.min,
            max=self.max,
            min_length=self.min_length,
            max_length=self.max_length,
            pattern=self.pattern,
        )


@dataclass(frozen=True)
class Relation:
    """Marks a field as a relation to another entity.

    Parameters
    ----------
    to:
        Target entity class or identifier. Defaults to the annotated type.
    many:
        Force the cardinality. Defaults to ``True`` for collection
        annotations and ``False`` otherwise.
    join_column:
        Foreign-key column name for single-valued relations.
    cascade:
        Hint for the persistence layer.
    """

    to: type | str | None = None
    many: bool | None = None
    join_column: str | None = None
    cascade: bool = False

    def target_name(self, identify: "Identify | None" = None) -> str | None:
        """Return the target identifier, or ``None`` when ``to`` is unset."""
        if self.to is None:
            return None
        if isinstance(self.to, str):
            return self.to
        if identify is not None:
            found = identify(self.to)
            if found:
                return found
        return self.to.__name__
