"""Field inference from Python type annotations.

The annotation API hands every annotated member of a decorated class to
``build_field``, which works out the ``ValueKind`` and related metadata:

- ``str``, ``int``, ``float``, ``bool``, ``Decimal``, ``datetime``/``date``,
  ``dict`` and ``UUID`` map to primitives
- ``Optional[X]`` / ``X | None`` marks the field nullable
- ``list[X]``, ``set[X]``, ``tuple[X, ...]`` and ``Sequence[X]`` become
  collections; a collection of entities is a many-relation
- ``enum.Enum`` subclasses become enum fields carrying their values
- any other class, including names that cannot be resolved yet, is a
  reference to the entity of that name

String annotations (``from __future__ import annotations``) are evaluated
in a namespace where unknown names resolve to ``ForwardName`` placeholder
classes, which is what makes cyclic entity references declarable.
"""
from __future__ import annotations

import builtins
import collections.abc
import inspect
import sys
import types
import typing
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Callable, ClassVar, Union, get_args, get_origin
from uuid import UUID

from dslmeta.core.descriptors import (
    Cardinality,
    FieldDescriptor,
    Primitive,
    RelationInfo,
    ValueKind,
)

Identify = Callable[[type], "str | None"]

PRIMITIVE_TYPES: dict[object, Primitive] = {
    str: Primitive.STRING,
    int: Primitive.INTEGER,
    float: Primitive.NUMBER,
    bool: Primitive.BOOLEAN,
    Decimal: Primitive.DECIMAL,
    datetime: Primitive.DATE,
    date: Primitive.DATE,
    dict: Primitive.JSON,
    UUID: Primitive.STRING,
    Any: Primitive.JSON,
}

_COLLECTION_ORIGINS: frozenset[object] = frozenset(
    {
        list,
        set,
        frozenset,
        tuple,
        collections.abc.Sequence,
        collections.abc.MutableSequence,
        collections.abc.Set,
        collections.abc.MutableSet,
        collections.abc.Collection,
        collections.abc.Iterable,
    }
)


# ---------------------------------------------------------------------------
# Forward references
# ---------------------------------------------------------------------------


class ForwardName:
    """Base class of placeholders standing in for not-yet-resolvable names.

    A placeholder is a real class (``type(name, (ForwardName,), {})``) so
    it can appear inside ``Optional[...]``, ``list[...]`` and ``X | None``
    exactly like the class it stands for.
    """


_forward_cache: dict[str, type[ForwardName]] = {}


def _forward(name: str) -> type[ForwardName]:
    placeholder = _forward_cache.get(name)
    if placeholder is None:
        placeholder = type(name, (ForwardName,), {"__module__": __name__})
        _forward_cache[name] = placeholder
    return placeholder


class _ForwardNamespace(dict):
    """Namespace that contains every name: unknown ones map to placeholders."""

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) or dict.__contains__(self, key)

    def __missing__(self, key: str) -> object:
        if hasattr(builtins, key):
            return getattr(builtins, key)
        return _forward(key)


def forward_namespace(
    globalns: typing.Mapping[str, object] | None = None,
    localns: typing.Mapping[str, object] | None = None,
) -> dict[str, object]:
    """Return a namespace in which unknown names evaluate to placeholders."""
    ns = _ForwardNamespace(globalns or {})
    if localns:
        ns.update(localns)
    return ns


def class_namespace(cls: type) -> dict[str, object]:
    """Return the forward-tolerant namespace ``cls``'s annotations were written in."""
    module = sys.modules.get(cls.__module__)
    globalns = vars(module) if module is not None else {}
    return forward_namespace(globalns, {cls.__name__: cls})


def resolve_annotation(annotation: object, namespace: typing.Mapping[str, object] | None = None) -> object:
    """Evaluate a string or ``ForwardRef`` annotation.

    Non-string annotations are returned unchanged.
    """
    if isinstance(annotation, typing.ForwardRef):
        annotation = annotation.__forward_arg__
    if isinstance(annotation, str):
        ns = namespace if isinstance(namespace, _ForwardNamespace) else forward_namespace(namespace)
        holder = types.SimpleNamespace(__annotations__={"value": annotation})
        hints = typing.get_type_hints(holder, globalns={"__builtins__": builtins}, localns=ns, include_extras=True)
        return hints["value"]
    return annotation


def field_annotations(cls: type) -> list[tuple[str, object]]:
    """Return ``(name, annotation)`` pairs declared directly on ``cls``.

    Declaration order is preserved; ``ClassVar`` members and names with a
    leading underscore are skipped.
    """
    try:
        annotations = inspect.get_annotations(cls)
    except NameError:
        import annotationlib

        annotations = annotationlib.get_annotations(cls, format=annotationlib.Format.FORWARDREF)

    pairs: list[tuple[str, object]] = []
    for name, annotation in annotations.items():
        if name.startswith("_"):
            continue
        if isinstance(annotation, str) and annotation.replace("typing.", "").startswith("ClassVar"):
            continue
        if annotation is ClassVar or get_origin(annotation) is ClassVar:
            continue
        pairs.append((name, annotation))
    return pairs


# ---------------------------------------------------------------------------
# Inference
# ---------------------------------------------------------------------------


def _split_annotated(tp: object) -> tuple[object, tuple[object, ...]]:
    markers: tuple[object, ...] = ()
    while get_origin(tp) is Annotated:
        base, *extra = get_args(tp)
        markers = (*markers, *extra)
        tp = base
    return tp, markers


def _split_optional(tp: object) -> tuple[object, bool]:
    if get_origin(tp) in (Union, types.UnionType):
        args = [a for a in get_args(tp) if a is not type(None)]
        if len(args) < len(get_args(tp)):
            if len(args) == 1:
                return args[0], True
            return Union[tuple(args)], True  # type: ignore[return-value]
    return tp, False


def _unwrap(tp: object, namespace: typing.Mapping[str, object] | None) -> tuple[object, bool, tuple[object, ...]]:
    """Peel ``Annotated`` and ``Optional`` layers in any nesting order."""
    markers: tuple[object, ...] = ()
    nullable = False
    while True:
        tp = resolve_annotation(tp, namespace)
        tp, found = _split_annotated(tp)
        markers = (*markers, *found)
        tp, optional = _split_optional(tp)
        nullable = nullable or optional
        if not found and not optional:
            return tp, nullable, markers


def _enum_values(tp: type[Enum]) -> tuple[str, ...]:
    return tuple(str(member.value) for member in tp)


def _reference_target(tp: type, identify: Identify | None) -> str:
    if issubclass(tp, ForwardName):
        return tp.__name__
    if identify is not None:
        found = identify(tp)
        if found:
            return found
    return tp.__name__


def _is_entity_like(tp: object) -> bool:
    return (
        isinstance(tp, type)
        and tp not in PRIMITIVE_TYPES
        and not issubclass(tp, Enum)
    )


def _classify(
    name: str,
    tp: object,
    namespace: typing.Mapping[str, object] | None,
    identify: Identify | None,
) -> tuple[ValueKind, Primitive | None, str | None, tuple[str, ...]]:
    """Return ``(kind, primitive, reference target, enum values)`` for ``tp``."""
    origin = get_origin(tp)
    if tp in _COLLECTION_ORIGINS or origin in _COLLECTION_ORIGINS:
        args = [a for a in get_args(tp) if a is not Ellipsis]
        if not args:
            return ValueKind.COLLECTION, Primitive.JSON, None, ()
        element, _, _ = _unwrap(args[0], namespace)
        if element in PRIMITIVE_TYPES:
            return ValueKind.COLLECTION, PRIMITIVE_TYPES[element], None, ()
        if isinstance(element, type) and issubclass(element, Enum):
            return ValueKind.COLLECTION, Primitive.JSON, None, _enum_values(element)
        if _is_entity_like(element):
            return ValueKind.COLLECTION, None, _reference_target(element, identify), ()  # type: ignore[arg-type]
        raise TypeError(f"Cannot infer the element type of field {name!r} from {tp!r}")

    if tp in PRIMITIVE_TYPES:
        return ValueKind.PRIMITIVE, PRIMITIVE_TYPES[tp], None, ()
    if origin is dict or origin is collections.abc.Mapping:
        return ValueKind.PRIMITIVE, Primitive.JSON, None, ()
    if isinstance(tp, type) and issubclass(tp, Enum):
        return ValueKind.ENUM, None, None, _enum_values(tp)
    if origin is None and _is_entity_like(tp):
        return ValueKind.REFERENCE, None, _reference_target(tp, identify), ()  # type: ignore[arg-type]
    raise TypeError(f"Cannot infer a field type for {name!r} from annotation {tp!r}")


def build_field(
    name: str,
    annotation: object,
    *,
    namespace: typing.Mapping[str, object] | None = None,
    identify: Identify | None = None,
    markers: tuple[object, ...] = (),
) -> FieldDescriptor:
    """Build a ``FieldDescriptor`` for a member annotated with ``annotation``.

    Parameters
    ----------
    name:
        Member name.
    annotation:
        The raw annotation: a type, a string, or ``Annotated[...]``
        carrying ``Field`` / ``Relation`` markers.
    namespace:
        Names available to string annotations.
    identify:
        Maps a class to its registry identifier, if registered.
    markers:
        Extra markers applied after those found in the annotation.

    Raises
    ------
    TypeError
        If the annotation cannot be mapped to any value kind, or a
        ``Relation`` marker sits on a non-entity annotation without ``to``.
    """
    from dslmeta.annotations.markers import Field, Relation

    tp, nullable, found = _unwrap(annotation, namespace)
    all_markers = (*found, *markers)
    field_marker = next((m for m in reversed(all_markers) if isinstance(m, Field)), None)
    relation_marker = next((m for m in reversed(all_markers) if isinstance(m, Relation)), None)

    kind: ValueKind
    primitive: Primitive | None
    target: str | None
    enum_values: tuple[str, ...]

    if field_marker is not None and field_marker.type is not None and relation_marker is None:
        kind, primitive, target, enum_values = ValueKind.PRIMITIVE, Primitive.parse(field_marker.type), None, ()
    else:
        kind, primitive, target, enum_values = _classify(name, tp, namespace, identify)

    relation: RelationInfo | None = None
    if relation_marker is not None:
        explicit = relation_marker.target_name(identify)
        target = explicit or target
        if target is None:
            raise TypeError(
                f"Field {name!r} carries a Relation marker but its annotation "
                f"{tp!r} names no entity; pass Relation(to=...)"
            )
        many = relation_marker.many if relation_marker.many is not None else kind is ValueKind.COLLECTION
        kind = ValueKind.COLLECTION if many else ValueKind.REFERENCE
        primitive = None
        relation = RelationInfo(
            target=target,
            cardinality=Cardinality.MANY if many else Cardinality.ONE,
            join_column=relation_marker.join_column,
            cascade=relation_marker.cascade,
        )
    elif target is not None:
        relation = RelationInfo(
            target=target,
            cardinality=Cardinality.MANY if kind is ValueKind.COLLECTION else Cardinality.ONE,
        )

    if field_marker is None:
        return FieldDescriptor(
            name=name,
            kind=kind,
            primitive=primitive,
            nullable=nullable,
            relation=relation,
            enum_values=enum_values,
        )

    validation = field_marker.validation()
    return FieldDescriptor(
        name=name,
        kind=kind,
        primitive=primitive,
        nullable=field_marker.nullable if field_marker.nullable is not None else nullable,
        primary_key=field_marker.primary_key,
        relation=relation,
        enum_values=enum_values,
        label=field_marker.label,
        column=field_marker.column,
        precision=field_marker.precision,
        scale=field_marker.scale,
        default=field_marker.default,
        unique=field_marker.unique,
        comment=field_marker.comment,
        validation=None if validation.is_empty() else validation,
    )
