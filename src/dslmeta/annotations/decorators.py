"""Class and method decorators that declare metadata.

Applying a class decorator registers an ``EntityDescriptor`` in the
metadata store as a side effect of evaluating the class statement. The
decorated class is returned unchanged: nothing is added to it, so the
same definition module behaves identically whether or not anything ever
reads the registry.

Every class decorator can be used bare or called with options::

    @entity
    class Supplier:
        id: str
        name: str

    @entity(table="purchase_orders", label="Purchase order")
    class PurchaseOrder:
        id: Annotated[str, Field(primary_key=True)]
        supplier: Supplier
        lines: list[PurchaseOrderLine]

        @action(transactional=True)
        def submit(self) -> None: ...
"""
from __future__ import annotations

import logging
import weakref
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from dslmeta.core.descriptors import EntityDescriptor, EntityKind, freeze_options
from dslmeta.introspect.inference import build_field, class_namespace, field_annotations

if TYPE_CHECKING:
    from dslmeta.registry.store import MetadataStore

logger = logging.getLogger(__name__)

C = TypeVar("C", bound=type)
F = TypeVar("F", bound=Callable[..., object])


@dataclass(frozen=True)
class ActionOptions:
    """Options recorded for a method marked with ``@action``."""

    name: str | None = None
    transactional: bool = False


# Keyed by function object so that marking a method leaves it untouched.
_actions: "weakref.WeakKeyDictionary[Callable[..., object], ActionOptions]" = weakref.WeakKeyDictionary()


def action(
    func: F | None = None,
    *,
    name: str | None = None,
    transactional: bool = False,
) -> F | Callable[[F], F]:
    """Mark a method as a business action of its declaring class.

    The function is returned as-is; the owning class decorator picks the
    mark up when it collects the class members.
    """

    def decorator(fn: F) -> F:
        _actions[fn] = ActionOptions(name=name, transactional=transactional)
        return fn

    if func is not None:
        return decorator(func)
    return decorator


def action_options(fn: Callable[..., object]) -> ActionOptions | None:
    """Return the options recorded for ``fn`` by ``@action``, if any."""
    try:
        return _actions.get(fn)
    except TypeError:
        return None


def _collect_actions(cls: type) -> tuple[str, ...]:
    names: list[str] = []
    for member_name, member in vars(cls).items():
        fn = getattr(member, "__func__", member)
        options = action_options(fn)
        if options is not None:
            names.append(options.name or member_name)
    return tuple(names)


def _resolve_store(store: "MetadataStore | None") -> "MetadataStore":
    if store is not None:
        return store
    from dslmeta.registry.store import default_store

    return default_store()


def _declare(
    cls: C,
    kind: EntityKind,
    *,
    name: str | None,
    store: "MetadataStore | None",
    table: str | None = None,
    label: str | None = None,
    comment: str | None = None,
    options: dict[str, object] | None = None,
) -> C:
    if not isinstance(cls, type):
        raise TypeError(f"@{kind.value} can only decorate classes, got {cls!r}")

    target_store = _resolve_store(store)
    identifier = name or cls.__name__

    def identify(tp: type) -> str | None:
        if tp is cls:
            return identifier
        return target_store.identifier_for(tp)

    enum_values: tuple[str, ...] = ()
    fields = ()
    if kind is EntityKind.ENUM:
        if not issubclass(cls, Enum):
            raise TypeError(f"@enum_type requires an enum.Enum subclass, got {cls.__qualname__}")
        enum_values = tuple(str(member.value) for member in cls)
    else:
        namespace = class_namespace(cls)
        built = []
        for field_name, annotation in field_annotations(cls):
            try:
                built.append(build_field(field_name, annotation, namespace=namespace, identify=identify))
            except TypeError as exc:
                raise TypeError(f"{cls.__module__}.{cls.__qualname__}: {exc}") from exc
        fields = tuple(built)

    descriptor = EntityDescriptor(
        identifier=identifier,
        kind=kind,
        fields=fields,
        table=table,
        primary_key=next((f.name for f in fields if f.primary_key), None),
        label=label,
        comment=comment,
        origin=cls.__module__,
        actions=_collect_actions(cls),
        enum_values=enum_values,
        options=freeze_options(options),
    )
    logger.debug(
        "Declared %s %r (%d field(s)) from %s", kind.value, identifier, len(fields), cls.__module__
    )
    target_store.register(descriptor, declared_type=cls)
    return cls


def _class_decorator(kind: EntityKind, cls: C | None, **kwargs: object) -> C | Callable[[C], C]:
    def decorator(target: C) -> C:
        return _declare(target, kind, **kwargs)  # type: ignore[arg-type]

    if cls is not None:
        return decorator(cls)
    return decorator


def entity(
    cls: C | None = None,
    *,
    name: str | None = None,
    table: str | None = None,
    label: str | None = None,
    comment: str | None = None,
    store: "MetadataStore | None" = None,
) -> C | Callable[[C], C]:
    """Declare a persistent business entity mapped to a table.

    Parameters
    ----------
    name:
        Registry identifier. Defaults to the class name.
    table:
        Table name. Defaults to the snake_case identifier.
    label:
        Display label for renderers.
    comment:
        Table comment for the schema description.
    store:
        Store to register into. Defaults to the process-wide store.
    """
    return _class_decorator(
        EntityKind.ENTITY, cls, name=name, store=store, table=table, label=label, comment=comment
    )


def dto(
    cls: C | None = None,
    *,
    name: str | None = None,
    label: str | None = None,
    store: "MetadataStore | None" = None,
) -> C | Callable[[C], C]:
    """Declare a data-transfer object: validated shape, no table."""
    return _class_decorator(EntityKind.DTO, cls, name=name, store=store, label=label)


def enum_type(
    cls: C | None = None,
    *,
    name: str | None = None,
    label: str | None = None,
    store: "MetadataStore | None" = None,
) -> C | Callable[[C], C]:
    """Register an ``enum.Enum`` subclass so renderers can list its values."""
    return _class_decorator(EntityKind.ENUM, cls, name=name, store=store, label=label)


def page(
    cls: C | None = None,
    *,
    route: str | None = None,
    title: str | None = None,
    permission: str | None = None,
    menu: dict[str, object] | None = None,
    name: str | None = None,
    store: "MetadataStore | None" = None,
) -> C | Callable[[C], C]:
    """Declare a routed page. Annotated members describe its state."""
    options: dict[str, object] = {"route": route, "title": title, "permission": permission}
    if menu:
        options["menu"] = dict(menu)
    return _class_decorator(
        EntityKind.PAGE,
        cls,
        name=name,
        store=store,
        label=title,
        options={k: v for k, v in options.items() if v is not None},
    )


def component(
    cls: C | None = None,
    *,
    name: str | None = None,
    label: str | None = None,
    store: "MetadataStore | None" = None,
) -> C | Callable[[C], C]:
    """Declare a reusable UI component. Annotated members are its props."""
    return _class_decorator(EntityKind.COMPONENT, cls, name=name, store=store, label=label)
