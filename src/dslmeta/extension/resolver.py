"""Non-destructive entity extension.

``extend_entity`` lets a module bolt fields onto an entity declared in a
different module (typically another package) without touching its
source. The contribution is only *recorded* when the extension module is
imported: the target's own module may not have been imported yet, so
merging is deferred to ``MetadataStore.finalize()``, which calls
``merge_extensions``.

Example
-------
::

    from dslmeta.extension import extend_entity
    from base_models import PurchaseOrder

    extend_entity(PurchaseOrder, {
        "priority": int,
        "cost_center": Annotated[str | None, Field(label="Cost center")],
    })
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING

from dslmeta.core.descriptors import EntityDescriptor, ExtensionRecord, FieldDescriptor
from dslmeta.core.errors import FieldConflictError, UnknownEntityError
from dslmeta.introspect.inference import build_field, forward_namespace

if TYPE_CHECKING:
    from dslmeta.registry.store import MetadataStore

logger = logging.getLogger(__name__)


def merge_extensions(
    entities: Mapping[str, EntityDescriptor],
    records: Sequence[ExtensionRecord],
) -> dict[str, EntityDescriptor]:
    """Fold ``records`` into ``entities`` and return the merged mapping.

    Records are applied in order. Neither argument is modified; the
    returned dict preserves the key order of ``entities``.

    Raises
    ------
    UnknownEntityError
        If a record targets an identifier missing from ``entities``.
    FieldConflictError
        If a record contributes a field whose name is already taken by an
        original field or by an earlier extension.
    """
    merged = dict(entities)
    for record in records:
        base = merged.get(record.target)
        if base is None:
            raise UnknownEntityError(
                record.target,
                origin=record.origin,
                context="it is the target of an extension",
            )
        taken = {f.name: f for f in base.fields}
        added: list[FieldDescriptor] = []
        for field in record.fields:
            clash = taken.get(field.name)
            if clash is not None:
                raise FieldConflictError(
                    record.target,
                    field.name,
                    origin=record.origin,
                    existing_origin=clash.origin if clash.is_extension else base.origin,
                )
            tagged = field.with_provenance(record.origin)
            taken[field.name] = tagged
            added.append(tagged)
        merged[record.target] = base.with_fields(base.fields + tuple(added))
        logger.debug(
            "Merged %d extension field(s) from %s into %r",
            len(added),
            record.origin,
            record.target,
        )
    return merged


def _resolve_store(store: "MetadataStore | None") -> "MetadataStore":
    if store is not None:
        return store
    from dslmeta.registry.store import default_store

    return default_store()


def _target_id(target: type | str, store: "MetadataStore") -> str:
    if isinstance(target, str):
        return target
    return store.identifier_for(target) or target.__name__


def _caller_module(depth: int = 2) -> str:
    frame = inspect.currentframe()
    try:
        for _ in range(depth):
            if frame is None:
                break
            frame = frame.f_back
        if frame is None:
            return "<unknown>"
        return str(frame.f_globals.get("__name__", "<unknown>"))
    finally:
        del frame


def extend_entity(
    target: type | str,
    fields: Mapping[str, object] | Sequence[FieldDescriptor],
    *,
    origin: str | None = None,
    store: "MetadataStore | None" = None,
) -> ExtensionRecord:
    """Record fields to be appended to ``target`` at finalization.

    Parameters
    ----------
    target:
        The entity class, or its registry identifier.
    fields:
        Either a mapping of field name to annotation (plain types or
        ``Annotated[..., Field(...)]``), or ready-made descriptors.
    origin:
        Module contributing the extension. Defaults to the caller's module.
    store:
        Store to record into. Defaults to the process-wide store.

    Returns
    -------
    ExtensionRecord
        The recorded contribution.

    Raises
    ------
    StateError
        If the store is finalized and configured to reject mutations.
    """
    target_store = _resolve_store(store)
    source = origin or _caller_module()
    target_id = _target_id(target, target_store)

    if isinstance(fields, Mapping):
        frame_globals = _caller_globals()
        namespace = forward_namespace(frame_globals)
        built = tuple(
            build_field(name, annotation, namespace=namespace, identify=target_store.identifier_for)
            for name, annotation in fields.items()
        )
    else:
        built = tuple(fields)

    record = ExtensionRecord(target=target_id, fields=built, origin=source)
    target_store.extend(record)
    return record


def _caller_globals() -> dict[str, object]:
    frame = inspect.currentframe()
    try:
        caller = frame.f_back.f_back if frame is not None and frame.f_back is not None else None
        return dict(caller.f_globals) if caller is not None else {}
    finally:
        del frame


def get_extension_fields(
    target: type | str,
    store: "MetadataStore | None" = None,
) -> tuple[FieldDescriptor, ...]:
    """Return the fields merged into ``target`` by extensions.

    Finalizes the store first if that has not happened yet, so the answer
    always reflects every recorded extension.

    Raises
    ------
    UnknownEntityError
        If ``target`` is not registered.
    """
    target_store = _resolve_store(store)
    target_store.finalize()
    return target_store.get(_target_id(target, target_store)).extension_fields


def has_extensions(target: type | str, store: "MetadataStore | None" = None) -> bool:
    """Return True if any extension contributed fields to ``target``."""
    return bool(get_extension_fields(target, store))
