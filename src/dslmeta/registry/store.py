"""The process-wide metadata store.

Lifecycle
---------
1. The store starts empty.
2. Importing definition modules fires the annotation decorators, which
   ``register`` descriptors; importing extension modules records
   ``ExtensionRecord`` values via ``extend``.
3. ``finalize()`` merges the recorded extensions, checks that every
   relation target exists, and locks the store. It must only be called
   once every definition and extension module has been imported; the
   loader in ``dslmeta.registry.loader`` does exactly that.
4. Generators and renderers read the finalized view.

A mutation after finalization is handled according to
``StoreConfig.after_finalize``: ``REJECT`` raises ``StateError``;
``REFINALIZE`` marks the merged view stale so the next read merges again.
A stale merged view is never served.

All operations are synchronous and in-memory. The store assumes
mutation happens at import time on a single thread and does no locking.
"""
from __future__ import annotations

import logging
import weakref
from collections.abc import Iterator
from dataclasses import dataclass, replace
from enum import Enum

from dslmeta.core.descriptors import EntityDescriptor, ExtensionRecord, FieldDescriptor
from dslmeta.core.errors import ConflictError, StateError, UnknownEntityError

logger = logging.getLogger(__name__)


class FinalizePolicy(Enum):
    """What happens when a finalized store is mutated."""

    REJECT = "reject"
    REFINALIZE = "refinalize"


@dataclass(frozen=True)
class StoreConfig:
    """Behavioral switches for a ``MetadataStore``.

    Parameters
    ----------
    after_finalize:
        Policy for mutations attempted after ``finalize()``.
    check_references:
        Verify at finalization that every relation target is registered.
    """

    after_finalize: FinalizePolicy = FinalizePolicy.REJECT
    check_references: bool = True


class MetadataStore:
    """Registry of every declared entity, DTO, enum, page and component.

    Descriptors are keyed by identifier and kept in first-registration
    order. The store exclusively owns them; readers receive frozen
    descriptors.

    Parameters
    ----------
    config:
        Store configuration. Defaults to ``StoreConfig()``.
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        self._entities: dict[str, EntityDescriptor] = {}
        self._types: weakref.WeakKeyDictionary[type, str] = weakref.WeakKeyDictionary()
        self._extensions: list[ExtensionRecord] = []
        self._aliases: dict[str, str] = {}
        self._merged: dict[str, EntityDescriptor] | None = None
        self._finalized = False
        self._stale = False

    # ------------------------------------------------------------------
    # Configuration and state
    # ------------------------------------------------------------------

    @property
    def config(self) -> StoreConfig:
        return self._config

    def configure(self, config: StoreConfig) -> None:
        """Replace the store configuration."""
        self._config = config

    @property
    def is_finalized(self) -> bool:
        """Return True while the merged view is current and the store is locked."""
        return self._finalized

    def _before_mutation(self, operation: str, entity_id: str | None = None) -> None:
        if not self._finalized:
            return
        if self._config.after_finalize is FinalizePolicy.REJECT:
            raise StateError(
                f"Cannot {operation}: the metadata store is finalized. "
                "Import every definition and extension module before finalizing, "
                "or configure after_finalize=refinalize.",
                entity_id=entity_id,
            )
        logger.debug("Store mutated after finalization (%s); merged view marked stale", operation)
        self._finalized = False
        self._stale = True
        self._merged = None

    def _view(self) -> dict[str, EntityDescriptor]:
        if self._stale:
            self.finalize()
        if self._finalized and self._merged is not None:
            return self._merged
        return self._entities

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, descriptor: EntityDescriptor, *, declared_type: type | None = None) -> EntityDescriptor:
        """Insert ``descriptor``, or merge it into an identical-kind re-declaration.

        Re-declaring an identifier with the same kind (hot reload, a
        module imported twice) keeps the original position, replaces
        fields of the same name in place and appends new ones.
        A re-declaration that changes nothing is a no-op, even on a
        finalized store.

        Parameters
        ----------
        descriptor:
            The descriptor to register.
        declared_type:
            The class the descriptor was declared on, indexed so that
            annotations naming the class resolve to ``descriptor.identifier``.

        Returns
        -------
        EntityDescriptor
            The descriptor now stored under the identifier.

        Raises
        ------
        ConflictError
            If the identifier is registered with a different kind.
        StateError
            If the store is finalized and mutations are rejected.
        """
        identifier = descriptor.identifier
        existing = self._entities.get(identifier)
        if existing is not None and existing.kind is not descriptor.kind:
            raise ConflictError(identifier, existing.kind.value, descriptor.kind.value, origin=descriptor.origin)
        if existing is not None:
            descriptor = self._redeclare(existing, descriptor)
            if descriptor == existing and descriptor.options == existing.options:
                self._index(declared_type, identifier)
                return existing
        self._before_mutation(f"register {identifier!r}", identifier)

        if existing is not None:
            logger.debug("Re-declared %s %r", descriptor.kind.value, identifier)
        else:
            logger.debug("Registered %s %r", descriptor.kind.value, identifier)

        self._entities[identifier] = descriptor
        self._index(declared_type, identifier)
        return descriptor

    def _index(self, declared_type: type | None, identifier: str) -> None:
        if declared_type is None:
            return
        self._types[declared_type] = identifier
        if declared_type.__name__ != identifier:
            self._aliases[declared_type.__name__] = identifier

    def _redeclare(self, existing: EntityDescriptor, incoming: EntityDescriptor) -> EntityDescriptor:
        incoming_by_name = {f.name: f for f in incoming.fields}
        fields: list[FieldDescriptor] = []
        for current in existing.fields:
            update = incoming_by_name.pop(current.name, None)
            if update is not None and update != current:
                logger.warning(
                    "Field %r of %r redefined by re-declaration from %s",
                    current.name,
                    existing.identifier,
                    incoming.origin,
                )
            fields.append(update if update is not None else current)
        fields.extend(f for f in incoming.fields if f.name in incoming_by_name)
        merged = replace(incoming, actions=tuple(dict.fromkeys(existing.actions + incoming.actions)))
        return merged.with_fields(tuple(fields))

    def add_field(self, entity_id: str, field: FieldDescriptor) -> EntityDescriptor:
        """Append ``field`` to the entity ``entity_id``.

        Adding a field identical to an existing one is a no-op; a field
        with an existing name but a different definition replaces it in
        place.

        Raises
        ------
        UnknownEntityError
            If ``entity_id`` is not registered.
        StateError
            If the store is finalized and mutations are rejected.
        """
        existing = self._entities.get(entity_id)
        if existing is None:
            raise UnknownEntityError(entity_id, field=field.name, context=f"cannot add field {field.name!r}")
        current = existing.field(field.name)
        if current == field:
            return existing
        self._before_mutation(f"add field {field.name!r} to {entity_id!r}", entity_id)

        if current is None:
            fields = existing.fields + (field,)
        else:
            logger.warning("Field %r of %r redefined", field.name, entity_id)
            fields = tuple(field if f.name == field.name else f for f in existing.fields)
        updated = existing.with_fields(fields)
        self._entities[entity_id] = updated
        return updated

    def extend(self, record: ExtensionRecord) -> None:
        """Record an extension to be merged at finalization.

        Raises
        ------
        StateError
            If the store is finalized and mutations are rejected.
        """
        self._before_mutation(f"extend {record.target!r}", record.target)
        self._extensions.append(record)
        logger.debug(
            "Recorded extension of %r from %s (%d field(s))",
            record.target,
            record.origin,
            len(record.fields),
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, entity_id: str) -> EntityDescriptor:
        """Return the descriptor registered under ``entity_id``.

        Before finalization this is the raw declaration; afterwards it
        includes merged extension fields.

        Raises
        ------
        UnknownEntityError
            If nothing is registered under ``entity_id``.
        """
        descriptor = self._view().get(entity_id)
        if descriptor is None:
            raise UnknownEntityError(entity_id)
        return descriptor

    def find(self, entity_id: str) -> EntityDescriptor | None:
        """Like ``get`` but return ``None`` for unknown identifiers."""
        return self._view().get(entity_id)

    def all(self) -> Iterator[EntityDescriptor]:
        """Iterate over every descriptor in first-registration order."""
        yield from tuple(self._view().values())

    def identifier_for(self, declared_type: type) -> str | None:
        """Return the identifier registered for ``declared_type``, if any."""
        try:
            return self._types.get(declared_type)
        except TypeError:
            return None

    @property
    def extensions(self) -> tuple[ExtensionRecord, ...]:
        return tuple(self._extensions)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[EntityDescriptor]:
        return self.all()

    def __repr__(self) -> str:
        state = "finalized" if self._finalized else "open"
        return (
            f"MetadataStore({len(self._entities)} entit{'y' if len(self._entities) == 1 else 'ies'}, "
            f"{len(self._extensions)} extension(s), {state})"
        )

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finalize(self) -> None:
        """Merge pending extensions, check references and lock the store.

        Idempotent. If merging or reference checking fails the store is
        left open, so the declaration can be fixed and finalization retried.

        Raises
        ------
        UnknownEntityError
            If an extension targets, or a relation points at, an
            unregistered identifier.
        FieldConflictError
            If an extension field collides with an existing field.
        """
        if self._finalized:
            return
        from dslmeta.extension.resolver import merge_extensions

        merged = _apply_aliases(merge_extensions(self._entities, self._extensions), self._aliases)
        if self._config.check_references:
            _check_references(merged)
        self._merged = merged
        self._finalized = True
        self._stale = False
        logger.debug(
            "Finalized metadata store: %d descriptor(s), %d extension(s)",
            len(merged),
            len(self._extensions),
        )

    def snapshot(self) -> tuple[EntityDescriptor, ...]:
        """Finalize if needed and return every merged descriptor in order."""
        self.finalize()
        return tuple(self._view().values())

    def reset(self) -> None:
        """Drop every descriptor and extension.

        Intended for test isolation; a running application never needs it.
        """
        self._entities.clear()
        self._types = weakref.WeakKeyDictionary()
        self._extensions.clear()
        self._aliases.clear()
        self._merged = None
        self._finalized = False
        self._stale = False


def _apply_aliases(entities: dict[str, EntityDescriptor], aliases: dict[str, str]) -> dict[str, EntityDescriptor]:
    """Point relations written against a class name at its registered identifier.

    A forward reference only knows the class name. Targets that are
    already registered identifiers are left alone.
    """
    if not aliases:
        return entities

    def retarget(field: FieldDescriptor) -> FieldDescriptor:
        relation = field.relation
        if relation is None or relation.target in entities or relation.target not in aliases:
            return field
        return replace(field, relation=replace(relation, target=aliases[relation.target]))

    resolved: dict[str, EntityDescriptor] = {}
    for identifier, descriptor in entities.items():
        fields = tuple(retarget(f) for f in descriptor.fields)
        changed = any(new is not old for new, old in zip(fields, descriptor.fields))
        resolved[identifier] = descriptor.with_fields(fields) if changed else descriptor
    return resolved


def _check_references(entities: dict[str, EntityDescriptor]) -> None:
    for descriptor in entities.values():
        for field in descriptor.fields:
            if field.relation is None or field.relation.target in entities:
                continue
            raise UnknownEntityError(
                field.relation.target,
                origin=field.origin or descriptor.origin,
                field=field.name,
                context=f"it is referenced by {descriptor.identifier}.{field.name}",
            )


_default: MetadataStore | None = None


def default_store() -> MetadataStore:
    """Return the process-wide store, creating it on first use."""
    global _default
    if _default is None:
        _default = MetadataStore()
    return _default
