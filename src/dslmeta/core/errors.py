"""Error taxonomy for declared metadata.

Every error here represents a mistake in the declarations themselves,
not a transient condition, so none of them is ever retried. Each carries
enough context (entity identifier, field name, originating module) for
the author to locate and fix the offending declaration.
"""
from __future__ import annotations


class MetadataError(Exception):
    """Base class for all metadata declaration errors.

    Parameters
    ----------
    message:
        Human-readable description of the problem.
    entity_id:
        Identifier of the entity involved, if any.
    field:
        Name of the field involved, if any.
    origin:
        Module that contributed the offending declaration, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        field: str | None = None,
        origin: str | None = None,
    ) -> None:
        self.entity_id = entity_id
        self.field = field
        self.origin = origin
        super().__init__(message)

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ConflictError(MetadataError):
    """Raised when an identifier is re-registered with a different kind."""

    def __init__(self, entity_id: str, existing_kind: str, new_kind: str, origin: str | None = None) -> None:
        self.existing_kind = existing_kind
        self.new_kind = new_kind
        super().__init__(
            f"Entity {entity_id!r} is already registered as {existing_kind!r} "
            f"and cannot be re-declared as {new_kind!r}"
            + (f" (from {origin})" if origin else ""),
            entity_id=entity_id,
            origin=origin,
        )


class UnknownEntityError(MetadataError, KeyError):
    """Raised when a field, extension or reference names an unregistered entity."""

    def __init__(
        self,
        entity_id: str,
        *,
        origin: str | None = None,
        field: str | None = None,
        context: str = "",
    ) -> None:
        parts = [f"Entity {entity_id!r} is not registered"]
        if context:
            parts.append(context)
        if origin:
            parts.append(f"declared in {origin}")
        super().__init__("; ".join(parts), entity_id=entity_id, field=field, origin=origin)


class FieldConflictError(MetadataError):
    """Raised when an extension field collides with an existing field name."""

    def __init__(self, entity_id: str, field: str, origin: str | None = None, existing_origin: str | None = None) -> None:
        self.existing_origin = existing_origin
        owner = existing_origin or "the entity definition"
        super().__init__(
            f"Field {field!r} of entity {entity_id!r} is already declared by {owner}"
            + (f"; extension from {origin} cannot redeclare it" if origin else ""),
            entity_id=entity_id,
            field=field,
            origin=origin,
        )


class SchemaError(MetadataError):
    """Raised when finalized metadata cannot be projected into a schema."""


class StateError(MetadataError):
    """Raised when a mutation is attempted on a finalized, locked store."""
