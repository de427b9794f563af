"""Serialize registry contents to plain data, JSON or YAML.

The output is what UI renderers and tooling consume: for every
descriptor its kind and options, and for every field the display hints
(label, type, required, reference target, enum values, provenance).

``from_dict`` reverses ``to_dict`` so a dumped registry can be loaded
into a fresh store, e.g. to diff against a checked-in snapshot.
"""
from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import yaml

from dslmeta.core.descriptors import (
    Cardinality,
    EntityDescriptor,
    EntityKind,
    FieldDescriptor,
    Primitive,
    RelationInfo,
    Validation,
    ValueKind,
    freeze_options,
)
from dslmeta.registry.store import MetadataStore

FORMAT_VERSION = 1


class MetadataSerializer:
    """Converts a finalized ``MetadataStore`` to and from plain data."""

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def to_dict(self, store: MetadataStore) -> dict[str, Any]:
        """Finalize ``store`` if needed and return its contents as a dict."""
        return {
            "version": FORMAT_VERSION,
            "entities": [self.descriptor_to_dict(d) for d in store.snapshot()],
        }

    def to_json(self, store: MetadataStore, indent: int = 2) -> str:
        return json.dumps(self.to_dict(store), indent=indent, ensure_ascii=False)

    def to_yaml(self, store: MetadataStore) -> str:
        return yaml.safe_dump(self.to_dict(store), default_flow_style=False, allow_unicode=True, sort_keys=False)

    def descriptor_to_dict(self, descriptor: EntityDescriptor) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": descriptor.identifier,
            "kind": descriptor.kind.value,
            "origin": descriptor.origin,
        }
        if descriptor.table:
            data["table"] = descriptor.table
        if descriptor.primary_key:
            data["primary_key"] = descriptor.primary_key
        if descriptor.label:
            data["label"] = descriptor.label
        if descriptor.comment:
            data["comment"] = descriptor.comment
        if descriptor.enum_values:
            data["values"] = list(descriptor.enum_values)
        if descriptor.actions:
            data["actions"] = list(descriptor.actions)
        if descriptor.options:
            data["options"] = _plain(descriptor.options)
        data["fields"] = [self.field_to_dict(f) for f in descriptor.fields]
        return data

    def field_to_dict(self, field: FieldDescriptor) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": field.name,
            "kind": field.kind.value,
            "type": field.type_name,
            "label": field.label or field.name,
            "required": field.required,
            "nullable": field.nullable,
        }
        if field.primitive is not None:
            data["primitive"] = field.primitive.value
        if field.primary_key:
            data["primary_key"] = True
        if field.relation is not None:
            relation: dict[str, Any] = {
                "target": field.relation.target,
                "cardinality": field.relation.cardinality.value,
            }
            if field.relation.join_column:
                relation["join_column"] = field.relation.join_column
            if field.relation.cascade:
                relation["cascade"] = True
            data["relation"] = relation
        if field.enum_values:
            data["values"] = list(field.enum_values)
        for key in ("column", "precision", "scale", "comment"):
            value = getattr(field, key)
            if value is not None:
                data[key] = value
        if field.unique:
            data["unique"] = True
        if field.default is not None:
            data["default"] = _plain(field.default)
        if field.validation is not None:
            data["validation"] = {
                k: getattr(field.validation, k)
                for k in Validation.__slots__
                if getattr(field.validation, k) is not None
            }
        if field.is_extension:
            data["extension"] = {"origin": field.origin}
        return data

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def from_dict(self, data: dict[str, Any], store: MetadataStore | None = None) -> MetadataStore:
        """Register every descriptor in ``data`` into ``store`` (or a new one).

        Extension fields keep their provenance flag; they are registered
        as part of the descriptor rather than re-recorded as extensions.
        """
        target = store if store is not None else MetadataStore()
        version = data.get("version", FORMAT_VERSION)
        if version != FORMAT_VERSION:
            raise ValueError(f"Unsupported metadata format version {version!r}")
        for raw in data.get("entities", []):
            target.register(self.descriptor_from_dict(raw))
        return target

    def from_json(self, text: str, store: MetadataStore | None = None) -> MetadataStore:
        return self.from_dict(json.loads(text), store)

    def from_yaml(self, text: str, store: MetadataStore | None = None) -> MetadataStore:
        return self.from_dict(yaml.safe_load(text), store)

    def descriptor_from_dict(self, data: dict[str, Any]) -> EntityDescriptor:
        return EntityDescriptor(
            identifier=data["id"],
            kind=EntityKind(data["kind"]),
            fields=tuple(self.field_from_dict(f) for f in data.get("fields", [])),
            table=data.get("table"),
            primary_key=data.get("primary_key"),
            label=data.get("label"),
            comment=data.get("comment"),
            origin=data.get("origin"),
            actions=tuple(data.get("actions", ())),
            enum_values=tuple(data.get("values", ())),
            options=freeze_options(data.get("options")),
        )

    def field_from_dict(self, data: dict[str, Any]) -> FieldDescriptor:
        relation = None
        if "relation" in data:
            raw = data["relation"]
            relation = RelationInfo(
                target=raw["target"],
                cardinality=Cardinality(raw.get("cardinality", "one")),
                join_column=raw.get("join_column"),
                cascade=bool(raw.get("cascade", False)),
            )
        validation = Validation(**data["validation"]) if "validation" in data else None
        extension = data.get("extension")
        label = data.get("label")
        return FieldDescriptor(
            name=data["name"],
            kind=ValueKind(data["kind"]),
            primitive=Primitive(data["primitive"]) if "primitive" in data else None,
            nullable=bool(data.get("nullable", False)),
            primary_key=bool(data.get("primary_key", False)),
            is_extension=extension is not None,
            origin=extension.get("origin") if extension else None,
            relation=relation,
            enum_values=tuple(data.get("values", ())),
            label=None if label == data["name"] else label,
            column=data.get("column"),
            precision=data.get("precision"),
            scale=data.get("scale"),
            default=data.get("default"),
            unique=bool(data.get("unique", False)),
            comment=data.get("comment"),
            validation=validation,
        )


def _plain(value: object) -> Any:
    """Coerce option values into JSON/YAML-safe primitives."""
    if isinstance(value, Mapping):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted((_plain(v) for v in value), key=repr)
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)
