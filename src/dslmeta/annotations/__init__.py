"""Annotation API.

Class decorators (``entity``, ``dto``, ``enum_type``, ``page``,
``component``), the ``action`` method marker and the ``Field`` /
``Relation`` markers used inside ``typing.Annotated``.
"""
from __future__ import annotations

from dslmeta.annotations.decorators import (
    ActionOptions,
    action,
    action_options,
    component,
    dto,
    entity,
    enum_type,
    page,
)
from dslmeta.annotations.markers import Field, Relation

__all__ = [
    "ActionOptions",
    "action",
    "action_options",
    "component",
    "dto",
    "entity",
    "enum_type",
    "page",
    "Field",
    "Relation",
]
