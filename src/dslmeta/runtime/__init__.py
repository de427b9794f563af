"""Interfaces consumed by business code at runtime.

Hooks, an in-process event bus and the repository contract, each wired
to the metadata registry where it needs declared information.
"""
from __future__ import annotations

from dslmeta.runtime.events import EventBus, EventHandler, LocalEventBus, topic_of
from dslmeta.runtime.hooks import (
    CreateContext,
    DeleteContext,
    HookAction,
    HookContext,
    HookRegistry,
    ReadContext,
    UpdateContext,
)
from dslmeta.runtime.repository import (
    InMemoryRepository,
    PageOptions,
    PageResult,
    Repository,
    RepositoryMetadata,
)

__all__ = [
    "CreateContext",
    "DeleteContext",
    "EventBus",
    "EventHandler",
    "HookAction",
    "HookContext",
    "HookRegistry",
    "InMemoryRepository",
    "LocalEventBus",
    "PageOptions",
    "PageResult",
    "ReadContext",
    "Repository",
    "RepositoryMetadata",
    "UpdateContext",
    "topic_of",
]
