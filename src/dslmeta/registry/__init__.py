"""Metadata registry.

``MetadataStore`` accumulates descriptors as definition modules are
imported; ``default_store()`` returns the process-wide instance that the
decorators write to unless given an explicit ``store=``.
"""
from __future__ import annotations

from dslmeta.registry.loader import discover_modules, load_definitions
from dslmeta.registry.serializer import MetadataSerializer
from dslmeta.registry.store import FinalizePolicy, MetadataStore, StoreConfig, default_store

__all__ = [
    "FinalizePolicy",
    "MetadataSerializer",
    "MetadataStore",
    "StoreConfig",
    "default_store",
    "discover_modules",
    "load_definitions",
]
