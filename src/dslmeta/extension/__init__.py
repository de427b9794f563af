"""Extension resolver.

Lets one module contribute fields to an entity declared in another,
merged at finalization without modifying the original declaration.
"""
from __future__ import annotations

from dslmeta.extension.resolver import (
    extend_entity,
    get_extension_fields,
    has_extensions,
    merge_extensions,
)

__all__ = ["extend_entity", "get_extension_fields", "has_extensions", "merge_extensions"]
