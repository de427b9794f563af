"""Command-line interface for dsl-meta."""
from __future__ import annotations

from dslmeta.cli.main import cli

__all__ = ["cli"]
