"""Identifier and column naming helpers."""
from __future__ import annotations

import re

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_PASCAL = re.compile(r"^[A-Z][A-Za-z0-9]*$")


def to_snake_case(name: str) -> str:
    """Convert ``OrderLine`` / ``orderLine`` / ``HTTPRequest`` to snake_case.

    Already snake_case names are returned lower-cased and otherwise
    unchanged; no leading underscore is ever introduced.
    """
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def is_pascal_case(name: str) -> bool:
    return bool(_PASCAL.match(name))
