"""Project configuration loaded from ``dslmeta.yaml``.

A project file names the modules to import and how the store behaves::

    name: purchasing
    modules:
      - purchasing.models
      - purchasing.dtos
    extensions:
      - loyalty.order_fields
    after_finalize: reject
    schema:
      output: schema/purchasing.json
      format: json

Every key is optional. Unknown keys are rejected so that typos surface
immediately instead of silently falling back to defaults.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from dslmeta.registry.loader import load_definitions
from dslmeta.registry.store import FinalizePolicy, MetadataStore, StoreConfig, default_store

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "dslmeta.yaml"

_TOP_LEVEL_KEYS = frozenset({"name", "modules", "extensions", "after_finalize", "check_references", "schema"})
_SCHEMA_KEYS = frozenset({"output", "format"})
_SCHEMA_FORMATS = ("json", "yaml")


def _string_list(data: dict[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key) or []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{key!r} must be a list of dotted module names")
    return tuple(value)


@dataclass(frozen=True)
class ProjectConfig:
    """Settings for one project.

    Parameters
    ----------
    name:
        Display name used in CLI output.
    modules:
        Definition modules, imported first.
    extensions:
        Extension modules, imported after every definition module.
    after_finalize:
        Store policy for mutations after finalization.
    check_references:
        Verify relation targets at finalization.
    schema_output:
        Path of the generated schema file, relative to ``root``.
    schema_format:
        ``"json"`` or ``"yaml"``.
    root:
        Directory the configuration was loaded from.
    """

    name: str = ""
    modules: tuple[str, ...] = ()
    extensions: tuple[str, ...] = ()
    after_finalize: FinalizePolicy = FinalizePolicy.REJECT
    check_references: bool = True
    schema_output: str | None = None
    schema_format: str = "json"
    root: Path = field(default_factory=Path.cwd, compare=False)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, root: Path | None = None) -> "ProjectConfig":
        """Build a config from parsed YAML.

        Raises
        ------
        ValueError
            On unknown keys or values of the wrong shape.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ValueError("Project configuration must be a mapping")
        unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
        if unknown:
            raise ValueError(f"Unknown configuration key(s): {', '.join(unknown)}")

        schema = data.get("schema") or {}
        if not isinstance(schema, dict):
            raise ValueError("'schema' must be a mapping")
        unknown = sorted(set(schema) - _SCHEMA_KEYS)
        if unknown:
            raise ValueError(f"Unknown schema key(s): {', '.join(unknown)}")
        schema_format = str(schema.get("format", "json")).lower()
        if schema_format not in _SCHEMA_FORMATS:
            raise ValueError(f"schema.format must be one of {_SCHEMA_FORMATS}, got {schema_format!r}")

        try:
            policy = FinalizePolicy(str(data.get("after_finalize", FinalizePolicy.REJECT.value)).lower())
        except ValueError:
            choices = ", ".join(p.value for p in FinalizePolicy)
            raise ValueError(f"after_finalize must be one of: {choices}") from None

        check_references = data.get("check_references", True)
        if not isinstance(check_references, bool):
            raise ValueError(f"check_references must be true or false, got {check_references!r}")

        return cls(
            name=str(data.get("name", "")),
            modules=_string_list(data, "modules"),
            extensions=_string_list(data, "extensions"),
            after_finalize=policy,
            check_references=check_references,
            schema_output=schema.get("output"),
            schema_format=schema_format,
            root=root if root is not None else Path.cwd(),
        )

    @classmethod
    def load(cls, path: str | Path) -> "ProjectConfig":
        """Read ``path`` (a file, or a directory containing ``dslmeta.yaml``)."""
        path = Path(path)
        if path.is_dir():
            path = path / CONFIG_FILENAME
        logger.debug("Loading project configuration from %s", path)
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        return cls.from_dict(data, root=path.resolve().parent)

    # ------------------------------------------------------------------
    # Use
    # ------------------------------------------------------------------

    def store_config(self) -> StoreConfig:
        return StoreConfig(after_finalize=self.after_finalize, check_references=self.check_references)

    @property
    def schema_path(self) -> Path | None:
        """Absolute path of the schema file, or ``None`` if not configured."""
        if self.schema_output is None:
            return None
        return self.root / self.schema_output

    def load_store(self, store: MetadataStore | None = None, *, finalize: bool = True) -> MetadataStore:
        """Configure ``store`` and import every configured module into it.

        Decorators without an explicit ``store=`` register into the
        process-wide store, which is therefore the default here too.
        """
        target = store if store is not None else default_store()
        target.configure(self.store_config())
        return load_definitions(self.modules, self.extensions, store=target, finalize=finalize)
