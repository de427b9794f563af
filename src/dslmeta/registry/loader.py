"""Explicit bootstrap of definition and extension modules.

Decorators register metadata as a side effect of importing a module, so
the only thing that fixes the order of registrations is the order in
which modules are imported. ``load_definitions`` makes that order
explicit: every definition module first, every extension module second,
and finalization last.
"""
from __future__ import annotations

import importlib
import logging
import pkgutil
from collections.abc import Iterable
from types import ModuleType

from dslmeta.registry.store import MetadataStore, default_store

logger = logging.getLogger(__name__)


def discover_modules(package: str, *, suffix: str | None = None) -> list[str]:
    """Return the dotted names of every module below ``package``.

    Names are sorted so discovery order does not depend on the file
    system. With ``suffix``, only modules whose last component ends with
    it (e.g. ``"_ext"``) are returned.

    Raises
    ------
    ModuleNotFoundError
        If ``package`` cannot be imported.
    """
    root = importlib.import_module(package)
    search_path = getattr(root, "__path__", None)
    if search_path is None:
        return [package]
    names = sorted(
        info.name
        for info in pkgutil.walk_packages(search_path, prefix=f"{package}.")
        if not info.ispkg
    )
    if suffix is not None:
        names = [n for n in names if n.rsplit(".", 1)[-1].endswith(suffix)]
    return names


def _import_all(names: Iterable[str], kind: str) -> list[ModuleType]:
    modules: list[ModuleType] = []
    for name in names:
        logger.debug("Importing %s module %s", kind, name)
        modules.append(importlib.import_module(name))
    return modules


def load_definitions(
    modules: Iterable[str],
    extensions: Iterable[str] = (),
    *,
    store: MetadataStore | None = None,
    finalize: bool = True,
) -> MetadataStore:
    """Import definition modules, then extension modules, then finalize.

    Parameters
    ----------
    modules:
        Dotted names of modules declaring entities, DTOs, enums, pages
        and components.
    extensions:
        Dotted names of modules calling ``extend_entity``.
    store:
        The store the modules register into. Defaults to the process-wide
        store; decorators without an explicit ``store=`` always use it.
    finalize:
        Finalize once everything is imported.

    Returns
    -------
    MetadataStore
        The populated store.

    Raises
    ------
    ModuleNotFoundError
        If a module cannot be imported.
    MetadataError
        Any declaration or finalization error raised while loading.
    """
    target = store if store is not None else default_store()
    definitions = _import_all(modules, "definition")
    contributed = _import_all(extensions, "extension")
    logger.info(
        "Loaded %d definition module(s) and %d extension module(s); %d descriptor(s) registered",
        len(definitions),
        len(contributed),
        len(target),
    )
    if finalize:
        target.finalize()
    return target
