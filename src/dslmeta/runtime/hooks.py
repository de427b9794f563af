"""Lifecycle hooks consulted by repositories.

Handlers are plain synchronous callables registered per action and,
optionally, per entity. ``run_before`` and ``run_after`` call the
entity-specific handlers first, then the handlers registered for every
entity, each group in registration order. Exceptions raised by a
handler propagate to the caller, so a ``before`` handler can veto an
operation by raising.

Usage
-----
::

    hooks = HookRegistry()
    hooks.before(HookAction.CREATE, stamp_created_at, entity="Order")
    hooks.run_before(HookAction.CREATE, CreateContext("Order", data=row))
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

logger = logging.getLogger(__name__)


class HookAction(Enum):
    """Repository operations a hook can attach to."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------


@dataclass
class HookContext:
    """Common part of every hook context. Handlers may mutate it in place."""

    entity_id: str
    extra: dict[str, Any] = field(default_factory=dict, kw_only=True)

    action = HookAction.READ


@dataclass
class CreateContext(HookContext):
    data: dict[str, Any] = field(default_factory=dict)

    action = HookAction.CREATE


@dataclass
class UpdateContext(HookContext):
    key: Any = None
    data: dict[str, Any] = field(default_factory=dict)
    previous: dict[str, Any] | None = None

    action = HookAction.UPDATE


@dataclass
class DeleteContext(HookContext):
    key: Any = None
    record: dict[str, Any] | None = None

    action = HookAction.DELETE


@dataclass
class ReadContext(HookContext):
    query: dict[str, Any] = field(default_factory=dict)
    results: list[dict[str, Any]] = field(default_factory=list)

    action = HookAction.READ


HookHandler = Callable[[Any], None]

_ANY = "*"


class HookRegistry:
    """Registry of before/after handlers keyed by action and entity."""

    def __init__(self) -> None:
        self._before: dict[tuple[HookAction, str], list[HookHandler]] = {}
        self._after: dict[tuple[HookAction, str], list[HookHandler]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def before(self, action: HookAction | str, handler: HookHandler, *, entity: str | None = None) -> None:
        """Register ``handler`` to run before ``action``.

        Parameters
        ----------
        action:
            A ``HookAction`` or its string value.
        handler:
            Callable receiving the action's context object.
        entity:
            Restrict the handler to one entity identifier. ``None`` means
            every entity.
        """
        self._add(self._before, action, handler, entity)

    def after(self, action: HookAction | str, handler: HookHandler, *, entity: str | None = None) -> None:
        """Register ``handler`` to run after ``action`` has completed."""
        self._add(self._after, action, handler, entity)

    def remove(self, action: HookAction | str, handler: HookHandler, *, entity: str | None = None) -> bool:
        """Unregister ``handler`` from both phases. Returns True if it was found."""
        key = (HookAction(action), entity or _ANY)
        found = False
        for table in (self._before, self._after):
            handlers = table.get(key, [])
            if handler in handlers:
                handlers.remove(handler)
                found = True
        return found

    def clear(self) -> None:
        self._before.clear()
        self._after.clear()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def run_before(self, action: HookAction | str, context: HookContext) -> None:
        self._run(self._before, HookAction(action), context)

    def run_after(self, action: HookAction | str, context: HookContext) -> None:
        self._run(self._after, HookAction(action), context)

    def handlers(self, action: HookAction | str, entity: str, phase: str = "before") -> tuple[HookHandler, ...]:
        """Return the handlers that would run for ``entity`` in ``phase``, in order.

        Raises
        ------
        ValueError
            If ``phase`` is neither ``"before"`` nor ``"after"``.
        """
        if phase not in ("before", "after"):
            raise ValueError(f"Unknown hook phase {phase!r}; expected 'before' or 'after'")
        table = self._before if phase == "before" else self._after
        action = HookAction(action)
        return tuple(table.get((action, entity), ())) + tuple(table.get((action, _ANY), ()))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _add(
        table: dict[tuple[HookAction, str], list[HookHandler]],
        action: HookAction | str,
        handler: HookHandler,
        entity: str | None,
    ) -> None:
        if not callable(handler):
            raise TypeError(f"Hook handler must be callable, got {type(handler).__name__}")
        handlers = table.setdefault((HookAction(action), entity or _ANY), [])
        if handler not in handlers:
            handlers.append(handler)

    @staticmethod
    def _run(
        table: dict[tuple[HookAction, str], list[HookHandler]],
        action: HookAction,
        context: HookContext,
    ) -> None:
        keys = [(action, context.entity_id)]
        if context.entity_id != _ANY:
            keys.append((action, _ANY))
        for key in keys:
            for handler in list(table.get(key, ())):
                handler(context)
        logger.debug("Ran %s hooks for %s", action.value, context.entity_id)
