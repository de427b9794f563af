"""In-process event bus.

A topic is an explicit string, or the event's ``topic`` attribute when it
is a string, or else the event's class name. Subscriptions take one of
three forms:

- an exact topic, e.g. ``"OrderSubmitted"``;
- ``"*"``, which receives every event;
- a pattern containing ``*``, e.g. ``"Order.*"``, where ``*`` matches any
  run of characters and everything else matches literally.

Handlers run synchronously in the order exact, wildcard, pattern, and
exceptions propagate to the publisher.
"""
from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Callable

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], None]


def topic_of(event: object) -> str:
    """Return the default topic for ``event``."""
    topic = getattr(event, "topic", None)
    if isinstance(topic, str) and topic:
        return topic
    return type(event).__name__


def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


class EventBus(ABC):
    """Publish/subscribe interface consumed by business code."""

    @abstractmethod
    def publish(self, event: object, topic: str | None = None) -> int:
        """Deliver ``event`` and return the number of handlers invoked."""

    @abstractmethod
    def subscribe(self, topic: str, handler: EventHandler) -> None:
        ...

    @abstractmethod
    def unsubscribe(self, topic: str, handler: EventHandler) -> bool:
        ...


class LocalEventBus(EventBus):
    """Synchronous ``EventBus`` living in the current process."""

    def __init__(self) -> None:
        self._exact: dict[str, list[EventHandler]] = {}
        self._wildcard: list[EventHandler] = []
        self._patterns: dict[str, tuple[re.Pattern[str], list[EventHandler]]] = {}

    def publish(self, event: object, topic: str | None = None) -> int:
        name = topic or topic_of(event)
        handlers = list(self._exact.get(name, ()))
        handlers.extend(self._wildcard)
        for regex, subscribed in self._patterns.values():
            if regex.match(name):
                handlers.extend(subscribed)

        for handler in handlers:
            handler(event)
        logger.debug("Published %s to %d handler(s)", name, len(handlers))
        return len(handlers)

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        if not callable(handler):
            raise TypeError(f"Event handler must be callable, got {type(handler).__name__}")
        if not topic:
            raise ValueError("Topic must be a non-empty string")
        if topic == "*":
            bucket = self._wildcard
        elif "*" in topic:
            if topic not in self._patterns:
                self._patterns[topic] = (_compile(topic), [])
            bucket = self._patterns[topic][1]
        else:
            bucket = self._exact.setdefault(topic, [])
        if handler not in bucket:
            bucket.append(handler)

    def unsubscribe(self, topic: str, handler: EventHandler) -> bool:
        if topic == "*":
            if handler in self._wildcard:
                self._wildcard.remove(handler)
                return True
            return False

        if "*" in topic:
            entry = self._patterns.get(topic)
            if entry is None or handler not in entry[1]:
                return False
            entry[1].remove(handler)
            if not entry[1]:
                del self._patterns[topic]
            return True

        handlers = self._exact.get(topic)
        if not handlers or handler not in handlers:
            return False
        handlers.remove(handler)
        if not handlers:
            del self._exact[topic]
        return True

    def subscriber_count(self, topic: str | None = None) -> int:
        """Return how many handlers would receive an event on ``topic``.

        With no topic, return the total number of subscriptions.
        """
        if topic is None:
            return (
                sum(len(h) for h in self._exact.values())
                + len(self._wildcard)
                + sum(len(h) for _, h in self._patterns.values())
            )
        count = len(self._exact.get(topic, ())) + len(self._wildcard)
        count += sum(len(h) for regex, h in self._patterns.values() if regex.match(topic))
        return count
