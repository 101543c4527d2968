"""Event registry: handler storage and fan-out dispatch.

Handlers live in two explicit mappings selected by :class:`EventStore`:

- ``EVENTS``: event name (``"text"``, ``"photo"``, ``"callback_query"``, ...)
  to a :class:`HandlerEntry` that accumulates processors.
- ``TEXT``: registration serial to a single-processor :class:`HandlerEntry`
  whose key is the text matcher (a regex source string or a compiled
  :class:`re.Pattern`).

Every ``on_text`` call adds its own entry, even for a matcher that is
already registered.  ``re.compile`` caches patterns, so two equal
``re.compile`` calls may return one object; keying entries by serial keeps
both handlers.  Matchers compare strings by value and pattern objects by
identity when ``dispatch_text`` looks them up.

Dispatch returns one :class:`asyncio.Future` joining every invoked
processor; it resolves to the list of results or fails with the first
error raised, the same contract as :func:`asyncio.gather`.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import inspect
import itertools
import re
from typing import Any, Callable, Hashable, Iterable, Optional, Union

from core.logger import TelepollLogger

logger = TelepollLogger.get_logger()

# A processor takes the dispatched payload and may return an awaitable.
Processor = Callable[[Any], Any]
TextMatcher = Union[str, re.Pattern]


class EventStore(enum.Enum):
    """Which mapping a dispatch reads from."""

    EVENTS = "events"
    TEXT = "text"


@dataclasses.dataclass(slots=True)
class HandlerEntry:
    """Processors registered for one key, in registration order."""

    key: Any
    processors: list[Processor] = dataclasses.field(default_factory=list)


def _text_key(matcher: TextMatcher) -> Hashable:
    if isinstance(matcher, str):
        return ("literal", matcher)
    if isinstance(matcher, re.Pattern):
        return ("pattern", id(matcher))
    raise TypeError(f"Text matcher must be a str or re.Pattern, got {type(matcher).__name__}")


async def _invoke(processor: Processor, data: Any) -> Any:
    result = processor(data)
    if inspect.isawaitable(result):
        result = await result
    return result


class EventRegistry:
    """Registry of event and text handlers.

    Usage::

        registry = EventRegistry()

        @registry.on("photo")
        async def on_photo(message: dict) -> None: ...

        registry.on_text(re.compile(r"^/start"), on_start)
        await registry.dispatch("photo", message)
    """

    def __init__(self) -> None:
        self._events: dict[str, HandlerEntry] = {}
        self._text_events: dict[int, HandlerEntry] = {}
        self._text_serial = itertools.count()

    # ── registration ─────────────────────────────────────────────────────

    def on(self, event_name: str, processor: Optional[Processor] = None) -> Any:
        """Register *processor* for *event_name*.

        Registering a processor that is already present is a no-op.  Called
        without *processor* this returns a decorator.
        """
        if processor is None:
            def decorator(func: Processor) -> Processor:
                self.on(event_name, func)
                return func
            return decorator

        entry = self._events.get(event_name)
        if entry is None:
            self._events[event_name] = HandlerEntry(event_name, [processor])
        elif processor not in entry.processors:
            entry.processors.append(processor)
        else:
            logger.debug("Processor already registered", extra={"event": event_name})
            return processor
        logger.debug("Processor registered", extra={"event": event_name, "processor": getattr(processor, "__qualname__", repr(processor))})
        return processor

    def on_text(self, matcher: TextMatcher, processor: Optional[Processor] = None) -> Any:
        """Register *processor* for messages whose text matches *matcher*.

        Always appends a fresh single-processor entry, never merging into
        one registered earlier for the same matcher.  A string matcher is a
        regex source searched anywhere in the text.  Called without
        *processor* this returns a decorator.
        """
        if processor is None:
            def decorator(func: Processor) -> Processor:
                self.on_text(matcher, func)
                return func
            return decorator

        _text_key(matcher)  # rejects unsupported matcher types
        if isinstance(matcher, str):
            re.compile(matcher)  # surface a bad pattern at registration time
        self._text_events[next(self._text_serial)] = HandlerEntry(matcher, [processor])
        logger.debug("Text processor registered", extra={"event": str(getattr(matcher, "pattern", matcher))})
        return processor

    # ── lookup helpers ───────────────────────────────────────────────────

    def text_entries(self) -> list[HandlerEntry]:
        """Return the registered text entries in registration order."""
        return list(self._text_events.values())

    # ── dispatch ─────────────────────────────────────────────────────────

    def dispatch(self, event_names: Union[str, Iterable[str]], data: Any) -> asyncio.Future:
        """Invoke every processor registered under *event_names* with *data*."""
        keys = [event_names] if isinstance(event_names, str) else list(event_names)
        return self._dispatch(EventStore.EVENTS, keys, data)

    def dispatch_text(self, matcher: Union[TextMatcher, HandlerEntry], data: Any) -> asyncio.Future:
        """Invoke text processors with *data*.

        Given a :class:`HandlerEntry` (as the router does) only that entry
        runs.  Given a matcher, every entry registered for that exact key
        runs, in registration order.
        """
        if isinstance(matcher, HandlerEntry):
            keys = [serial for serial, entry in self._text_events.items() if entry is matcher]
        else:
            wanted = _text_key(matcher)
            keys = [serial for serial, entry in self._text_events.items() if _text_key(entry.key) == wanted]
        return self._dispatch(EventStore.TEXT, keys, data)

    def _store(self, store: EventStore) -> dict[Hashable, HandlerEntry]:
        if store is EventStore.TEXT:
            return self._text_events
        return self._events

    def _dispatch(self, store: EventStore, keys: list[Hashable], data: Any) -> asyncio.Future:
        entries = self._store(store)
        completions = []
        for key in keys:
            entry = entries.get(key)
            if entry is None:
                continue
            for processor in list(entry.processors):
                completions.append(_invoke(processor, data))
        return asyncio.gather(*completions)
