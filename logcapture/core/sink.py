"""
Thread-safe, append-only buffer of captured log events.

The sink keeps every relevant event in ingestion order. Relevance is a
literal string-prefix test of the event's logger name against the set
of captured prefixes (or the ``ANY_LOGGER`` sentinel, which accepts
everything). Appends serialize on an internal lock; readers get a
stable, non-copying view of all events appended before the view was
taken.
"""

from __future__ import annotations

import threading
from enum import Enum
from typing import (
    AbstractSet,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Sequence,
    Union,
    overload,
)

from logcapture.core.event import CapturedEvent


class Capability(Enum):
    """Optional event fields an adapter may or may not be able to supply."""

    CONTEXT_MAP = "context bindings (MDC)"
    STRUCTURED_PAIRS = "structured key-value pairs"
    MARKERS = "markers"

    @property
    def description(self) -> str:
        """Human-readable name of the feature."""
        return self.value


ALL_CAPABILITIES: FrozenSet[Capability] = frozenset(Capability)


class _AnyLogger:
    """Sentinel prefix set that accepts every logger name."""

    _instance = None

    def __new__(cls) -> _AnyLogger:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ANY_LOGGER"


ANY_LOGGER = _AnyLogger()

PrefixSet = Union[AbstractSet[str], _AnyLogger]


class EventsView(Sequence[CapturedEvent]):
    """
    Read-only window over the first *length* events of a sink.

    The sink only ever appends, so indices below the length captured at
    construction never change. Later appends are not visible through an
    existing view.
    """

    __slots__ = ("_events", "_length")

    def __init__(self, events: List[CapturedEvent], length: int) -> None:
        self._events = events
        self._length = length

    def __len__(self) -> int:
        return self._length

    @overload
    def __getitem__(self, index: int) -> CapturedEvent: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[CapturedEvent]: ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._events[i] for i in range(*index.indices(self._length))]
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError("event index out of range")
        return self._events[index]

    def __iter__(self) -> Iterator[CapturedEvent]:
        for i in range(self._length):
            yield self._events[i]

    def __repr__(self) -> str:
        return f"EventsView(length={self._length})"


class CaptureSink:
    """
    Ordered store of captured events filtered by logger-name prefix.

    Attributes:
        prefixes: The captured logger-name prefixes, or ``ANY_LOGGER``.
        capabilities: Event fields the feeding adapter can supply.
    """

    def __init__(
        self,
        prefixes: Union[Iterable[str], _AnyLogger],
        capabilities: Iterable[Capability] = ALL_CAPABILITIES,
    ) -> None:
        """
        Initialize an empty sink.

        Args:
            prefixes: Logger-name prefixes whose events are kept, or
                ``ANY_LOGGER`` to keep every event.
            capabilities: Optional event fields the adapter supplies.
        """
        if isinstance(prefixes, _AnyLogger):
            self.prefixes: PrefixSet = ANY_LOGGER
        else:
            self.prefixes = frozenset(prefixes)
        self.capabilities: FrozenSet[Capability] = frozenset(capabilities)
        self._events: List[CapturedEvent] = []
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Ingestion
    # ------------------------------------------------------------------ #

    def is_relevant(self, logger_name: str) -> bool:
        """True when *logger_name* starts with any captured prefix."""
        if self.prefixes is ANY_LOGGER:
            return True
        return any(logger_name.startswith(p) for p in self.prefixes)

    def append(self, event: CapturedEvent) -> bool:
        """
        Record *event* if its logger name is captured.

        Args:
            event: The event to record.

        Returns:
            True if the event was kept, False if it was filtered out.
        """
        if not self.is_relevant(event.logger_name):
            return False
        with self._lock:
            self._events.append(event)
        return True

    # The ingestion interface consumed from logging adapters.
    on_event = append

    # ------------------------------------------------------------------ #
    # Read access
    # ------------------------------------------------------------------ #

    def events(self) -> EventsView:
        """Return a stable view of all events appended so far."""
        with self._lock:
            return EventsView(self._events, len(self._events))

    def count(self) -> int:
        """Return the number of events captured so far."""
        with self._lock:
            return len(self._events)

    def __len__(self) -> int:
        return self.count()

    def supports(self, capability: Capability) -> bool:
        """True when the feeding adapter supplies *capability*."""
        return capability in self.capabilities

    def __repr__(self) -> str:
        return f"CaptureSink(prefixes={self.prefixes!r}, events={self.count()})"
