"""
Adapter for the standard library ``logging`` package.

``CapturingHandler`` is attached to the root logger while a capture
session runs and converts every ``LogRecord`` that reaches it into a
``CapturedEvent``:

* the level is folded onto TRACE..ERROR (CRITICAL becomes ERROR),
* context bindings come from ``structlog.contextvars``,
* structured pairs are the attributes ``extra=`` placed on the record,
* markers come from the reserved ``marker`` and ``markers`` attributes,
* the exception chain follows ``__cause__`` and unsuppressed
  ``__context__``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

import structlog

from logcapture.core.event import (
    CapturedEvent,
    CapturedException,
    Level,
    Marker,
    qualified_type_name,
)
from logcapture.core.sink import CaptureSink

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

MARKER_KEYS = frozenset({"marker", "markers"})

# Attributes every LogRecord carries; anything else came from ``extra=``.
_STANDARD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def to_level(levelno: int) -> Level:
    """Fold a numeric ``logging`` level onto the five captured levels."""
    if levelno < logging.DEBUG:
        return Level.TRACE
    if levelno < logging.INFO:
        return Level.DEBUG
    if levelno < logging.WARNING:
        return Level.INFO
    if levelno < logging.ERROR:
        return Level.WARN
    return Level.ERROR


def _next_in_chain(exc: BaseException) -> Optional[BaseException]:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def capture_exception(exc: Optional[BaseException]) -> Optional[CapturedException]:
    """
    Flatten *exc* and its cause chain into a ``CapturedException``.

    The chain is cut at the first exception object seen twice.
    """
    chain: List[BaseException] = []
    seen: Set[int] = set()
    current = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        current = _next_in_chain(current)

    captured: Optional[CapturedException] = None
    for item in reversed(chain):
        captured = CapturedException(
            type_name=qualified_type_name(type(item)),
            message=str(item),
            cause=captured,
        )
    return captured


def _structured_pairs(record: logging.LogRecord) -> Tuple[Tuple[str, Any], ...]:
    return tuple(
        (key, value)
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and key not in MARKER_KEYS
    )


def _markers(record: logging.LogRecord) -> Tuple[Marker, ...]:
    found: List[Marker] = []
    single = getattr(record, "marker", None)
    if single is not None:
        found.append(Marker.of(single))
    several: Optional[Iterable[Any]] = getattr(record, "markers", None)
    if several is not None:
        if isinstance(several, (str, Marker)):
            several = [several]
        found.extend(Marker.of(m) for m in several)
    return tuple(found)


def _context_map() -> Dict[str, str]:
    return {str(k): str(v) for k, v in structlog.contextvars.get_contextvars().items()}


def event_from_record(record: logging.LogRecord) -> CapturedEvent:
    """
    Convert a ``LogRecord`` into a ``CapturedEvent``.

    Args:
        record: The record handled by the capturing handler.

    Returns:
        The immutable captured event.
    """
    exception = None
    if record.exc_info and record.exc_info[1] is not None:
        exception = capture_exception(record.exc_info[1])
    return CapturedEvent(
        level=to_level(record.levelno),
        logger_name=record.name or "root",
        formatted_message=record.getMessage(),
        context_map=_context_map(),
        structured_pairs=_structured_pairs(record),
        markers=_markers(record),
        exception=exception,
    )


class CapturingHandler(logging.Handler):
    """
    Logging handler that appends every handled record to a sink.

    The handler itself accepts every level; the sink decides relevance
    by logger name. Records the sink rejects are dropped silently.

    Attributes:
        sink: Destination of converted events.
    """

    def __init__(
        self,
        sink: CaptureSink,
        on_captured: Optional[Callable[[CapturedEvent], None]] = None,
    ) -> None:
        """
        Initialize the handler.

        Args:
            sink: Destination of converted events.
            on_captured: Optional callback receiving every kept event.
        """
        super().__init__(level=logging.NOTSET)
        self.sink: CaptureSink = sink
        self._on_captured = on_captured

    def emit(self, record: logging.LogRecord) -> None:
        if not self.sink.is_relevant(record.name or "root"):
            return
        try:
            event = event_from_record(record)
        except Exception:
            self.handleError(record)
            return
        if self.sink.append(event) and self._on_captured is not None:
            try:
                self._on_captured(event)
            except Exception:
                self.handleError(record)

