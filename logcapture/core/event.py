"""
Captured log event representation.

A captured event is the immutable record of a single log emission as
seen by the capture sink: its severity, the emitting logger's name, the
rendered message, the context bindings active at emission time,
structured key-value pairs, marker trees and the exception chain.
Events carry no timestamp; their order is the order of ingestion.
"""

from __future__ import annotations

import builtins
import sys
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional, Tuple, Union


def qualified_type_name(cls: type) -> str:
    """
    Return the name under which exception types are recorded.

    Builtin classes use their bare name (``ValueError``), everything else
    ``module.QualName``.
    """
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def resolve_type_name(name: str) -> Optional[type]:
    """
    Look up the class recorded as *name* among already-imported modules.

    Nothing is imported. Classes that are not reachable by attribute
    access from their module (for example classes defined inside a
    function) do not resolve.

    Returns:
        The class, or None if the name does not resolve.
    """
    if "." not in name:
        obj = getattr(builtins, name, None)
        return obj if isinstance(obj, type) else None

    parts = name.split(".")
    for split in range(len(parts) - 1, 0, -1):
        module = sys.modules.get(".".join(parts[:split]))
        if module is None:
            continue
        obj: Any = module
        for attr in parts[split:]:
            obj = getattr(obj, attr, None)
            if obj is None:
                break
        if isinstance(obj, type):
            return obj
    return None


class Level(Enum):
    """
    Severity of a captured event, from most to least verbose.

    Host severities are folded onto these five values by the adapter.
    """

    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class Marker:
    """
    A named marker attached to a log event, possibly with child markers.

    Markers form trees. A marker *contains* a name when the name is its
    own or that of any descendant.

    Attributes:
        name: The marker name.
        children: Child markers, in the order they were added.
    """

    name: str
    children: Tuple[Marker, ...] = ()

    def __post_init__(self) -> None:
        """Validate the name and freeze the children."""
        if not self.name:
            raise ValueError("Marker name must not be empty")
        object.__setattr__(self, "children", tuple(self.children))

    @classmethod
    def of(cls, value: Union[Marker, str]) -> Marker:
        """Return *value* as a marker, wrapping plain strings as leaf markers."""
        if isinstance(value, Marker):
            return value
        return cls(str(value))

    def walk(self) -> Iterator[Marker]:
        """Yield this marker and all descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()

    def contains(self, name: str) -> bool:
        """True when this marker or any descendant is called *name*."""
        return any(node.name == name for node in self.walk())

    def __str__(self) -> str:
        if not self.children:
            return self.name
        nested = ", ".join(str(child) for child in self.children)
        return f"{self.name} [ {nested} ]"


@dataclass(frozen=True)
class CapturedException:
    """
    An exception attached to a log event, flattened to names and messages.

    Attributes:
        type_name: Qualified name of the exception class (``module.QualName``,
            or the bare name for builtins).
        message: ``str()`` of the exception.
        cause: The exception this one was raised from, if any.
    """

    type_name: str
    message: str
    cause: Optional[CapturedException] = None

    def chain(self) -> Iterator[CapturedException]:
        """Yield this exception followed by its causes, outermost first."""
        current: Optional[CapturedException] = self
        while current is not None:
            yield current
            current = current.cause


@dataclass(frozen=True)
class CapturedEvent:
    """
    Immutable record of one log emission.

    Attributes:
        level: Severity of the event.
        logger_name: Name of the emitting logger (never empty).
        formatted_message: The message after argument substitution.
        context_map: Context bindings active at emission time.
        structured_pairs: Ordered structured key-value pairs.
        markers: Marker trees attached to the event.
        exception: The logged exception chain, if any.
    """

    level: Level
    logger_name: str
    formatted_message: str
    context_map: Mapping[str, str] = field(
        default_factory=dict, hash=False,
    )
    structured_pairs: Tuple[Tuple[str, Any], ...] = field(
        default=(), hash=False,
    )
    markers: Tuple[Marker, ...] = ()
    exception: Optional[CapturedException] = None

    def __post_init__(self) -> None:
        """Validate the logger name and freeze the collection fields."""
        if not self.logger_name:
            raise ValueError("Captured events require a non-empty logger_name")
        object.__setattr__(
            self, "context_map", MappingProxyType(dict(self.context_map)),
        )
        object.__setattr__(
            self,
            "structured_pairs",
            tuple((str(k), v) for k, v in self.structured_pairs),
        )
        object.__setattr__(
            self, "markers", tuple(Marker.of(m) for m in self.markers),
        )

    def has_marker(self, name: str) -> bool:
        """True when any attached marker tree contains *name*."""
        return any(marker.contains(name) for marker in self.markers)
