"""
Matchers over captured log events.

Every matcher is an immutable value that answers one question about a
``CapturedEvent`` and knows how to talk about itself in diagnostics:

* ``matches(event)`` is the predicate,
* ``type_label()`` names the aspect checked ("MDC value", "marker name"),
* ``describe()`` is a one-line summary of the expected side,
* ``render_mismatch(event)`` narrates the expected side against what was
  captured, as lines indented by two spaces.

Matchers that read an optional event field declare the adapter
capability they need so the asserter can refuse them up front.
"""

from __future__ import annotations

import numbers
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from logcapture.core.errors import UsageError
from logcapture.core.event import (
    CapturedEvent,
    CapturedException,
    Level,
    qualified_type_name,
    resolve_type_name,
)
from logcapture.core.sink import Capability

_TEXT_FLAGS = re.DOTALL | re.MULTILINE


def compile_wrapped(regex: str, flags: int = 0) -> re.Pattern[str]:
    """
    Compile *regex* padded with ``.*`` on both sides.

    The result is meant for ``fullmatch`` so that the user's expression
    may match anywhere in the text.

    Raises:
        UsageError: If the expression does not compile.
    """
    try:
        return re.compile(f".*{regex}.*", flags)
    except re.error as err:
        raise UsageError(f'invalid regular expression "{regex}": {err}') from err


class Matcher(ABC):
    """
    Base class for all event matchers.

    Attributes:
        required_capability: Adapter capability the matcher reads, if any.
        constructor_name: DSL function that builds the matcher, used in
            usage error messages.
    """

    required_capability: Optional[Capability] = None
    constructor_name: str = "matcher"

    @abstractmethod
    def matches(self, event: CapturedEvent) -> bool:
        """True when *event* satisfies this matcher."""

    @abstractmethod
    def type_label(self) -> str:
        """Short name of the checked aspect, e.g. ``"marker name"``."""

    @abstractmethod
    def describe(self) -> str:
        """One-line description of what is expected."""

    @abstractmethod
    def render_mismatch(self, event: CapturedEvent) -> str:
        """Expected-versus-captured narration for a rejected *event*."""


# === Base matchers (level and message) ===


@dataclass(frozen=True)
class LevelMatcher(Matcher):
    """Matches events of exactly one level."""

    level: Level

    constructor_name = "level"

    def matches(self, event: CapturedEvent) -> bool:
        return event.level is self.level

    def type_label(self) -> str:
        return "level"

    def describe(self) -> str:
        return f"level: {self.level}"

    def render_mismatch(self, event: CapturedEvent) -> str:
        return (
            f"  expected level: {self.level}\n"
            f"  captured level: {event.level}"
        )


@dataclass(frozen=True)
class MessageRegex(Matcher):
    """
    Matches the formatted message against a regular expression.

    The expression is padded with ``.*`` and compiled with DOTALL and
    MULTILINE, so it may match anywhere in a multi-line message. An
    empty expression matches every message.
    """

    regex: str
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    constructor_name = "message"

    def __post_init__(self) -> None:
        object.__setattr__(self, "_pattern", compile_wrapped(self.regex, _TEXT_FLAGS))

    def matches(self, event: CapturedEvent) -> bool:
        return self._pattern.fullmatch(event.formatted_message) is not None

    def type_label(self) -> str:
        return "message"

    def describe(self) -> str:
        return f'"{self.regex}" (regex)'

    def render_mismatch(self, event: CapturedEvent) -> str:
        return (
            f'  expected message (regex): "{self.regex}"\n'
            f'  captured message: "{event.formatted_message}"'
        )


# === Additional matchers ===


@dataclass(frozen=True)
class LoggerNameRegex(Matcher):
    """Matches the emitting logger's name against a padded regular expression."""

    regex: str
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    constructor_name = "logger"

    def __post_init__(self) -> None:
        object.__setattr__(self, "_pattern", compile_wrapped(self.regex))

    def matches(self, event: CapturedEvent) -> bool:
        return self._pattern.fullmatch(event.logger_name) is not None

    def type_label(self) -> str:
        return "logger name"

    def describe(self) -> str:
        return f'logger name (regex): "{self.regex}"'

    def render_mismatch(self, event: CapturedEvent) -> str:
        return (
            f'  expected logger name (regex): "{self.regex}"\n'
            f'  actual logger name: "{event.logger_name}"'
        )


ContextPredicate = Callable[[str], bool]


@dataclass(frozen=True)
class ContextEntry(Matcher):
    """
    Matches a context (MDC) binding by key and value.

    The value check is either a padded regular expression or a custom
    predicate over the captured value. A missing key never matches.

    Attributes:
        key: The context key that must be present.
        regex: Regular expression for the value, or None.
        predicate: Custom value check, or None.
    """

    key: str
    regex: Optional[str] = None
    predicate: Optional[ContextPredicate] = None
    _pattern: Optional[re.Pattern[str]] = field(
        init=False, repr=False, compare=False, default=None,
    )

    required_capability = Capability.CONTEXT_MAP
    constructor_name = "mdc"

    def __post_init__(self) -> None:
        if (self.regex is None) == (self.predicate is None):
            raise UsageError("mdc() needs either a value regex or a predicate")
        if self.regex is not None:
            object.__setattr__(
                self, "_pattern", compile_wrapped(self.regex, _TEXT_FLAGS),
            )

    def matches(self, event: CapturedEvent) -> bool:
        if self.key not in event.context_map:
            return False
        value = event.context_map[self.key]
        if self._pattern is not None:
            return self._pattern.fullmatch(value) is not None
        return bool(self.predicate(value))

    def type_label(self) -> str:
        return "MDC value"

    def describe(self) -> str:
        return f'MDC value with key: "{self.key}"'

    def render_mismatch(self, event: CapturedEvent) -> str:
        lines = [
            f'  captured message: "{event.formatted_message}"',
            f"  expected MDC key: {self.key}",
        ]
        if self.regex is not None:
            lines.append(f'  expected MDC value: ".*{self.regex}.*"')
        else:
            lines.append("  expected MDC value: <custom predicate>")
        lines.append("  captured MDC values:")
        for key in sorted(event.context_map):
            lines.append(f'    {key}: "{event.context_map[key]}"')
        return "\n".join(lines)


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def values_equal(expected: Any, actual: Any) -> bool:
    """
    Compare a structured value the way key-value matching does.

    Numbers are equal only to numbers with the same default string form,
    so ``2`` matches ``Decimal("2")`` but neither ``2.0`` nor
    ``Decimal("2.00")``. Everything else compares by identity or ``==``.
    """
    if _is_number(expected) or _is_number(actual):
        return _is_number(expected) and _is_number(actual) and str(expected) == str(actual)
    return expected is actual or expected == actual


@dataclass(frozen=True)
class StructuredPair(Matcher):
    """Matches when any structured pair has the key and an equal value."""

    key: str
    value: Any

    required_capability = Capability.STRUCTURED_PAIRS
    constructor_name = "key_value"

    def __post_init__(self) -> None:
        if self.key is None or self.value is None:
            raise UsageError("key and value are required for key-value log assertion")

    def matches(self, event: CapturedEvent) -> bool:
        return any(
            key == self.key and values_equal(self.value, value)
            for key, value in event.structured_pairs
        )

    def type_label(self) -> str:
        return "key-value pair"

    def describe(self) -> str:
        return f"key-value pair ({self.key}, {self.value})"

    def render_mismatch(self, event: CapturedEvent) -> str:
        pairs = ", ".join(f"({k}, {v})" for k, v in event.structured_pairs)
        return (
            f"  expected key-value pair ({self.key}, {self.value})\n"
            f"  actual pairs: [{pairs}]"
        )


@dataclass(frozen=True)
class MarkerName(Matcher):
    """Matches when any attached marker tree contains the name, at any depth."""

    name: str

    required_capability = Capability.MARKERS
    constructor_name = "marker"

    def matches(self, event: CapturedEvent) -> bool:
        return event.has_marker(self.name)

    def type_label(self) -> str:
        return "marker name"

    def describe(self) -> str:
        return f'marker name: "{self.name}"'

    def render_mismatch(self, event: CapturedEvent) -> str:
        expected = f'  expected marker name: "{self.name}"\n'
        if not event.markers:
            return expected + "  but no marker was found"
        actual = ", ".join(str(m) for m in event.markers)
        return expected + f'  actual marker names: "[{actual}]"'


ExpectedType = Union[type, str]


@dataclass(frozen=True)
class ExpectedException(Matcher):
    """
    Matches the exception chain of an event.

    Every part is optional; an absent part matches anything, but an
    event without an exception never matches.

    Attributes:
        message_regex: Padded regular expression for the exception message.
        expected_type: Expected class (subclasses match) or dotted name.
        cause: Expectation for the exception's cause.
    """

    message_regex: Optional[str] = None
    expected_type: Optional[ExpectedType] = None
    cause: Optional[ExpectedException] = None
    _pattern: Optional[re.Pattern[str]] = field(
        init=False, repr=False, compare=False, default=None,
    )

    constructor_name = "exception"

    def __post_init__(self) -> None:
        if self.message_regex is not None:
            object.__setattr__(
                self, "_pattern", compile_wrapped(self.message_regex, _TEXT_FLAGS),
            )

    def matches(self, event: CapturedEvent) -> bool:
        return self.matches_exception(event.exception)

    def matches_exception(self, actual: Optional[CapturedException]) -> bool:
        """True when *actual* (possibly absent) satisfies this expectation."""
        if actual is None:
            return False
        if self._pattern is not None and self._pattern.fullmatch(actual.message) is None:
            return False
        if not self._type_matches(actual.type_name):
            return False
        return self.cause is None or self.cause.matches_exception(actual.cause)

    @property
    def expected_type_name(self) -> Optional[str]:
        """The expected type as recorded in captured exceptions."""
        if self.expected_type is None:
            return None
        if isinstance(self.expected_type, type):
            return qualified_type_name(self.expected_type)
        return self.expected_type

    def _type_matches(self, type_name: str) -> bool:
        if self.expected_type is None:
            return True
        expected = self.expected_type
        if not isinstance(expected, type):
            expected = resolve_type_name(expected)
        actual = resolve_type_name(type_name)
        if isinstance(expected, type) and actual is not None:
            return issubclass(actual, expected)
        return self.expected_type_name == type_name

    def type_label(self) -> str:
        return "Exception"

    def describe(self) -> str:
        return f"Exception: {self}"

    def render_mismatch(self, event: CapturedEvent) -> str:
        return (
            f"  expected exception: {self}\n"
            f"  actual exception: {render_captured_exception(event.exception)}"
        )

    def __str__(self) -> str:
        parts = []
        if self.message_regex is not None:
            parts.append(f'message (regex): "{self.message_regex}"')
        if self.expected_type is not None:
            parts.append(f"type: {self.expected_type_name}")
        if self.cause is not None:
            parts.append(f"cause: ({self.cause})")
        return " ".join(parts) if parts else "<any exception>"


def render_captured_exception(exception: Optional[CapturedException]) -> str:
    """Render a captured exception chain on one line."""
    if exception is None:
        return "(none)"
    text = f'message: "{exception.message}", type: {exception.type_name}'
    if exception.cause is not None:
        text += f", cause: ({render_captured_exception(exception.cause)})"
    return text


EventPredicate = Callable[[CapturedEvent], bool]


@dataclass(frozen=True)
class CustomMatcher(Matcher):
    """
    Matches events with a user-supplied predicate.

    Attributes:
        predicate: Callable receiving the captured event.
        description: What the predicate checks, shown in diagnostics.
        label: Type label shown in the partial-match header.
    """

    predicate: EventPredicate
    description: str
    label: str = "custom condition"

    constructor_name = "custom"

    def matches(self, event: CapturedEvent) -> bool:
        return bool(self.predicate(event))

    def type_label(self) -> str:
        return self.label

    def describe(self) -> str:
        return self.description

    def render_mismatch(self, event: CapturedEvent) -> str:
        return (
            f"  expected {self.label}: {self.description}\n"
            f'  captured message: "{event.formatted_message}"'
        )
