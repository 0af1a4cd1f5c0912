"""
Expectation and matcher constructors for log assertions.

Intended for star or selective import in tests::

    from logcapture.dsl import info, warn, mdc, exception, exactly

    capture.assert_logged(info("started", mdc("request_id", "42")))
    capture.assert_logged(exactly(2), warn("retrying"))

Level constructors take an optional message regular expression followed
by any number of matchers. When the first argument is already a
matcher, the message is left unconstrained.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Callable, Optional, Union

from logcapture.core.count_policy import CountPolicy
from logcapture.core.errors import UsageError
from logcapture.core.event import CapturedEvent, Level
from logcapture.core.expectation import Expectation
from logcapture.core.matchers import (
    ContextEntry,
    CustomMatcher,
    ExpectedException,
    ExpectedType,
    LoggerNameRegex,
    MarkerName,
    Matcher,
    StructuredPair,
)

__all__ = [
    "trace",
    "debug",
    "info",
    "warn",
    "error",
    "any_level",
    "mdc",
    "key_value",
    "marker",
    "logger",
    "exception",
    "custom",
    "exactly",
    "times",
    "at_least",
    "at_most",
    "once",
]

RegexOrMatcher = Union[str, Matcher, None]


def _expectation(
    level: Optional[Level], regex: RegexOrMatcher, matchers: tuple,
) -> Expectation:
    if isinstance(regex, Matcher):
        return Expectation(level, None, (regex,) + matchers)
    if regex is not None and not isinstance(regex, str):
        raise UsageError(
            f"expected a message regex or a matcher, got {type(regex).__name__}: {regex!r}"
        )
    return Expectation(level, regex, matchers)


# === Expectations ===


def trace(regex: RegexOrMatcher = None, *matchers: Matcher) -> Expectation:
    """Expect a TRACE event."""
    return _expectation(Level.TRACE, regex, matchers)


def debug(regex: RegexOrMatcher = None, *matchers: Matcher) -> Expectation:
    """Expect a DEBUG event."""
    return _expectation(Level.DEBUG, regex, matchers)


def info(regex: RegexOrMatcher = None, *matchers: Matcher) -> Expectation:
    """Expect an INFO event."""
    return _expectation(Level.INFO, regex, matchers)


def warn(regex: RegexOrMatcher = None, *matchers: Matcher) -> Expectation:
    """Expect a WARN event (``logging.WARNING``)."""
    return _expectation(Level.WARN, regex, matchers)


def error(regex: RegexOrMatcher = None, *matchers: Matcher) -> Expectation:
    """Expect an ERROR event (``logging.ERROR`` or ``logging.CRITICAL``)."""
    return _expectation(Level.ERROR, regex, matchers)


def any_level(regex: RegexOrMatcher = None, *matchers: Matcher) -> Expectation:
    """Expect an event of any level."""
    return _expectation(None, regex, matchers)


# === Matchers ===


def mdc(key: str, value: Union[str, Callable[[str], bool]]) -> ContextEntry:
    """
    Match a context binding.

    Args:
        key: Context key that must be bound.
        value: Regular expression for the bound value, or a predicate
            receiving the value.
    """
    if callable(value):
        return ContextEntry(key, predicate=value)
    return ContextEntry(key, regex=value)


def key_value(key: str, value: Any) -> StructuredPair:
    """Match a structured key-value pair passed through ``extra=``."""
    return StructuredPair(key, value)


def marker(name: str) -> MarkerName:
    """Match events carrying a marker called *name* at any depth."""
    return MarkerName(name)


def logger(regex: str) -> LoggerNameRegex:
    """Match the emitting logger's name."""
    return LoggerNameRegex(regex)


def custom(
    predicate: Callable[[CapturedEvent], bool],
    description: str,
    type_label: str = "custom condition",
) -> CustomMatcher:
    """
    Match events with an arbitrary predicate.

    Args:
        predicate: Called with each candidate ``CapturedEvent``.
        description: What the predicate checks, shown in failures.
        type_label: Name of the checked aspect in the failure header.
    """
    return CustomMatcher(predicate, description, type_label)


@dataclass(frozen=True)
class ExceptionBuilder:
    """
    Fluent builder for exception matchers.

    Each step returns a new builder; ``build()`` produces the matcher.
    """

    _message_regex: Optional[str] = None
    _type: Optional[ExpectedType] = None
    _cause: Optional[ExpectedException] = None

    def message_regex(self, regex: str) -> ExceptionBuilder:
        """Expect the exception message to match *regex*."""
        return replace(self, _message_regex=regex)

    def type(self, expected: ExpectedType) -> ExceptionBuilder:
        """Expect the exception to be an instance of *expected* (class or dotted name)."""
        return replace(self, _type=expected)

    def cause(self, expected: Union[ExpectedException, ExceptionBuilder]) -> ExceptionBuilder:
        """Expect the exception's cause to match *expected*."""
        if isinstance(expected, ExceptionBuilder):
            expected = expected.build()
        if not isinstance(expected, ExpectedException):
            raise UsageError(
                f"cause() expects an exception matcher, got {type(expected).__name__}"
            )
        return replace(self, _cause=expected)

    def build(self) -> ExpectedException:
        """Return the exception matcher."""
        return ExpectedException(self._message_regex, self._type, self._cause)


def exception() -> ExceptionBuilder:
    """Start building an exception matcher."""
    return ExceptionBuilder()


# === Count policies ===


def exactly(times: int) -> CountPolicy:
    """Expect exactly *times* matching events."""
    return CountPolicy.exactly(times)


def times(count: int) -> CountPolicy:
    """Alias of ``exactly``."""
    return CountPolicy.exactly(count)


def at_least(minimum: int) -> CountPolicy:
    """Expect *minimum* or more matching events."""
    return CountPolicy.at_least(minimum)


def at_most(maximum: int) -> CountPolicy:
    """Expect at most *maximum* matching events."""
    return CountPolicy.at_most(maximum)


def once() -> CountPolicy:
    """Expect exactly one matching event."""
    return CountPolicy.once()
