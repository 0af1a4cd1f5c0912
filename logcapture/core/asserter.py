"""
Assertion engine over a capture sink.

All assertion modes are built on one scan primitive, ``find_next``:
starting at an index, it returns the first event satisfying an
expectation completely, or else the earliest event satisfying only its
level and message (a partial match), or reports that nothing matched.

Modes:

* single: one expectation anywhere in the buffer,
* in order: expectations matched at strictly increasing indices,
* in any order: each expectation anywhere, but never two on one event,
* count-bounded: the number of complete matches against a policy,
* negative: no complete match at all.

Successful positive assertions return a ``NothingElseLogged`` follow-up
that checks no unasserted events were captured.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, NoReturn, Optional, Sequence, Tuple, Union

from logcapture.core import diagnostics
from logcapture.core.count_policy import CountPolicy
from logcapture.core.errors import LogAssertionError, MissingCapabilityError, UsageError
from logcapture.core.event import CapturedEvent
from logcapture.core.expectation import Expectation
from logcapture.core.matchers import Matcher
from logcapture.core.sink import CaptureSink, EventsView
from logcapture.utils.logger import SessionLogger, Verbosity


# === Scan results ===


@dataclass(frozen=True)
class Found:
    """An event satisfied the expectation completely."""

    index: int


@dataclass(frozen=True)
class PartialAt:
    """No complete match; *event* is the earliest base-only match."""

    index: int
    event: CapturedEvent


@dataclass(frozen=True)
class NotFound:
    """No event satisfied even the level and message."""


MatchResult = Union[Found, PartialAt, NotFound]


class NothingElseLogged:
    """
    Follow-up of a successful assertion.

    Remembers how many events the assertion accounted for and fails
    if the sink holds more than that when checked.
    """

    def __init__(self, sink: CaptureSink, asserted: int) -> None:
        self._sink = sink
        self.asserted: int = asserted

    def assert_nothing_else_logged(self) -> None:
        """
        Assert that no events beyond the asserted ones were captured.

        Raises:
            LogAssertionError: If the sink holds more events.
        """
        if self._sink.count() > self.asserted:
            raise LogAssertionError(diagnostics.NOTHING_ELSE_LOGGED)


class Asserter:
    """
    Runs assertions against a sink, applying optional global matchers.

    Global matchers are prepended to the matchers of every expectation
    asserted through this instance.

    Attributes:
        sink: The capture sink read by assertions.
        global_matchers: Matchers applied to every expectation.
        logger: Output for assertion progress.
    """

    def __init__(
        self,
        sink: CaptureSink,
        global_matchers: Iterable[Matcher] = (),
        logger: Optional[SessionLogger] = None,
    ) -> None:
        """
        Initialize the asserter.

        Args:
            sink: The sink whose events are asserted.
            global_matchers: Matchers applied to every expectation.
            logger: Optional logger for progress output.
        """
        self.sink: CaptureSink = sink
        self.global_matchers: Tuple[Matcher, ...] = tuple(global_matchers)
        self.logger: SessionLogger = logger or SessionLogger(Verbosity.SILENT)

    # ------------------------------------------------------------------ #
    # Scan primitive
    # ------------------------------------------------------------------ #

    def find_next(
        self,
        events: Sequence[CapturedEvent],
        start: int,
        expectation: Expectation,
    ) -> MatchResult:
        """
        Scan *events* from *start* for *expectation*.

        Args:
            events: The events to scan (a stable view of the sink).
            start: First index to consider.
            expectation: The expectation to look for.

        Returns:
            ``Found`` for the first complete match, otherwise ``PartialAt``
            for the earliest base-only match, otherwise ``NotFound``.
        """
        matchers = expectation.combined_matchers(self.global_matchers)
        partial: Optional[PartialAt] = None
        for index in range(start, len(events)):
            event = events[index]
            if not expectation.base_matches(event):
                continue
            if all(m.matches(event) for m in matchers):
                self.logger.scan_result(str(expectation), f"found at index {index}")
                return Found(index)
            if partial is None:
                partial = PartialAt(index, event)
        if partial is not None:
            self.logger.scan_result(
                str(expectation), f"partial match at index {partial.index}",
            )
            return partial
        self.logger.scan_result(str(expectation), "not found")
        return NotFound()

    # ------------------------------------------------------------------ #
    # Assertion modes
    # ------------------------------------------------------------------ #

    def assert_logged(
        self,
        expectation_or_policy: Union[Expectation, CountPolicy],
        expectation: Optional[Expectation] = None,
    ) -> NothingElseLogged:
        """
        Assert that an expected event has been logged.

        Called with a single expectation, at least one event must match
        it. Called with a count policy and an expectation, the number of
        matching events must satisfy the policy.

        Returns:
            Follow-up to assert that nothing else has been logged.

        Raises:
            LogAssertionError: If the assertion does not hold.
            UsageError: If the arguments do not fit either form.
        """
        if isinstance(expectation_or_policy, CountPolicy):
            if expectation is None:
                raise UsageError("assert_logged() with a count policy needs an expectation")
            return self._assert_count(expectation_or_policy, expectation)
        if expectation is not None:
            raise UsageError(
                "assert_logged() takes one expectation (optionally preceded by a "
                "count policy); use assert_logged_in_order() or "
                "assert_logged_in_any_order() for several"
            )
        single = self._require_expectation(expectation_or_policy)
        events = self._snapshot([single])
        self._resolve(events, 0, single)
        return NothingElseLogged(self.sink, 1)

    def assert_logged_in_order(self, *expectations: Expectation) -> NothingElseLogged:
        """
        Assert that events matching *expectations* were logged in this order.

        Each expectation is searched after the event matched by the
        previous one, so matched indices are strictly increasing.

        Raises:
            LogAssertionError: If an expectation is not matched in order.
            UsageError: If fewer than two expectations are given.
        """
        self._require_at_least_two("assert_logged_in_order", expectations)
        events = self._snapshot(expectations)
        cursor = 0
        for expectation in expectations:
            cursor = self._resolve(events, cursor, expectation) + 1
        return NothingElseLogged(self.sink, len(expectations))

    def assert_logged_in_any_order(self, *expectations: Expectation) -> NothingElseLogged:
        """
        Assert that events matching *expectations* were logged in any order.

        Every expectation is searched over the whole buffer. Two
        expectations matching the same event is an error, since the
        asserted count would otherwise overstate what was verified.

        Raises:
            LogAssertionError: If an expectation is not matched or two
                expectations matched the same event.
            UsageError: If fewer than two expectations are given.
        """
        self._require_at_least_two("assert_logged_in_any_order", expectations)
        events = self._snapshot(expectations)
        matched: Dict[int, Expectation] = {}
        for expectation in expectations:
            index = self._resolve(events, 0, expectation)
            previous = matched.get(index)
            if previous is not None:
                self._fail(diagnostics.render_imprecise(
                    previous,
                    previous.combined_matchers(self.global_matchers),
                    expectation,
                    expectation.combined_matchers(self.global_matchers),
                ))
            matched[index] = expectation
        return NothingElseLogged(self.sink, len(expectations))

    def assert_not_logged(self, *expectations: Expectation) -> None:
        """
        Assert that no event matches any of *expectations*.

        Raises:
            LogAssertionError: If some event matches an expectation.
            UsageError: If no expectation is given.
        """
        if not expectations:
            raise UsageError(diagnostics.render_too_few_expectations(
                "assert_not_logged", "at least one expectation is", expectations,
            ))
        for expectation in expectations:
            self._require_expectation(expectation)
        events = self._snapshot(expectations)
        for expectation in expectations:
            matchers = expectation.combined_matchers(self.global_matchers)
            if self._count(events, expectation, matchers)[0] > 0:
                self._fail(diagnostics.render_not_logged(expectation, matchers))

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _assert_count(
        self, policy: CountPolicy, expectation: Expectation,
    ) -> NothingElseLogged:
        self._require_expectation(expectation)
        events = self._snapshot([expectation])
        matchers = expectation.combined_matchers(self.global_matchers)
        full, base = self._count(events, expectation, matchers)
        self.logger.statistics({
            "expectation": str(expectation),
            "full_matches": full,
            "base_matches": base,
        })
        if not policy.accepts(full):
            self._fail(diagnostics.render_count_mismatch(
                policy, expectation, matchers, full, base,
            ))
        return NothingElseLogged(self.sink, full)

    @staticmethod
    def _count(
        events: Sequence[CapturedEvent],
        expectation: Expectation,
        matchers: Sequence[Matcher],
    ) -> Tuple[int, int]:
        """Return (complete matches, base-only matches) over *events*."""
        full = base = 0
        for event in events:
            if expectation.base_matches(event):
                base += 1
                if all(m.matches(event) for m in matchers):
                    full += 1
        return full, base

    def _resolve(
        self, events: Sequence[CapturedEvent], start: int, expectation: Expectation,
    ) -> int:
        """Return the index found for *expectation* or fail with a diagnostic."""
        result = self.find_next(events, start, expectation)
        if isinstance(result, Found):
            return result.index
        matchers = expectation.combined_matchers(self.global_matchers)
        if isinstance(result, PartialAt):
            rejecting = [m for m in matchers if not m.matches(result.event)]
            self._fail(diagnostics.render_partial_match(
                expectation, result.event, rejecting,
            ))
        self._fail(diagnostics.render_not_found(expectation, matchers))

    def _snapshot(self, expectations: Iterable[Expectation]) -> EventsView:
        """Check capabilities of all involved matchers and take a read view."""
        for expectation in expectations:
            for matcher in expectation.combined_matchers(self.global_matchers):
                capability = matcher.required_capability
                if capability is not None and not self.sink.supports(capability):
                    raise MissingCapabilityError(
                        f"{matcher.constructor_name}() cannot be used for log "
                        "assertions because the capturing adapter does not provide "
                        f"{capability.description}."
                    )
        return self.sink.events()

    @staticmethod
    def _require_expectation(value: object) -> Expectation:
        if not isinstance(value, Expectation):
            raise UsageError(
                f"expected an Expectation, got {type(value).__name__}: {value!r}"
            )
        return value

    def _require_at_least_two(
        self, method: str, expectations: Sequence[Expectation],
    ) -> None:
        if len(expectations) < 2:
            raise UsageError(diagnostics.render_too_few_expectations(
                method, "at least 2 expectations are", expectations,
            ))
        for expectation in expectations:
            self._require_expectation(expectation)

    def _fail(self, message: str) -> NoReturn:
        self.logger.assertion_failed(message.splitlines()[0])
        raise LogAssertionError(message)
