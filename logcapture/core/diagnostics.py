"""
Rendering of assertion failure messages.

All functions here are pure: they turn expectations, matchers and
captured events into the multi-line text carried by
``LogAssertionError``. The wording, indentation and punctuation are
stable because users match on these strings in their own tests.
Every multi-line message ends with a newline.
"""

from __future__ import annotations

from typing import List, Sequence

from logcapture.core.count_policy import CountPolicy
from logcapture.core.event import CapturedEvent
from logcapture.core.expectation import Expectation
from logcapture.core.matchers import Matcher

NOTHING_ELSE_LOGGED = "There have been other log messages than the asserted ones."

IMPRECISE_MATCHING = (
    "Imprecise matching: Two log expectations have matched the same message. "
    "Use more precise matching or in-order matching."
)


def describe_expectation(expectation: Expectation) -> str:
    """Return the ``message: ...`` line for *expectation* (no newline)."""
    return f"message: {expectation}"


def describe_matchers(matchers: Sequence[Matcher]) -> str:
    """
    Return the ``with additional matchers:`` block for *matchers*.

    Returns an empty string when there are no matchers.
    """
    if not matchers:
        return ""
    lines = ["  with additional matchers:"]
    lines.extend(f"  - {m.describe()}" for m in matchers)
    return "\n".join(lines) + "\n"


def describe_full(expectation: Expectation, matchers: Sequence[Matcher]) -> str:
    """Expectation line plus its additional matchers, newline-terminated."""
    return describe_expectation(expectation) + "\n" + describe_matchers(matchers)


def render_partial_match(
    expectation: Expectation,
    event: CapturedEvent,
    rejecting: Sequence[Matcher],
) -> str:
    """
    Render the failure for an event that matched level and message only.

    Each rejecting matcher contributes its one-line description followed
    by its mismatch narration against *event*.

    Args:
        expectation: The expectation that was asserted.
        event: The earliest event satisfying the base match.
        rejecting: The additional matchers that reject *event*, in order.
            The header names the first of them.
    """
    lines: List[str] = [
        "Expected log message has occurred, but never with the expected "
        f"{rejecting[0].type_label()}:",
        describe_expectation(expectation),
    ]
    for matcher in rejecting:
        lines.append("  " + matcher.describe())
        lines.append(matcher.render_mismatch(event))
    return "\n".join(lines) + "\n"


def render_not_found(expectation: Expectation, matchers: Sequence[Matcher]) -> str:
    """Render the failure for an expectation no event matched even partially."""
    return "Expected log message has not occurred.\n" + describe_full(expectation, matchers)


def render_imprecise(
    first: Expectation,
    first_matchers: Sequence[Matcher],
    second: Expectation,
    second_matchers: Sequence[Matcher],
) -> str:
    """Render the failure for two expectations matching the same event."""
    return (
        IMPRECISE_MATCHING + "\n"
        + "-- First match:\n"
        + describe_full(first, first_matchers)
        + "-- Second match:\n"
        + describe_full(second, second_matchers)
    )


def render_not_logged(expectation: Expectation, matchers: Sequence[Matcher]) -> str:
    """Render the failure for an event that should not have been logged."""
    return (
        "Found a log message that should not be logged.\n"
        + describe_full(expectation, matchers)
    )


def render_count_mismatch(
    policy: CountPolicy,
    expectation: Expectation,
    matchers: Sequence[Matcher],
    full_matches: int,
    base_matches: int,
) -> str:
    """
    Render the failure of a count-bounded assertion.

    Args:
        policy: The violated count policy.
        expectation: The asserted expectation.
        matchers: All additional matchers (global and local).
        full_matches: Events satisfying the expectation completely.
        base_matches: Events satisfying level and message only.
    """
    occurrences = f"actual occurrences: {full_matches}"
    if base_matches != full_matches:
        occurrences += f" ({base_matches} without additional matchers)"
    return (
        f"Expected log message has not occurred {policy}\n"
        + occurrences + "\n"
        + describe_full(expectation, matchers)
    )


def render_too_few_expectations(
    method: str, required: str, expectations: Sequence[Expectation],
) -> str:
    """Render the usage error for a call with too few expectations."""
    found = ", ".join(str(e) for e in expectations) if expectations else "none"
    return f"{required} required for {method}(). Found {found}"
