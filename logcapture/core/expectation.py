"""
Description of one expected log event.

An expectation combines an optional level, an optional message regular
expression and an ordered list of additional matchers. The level and
message form the *base match*; an event that satisfies the base match
but not every additional matcher is a *partial match*, which drives the
more detailed failure diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

from logcapture.core.errors import UsageError
from logcapture.core.event import CapturedEvent, Level
from logcapture.core.matchers import LevelMatcher, Matcher, MessageRegex


@dataclass(frozen=True)
class Expectation:
    """
    Immutable description of an expected event.

    Attributes:
        level: Expected level, or None for any level.
        message_regex: Expected message expression, or None for any message.
        matchers: Additional matchers, in the order given.
    """

    level: Optional[Level] = None
    message_regex: Optional[str] = None
    matchers: Tuple[Matcher, ...] = ()
    _level_matcher: Optional[LevelMatcher] = field(
        init=False, repr=False, compare=False, default=None,
    )
    _message_matcher: Optional[MessageRegex] = field(
        init=False, repr=False, compare=False, default=None,
    )

    def __post_init__(self) -> None:
        """Validate matchers and prepare the base-match matchers."""
        matchers = tuple(self.matchers)
        for matcher in matchers:
            if not isinstance(matcher, Matcher):
                raise UsageError(
                    f"expected a matcher, got {type(matcher).__name__}: {matcher!r}"
                )
        object.__setattr__(self, "matchers", matchers)
        if self.level is not None:
            object.__setattr__(self, "_level_matcher", LevelMatcher(self.level))
        if self.message_regex is not None:
            object.__setattr__(self, "_message_matcher", MessageRegex(self.message_regex))

    # ------------------------------------------------------------------ #
    # Matching
    # ------------------------------------------------------------------ #

    def base_matches(self, event: CapturedEvent) -> bool:
        """True when *event* has the expected level and message."""
        if self._level_matcher is not None and not self._level_matcher.matches(event):
            return False
        if self._message_matcher is not None and not self._message_matcher.matches(event):
            return False
        return True

    def combined_matchers(self, global_matchers: Iterable[Matcher] = ()) -> Tuple[Matcher, ...]:
        """Return *global_matchers* followed by this expectation's matchers."""
        return tuple(global_matchers) + self.matchers

    def matches(
        self, event: CapturedEvent, global_matchers: Sequence[Matcher] = (),
    ) -> bool:
        """True when *event* satisfies the base match and every matcher."""
        return self.base_matches(event) and all(
            m.matches(event) for m in self.combined_matchers(global_matchers)
        )

    def __str__(self) -> str:
        level = str(self.level) if self.level is not None else "<any level>"
        if self._message_matcher is not None:
            return f"{level} {self._message_matcher.describe()}"
        return f"{level} <any message>"
