"""
Quantifiers over the number of events matching an expectation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from logcapture.core.errors import UsageError


class Comparator(Enum):
    """How the number of matches is compared to the reference value."""

    EQUAL = "exactly"
    AT_LEAST = "at least"
    AT_MOST = "at most"

    @property
    def phrase(self) -> str:
        """The wording used in diagnostics."""
        return self.value


@dataclass(frozen=True)
class CountPolicy:
    """
    Expected number of occurrences of a log event.

    Use the factories (``exactly``, ``at_least``, ``at_most``, ``once``)
    rather than the constructor; they enforce the valid ranges.

    Attributes:
        comparator: Comparison applied to the actual count.
        reference: The number compared against.
    """

    comparator: Comparator
    reference: int

    @classmethod
    def exactly(cls, times: int) -> CountPolicy:
        """
        Expect exactly *times* occurrences.

        ``assert_not_logged`` reads better than ``exactly(0)`` for
        asserting that something was never logged.

        Raises:
            UsageError: If *times* is negative.
        """
        if times < 0:
            raise UsageError(
                "Number of log message occurrences that are expected must be positive."
            )
        return cls(Comparator.EQUAL, times)

    @classmethod
    def at_least(cls, minimum: int) -> CountPolicy:
        """
        Expect *minimum* or more occurrences.

        Raises:
            UsageError: If *minimum* is less than 1.
        """
        if minimum < 1:
            raise UsageError(
                "Minimum number of log message occurrences that are expected "
                "must be greater than 0."
            )
        return cls(Comparator.AT_LEAST, minimum)

    @classmethod
    def at_most(cls, maximum: int) -> CountPolicy:
        """
        Expect *maximum* or fewer occurrences.

        Raises:
            UsageError: If *maximum* is negative.
        """
        if maximum < 0:
            raise UsageError(
                "Maximum number of log message occurrences that are expected "
                "must not be negative."
            )
        return cls(Comparator.AT_MOST, maximum)

    @classmethod
    def once(cls) -> CountPolicy:
        """Expect exactly one occurrence."""
        return cls(Comparator.EQUAL, 1)

    def accepts(self, count: int) -> bool:
        """True when *count* occurrences satisfy this policy."""
        if self.comparator is Comparator.EQUAL:
            return count == self.reference
        if self.comparator is Comparator.AT_LEAST:
            return count >= self.reference
        return count <= self.reference

    def __str__(self) -> str:
        return f"{self.comparator.phrase} {self.reference} time(s)"
