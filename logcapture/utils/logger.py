"""
Progress output for capture sessions.

The library never writes through the ``logging`` module it captures,
since its own records would land in the buffer under test. Progress is
written to a plain text stream instead, filtered by a verbosity level.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import Any, Dict, Iterable, Optional, TextIO


class Verbosity(Enum):
    """
    Output levels for a capture session.

    SILENT:  No output at all.
    NORMAL:  Assertion failures only.
    VERBOSE: Session lifecycle and statistics.
    DEBUG:   Per-event and per-scan output.
    """

    SILENT = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3

    @classmethod
    def parse(cls, value: str) -> Verbosity:
        """
        Look up a verbosity by case-insensitive name.

        Raises:
            ValueError: If *value* names no verbosity.
        """
        try:
            return cls[value.strip().upper()]
        except KeyError:
            names = ", ".join(v.name.lower() for v in cls)
            raise ValueError(
                f"unknown verbosity {value!r}; expected one of: {names}"
            ) from None


class SessionLogger:
    """
    Writes capture-session progress to a stream.

    Attributes:
        level: The minimum verbosity to display.
        stream: The output stream (defaults to stderr).
    """

    def __init__(
        self,
        level: Verbosity = Verbosity.SILENT,
        stream: Optional[TextIO] = None,
    ) -> None:
        """
        Initialize logger with verbosity and output stream.

        Args:
            level: Minimum verbosity to display.
            stream: Output stream; ``sys.stderr`` at write time if None.
        """
        self.level: Verbosity = level
        self.stream: Optional[TextIO] = stream

    def enabled(self, level: Verbosity) -> bool:
        """True when messages at *level* are written."""
        return self.level is not Verbosity.SILENT and self.level.value >= level.value

    def session_started(self, prefixes: Iterable[str]) -> None:
        """Log the start of a capture session at VERBOSE level."""
        if self.enabled(Verbosity.VERBOSE):
            self._write(f"[SESSION] capturing {', '.join(sorted(prefixes))}")

    def session_stopped(self, captured: int) -> None:
        """Log the end of a capture session at VERBOSE level."""
        if self.enabled(Verbosity.VERBOSE):
            self._write(f"[SESSION] stopped after {captured} event(s)")

    def event_captured(self, logger_name: str, level: Any, message: str) -> None:
        """Log one captured event at DEBUG level."""
        if self.enabled(Verbosity.DEBUG):
            self._write(f"[EVENT] {level} {logger_name}: {message}")

    def scan_result(self, expectation: str, outcome: str) -> None:
        """Log the outcome of one buffer scan at DEBUG level."""
        if self.enabled(Verbosity.DEBUG):
            self._write(f"[SCAN] {expectation}: {outcome}")

    def assertion_failed(self, headline: str) -> None:
        """Log a failed assertion (shown at NORMAL level and above)."""
        if self.enabled(Verbosity.NORMAL):
            self._write(f"FAILED: {headline}")

    def statistics(self, stats: Dict[str, Any]) -> None:
        """
        Log statistics (shown at VERBOSE level and above).

        Args:
            stats: Dictionary of statistic names to values.
        """
        if self.enabled(Verbosity.VERBOSE):
            self._write("=== Statistics ===")
            for key, value in stats.items():
                label = key.replace("_", " ").title()
                self._write(f"  {label}: {value}")

    def _write(self, message: str) -> None:
        """Write a line to the output stream."""
        stream = self.stream if self.stream is not None else sys.stderr
        stream.write(message + "\n")
