"""
logcapture: assertions on log output in tests.

Captures the events emitted through the standard library ``logging``
package by selected loggers while a test runs, and asserts that
expected events were (or were not) logged, in order, in any order or a
given number of times, with readable failure diagnostics.
"""

from logcapture.core.errors import (
    LogAssertionError,
    LogCaptureError,
    MissingCapabilityError,
    SessionStateError,
    UsageError,
)
from logcapture.core.event import CapturedEvent, CapturedException, Level, Marker
from logcapture.core.session import CaptureSession

__version__ = "0.1.0"

__all__ = [
    "CaptureSession",
    "CapturedEvent",
    "CapturedException",
    "Level",
    "LogAssertionError",
    "LogCaptureError",
    "Marker",
    "MissingCapabilityError",
    "SessionStateError",
    "UsageError",
]
