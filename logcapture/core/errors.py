"""
Error types raised by logcapture.

Two disjoint kinds exist: assertion failures (the expected log output
did not occur) and usage errors (the library was called outside its
contract). Usage errors are programming errors and are never caught
inside the library.
"""

from __future__ import annotations


class LogCaptureError(Exception):
    """Base class for logcapture usage errors."""


class UsageError(LogCaptureError, ValueError):
    """Raised when an argument violates the documented contract."""


class MissingCapabilityError(UsageError):
    """
    Raised when a matcher needs a feature the capturing adapter lacks.

    For example a key-value matcher used with an adapter that cannot
    extract structured key-value pairs from log events.
    """


class SessionStateError(LogCaptureError, RuntimeError):
    """Raised when a capture session is started, stopped or used out of order."""


class LogAssertionError(AssertionError):
    """
    Raised when captured log events do not satisfy an assertion.

    The message is the rendered, multi-line diagnostic.
    """
