"""
pytest integration.

Registered through the ``pytest11`` entry point. Provides:

* the ``log_capture`` fixture, a started ``CaptureSession`` that is
  stopped after the test whether it passed or failed,
* the ``log_capture(*prefixes)`` marker selecting captured loggers,
* the ``log_capture_packages`` and ``log_capture_verbosity`` ini options.

Captured prefixes are taken from the marker, else from the ini option,
else from the requesting test module's package.
"""

from __future__ import annotations

from typing import Iterator, List

import pytest

from logcapture.core.session import CaptureSession, package_prefix
from logcapture.utils.logger import SessionLogger, Verbosity

_VERBOSITY_KEY = pytest.StashKey[Verbosity]()


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addini(
        "log_capture_packages",
        type="linelist",
        default=[],
        help="logger name prefixes captured by the log_capture fixture",
    )
    parser.addini(
        "log_capture_verbosity",
        default="silent",
        help="progress output of log capture sessions: silent, normal, verbose or debug",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "log_capture(*prefixes): logger name prefixes captured by the log_capture fixture",
    )
    try:
        verbosity = Verbosity.parse(config.getini("log_capture_verbosity"))
    except ValueError as err:
        raise pytest.UsageError(f"log_capture_verbosity: {err}") from err
    config.stash[_VERBOSITY_KEY] = verbosity


def _prefixes(request: pytest.FixtureRequest) -> List[str]:
    mark = request.node.get_closest_marker("log_capture")
    if mark is not None:
        return list(mark.args)
    configured = request.config.getini("log_capture_packages")
    if configured:
        return list(configured)
    module = request.module
    return [package_prefix(module.__name__, getattr(module, "__package__", None))]


@pytest.fixture
def log_capture(request: pytest.FixtureRequest) -> Iterator[CaptureSession]:
    """A capture session running for the duration of the test."""
    logger = SessionLogger(request.config.stash.get(_VERBOSITY_KEY, Verbosity.SILENT))
    session = CaptureSession.for_packages(*_prefixes(request), logger=logger)
    session.before_each()
    try:
        yield session
    finally:
        session.after_each()
