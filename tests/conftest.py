"""
Shared pytest fixtures for the logcapture test suite.

Provides a started capture session over the ``logcapture_tests`` logger
namespace, loggers inside and outside that namespace, and a reset of
structlog context bindings around every test.
"""

import logging
from typing import Iterator

import pytest
import structlog

from logcapture.core.session import CaptureSession

pytest_plugins = ["pytester"]

TEST_NAMESPACE = "logcapture_tests"


@pytest.fixture
def capture() -> Iterator[CaptureSession]:
    """A started session capturing the ``logcapture_tests`` namespace."""
    session = CaptureSession.for_packages(TEST_NAMESPACE)
    session.start()
    try:
        yield session
    finally:
        session.stop()


@pytest.fixture
def app_logger() -> logging.Logger:
    """A logger inside the captured namespace."""
    return logging.getLogger(f"{TEST_NAMESPACE}.app")


@pytest.fixture
def other_logger() -> logging.Logger:
    """A logger outside the captured namespace."""
    return logging.getLogger("unrelated.component")


@pytest.fixture(autouse=True)
def clear_context() -> Iterator[None]:
    """Leave no structlog context bindings behind between tests."""
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()

