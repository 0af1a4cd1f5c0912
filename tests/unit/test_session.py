"""
Tests for capture sessions.

Tests cover the factories, the start/stop lifecycle and its effect on
logger levels and handlers, state errors, the runner hooks and context
manager, global matchers and progress output.
"""

import logging
from io import StringIO

import pytest

from logcapture.adapters.stdlib import TRACE
from logcapture.core.errors import LogAssertionError, SessionStateError, UsageError
from logcapture.core.event import Level
from logcapture.core.expectation import Expectation
from logcapture.core.matchers import LoggerNameRegex
from logcapture.core.session import CaptureSession, package_prefix
from logcapture.core.sink import ANY_LOGGER
from logcapture.utils.logger import SessionLogger, Verbosity


def info(regex: str) -> Expectation:
    return Expectation(Level.INFO, regex)


@pytest.fixture
def restore_levels():
    """Reset the levels touched by a test."""
    names = ["session_tests", "session_tests.sub", "elsewhere", ""]
    saved = {name: logging.getLogger(name).level for name in names}
    yield
    for name, level in saved.items():
        logging.getLogger(name).setLevel(level)


# ---------------------------------------------------------------------------
# Tests: Factories
# ---------------------------------------------------------------------------


class TestFactories:
    """Test session construction."""

    def test_for_packages(self) -> None:
        """Prefixes are kept in the given order."""
        session = CaptureSession.for_packages("b", "a")
        assert session.prefixes == ["b", "a"]
        assert not session.started

    def test_for_packages_needs_prefix(self) -> None:
        """An empty prefix set is misuse."""
        with pytest.raises(UsageError) as info_:
            CaptureSession.for_packages()
        assert str(info_.value) == "for_packages() needs at least one logger name prefix"

    def test_prefixes_must_be_strings(self) -> None:
        """Non-string prefixes are rejected."""
        with pytest.raises(UsageError):
            CaptureSession.for_packages(logging.getLogger("x"))  # type: ignore[arg-type]

    def test_for_current_package(self) -> None:
        """The calling module's package becomes the prefix."""
        session = CaptureSession.for_current_package()
        assert session.prefixes == [package_prefix(__name__, __package__)]

    def test_for_all_loggers(self) -> None:
        """The any-logger session uses the sentinel."""
        assert CaptureSession.for_all_loggers().prefixes is ANY_LOGGER


class TestPackagePrefix:
    """Test derivation of a module's package prefix."""

    def test_package_wins(self) -> None:
        """``__package__`` is used when set."""
        assert package_prefix("app.service.tests", "app.service") == "app.service"

    def test_module_without_package(self) -> None:
        """The last component is dropped otherwise."""
        assert package_prefix("app.service.tests") == "app.service"

    def test_top_level_module(self) -> None:
        """A top-level module is its own prefix."""
        assert package_prefix("test_something", "") == "test_something"


# ---------------------------------------------------------------------------
# Tests: Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("restore_levels")
class TestLifecycle:
    """Test start and stop."""

    def test_start_lowers_level(self) -> None:
        """Captured loggers are lowered to TRACE while running."""
        logging.getLogger("session_tests").setLevel(logging.WARNING)
        session = CaptureSession.for_packages("session_tests")
        session.start()
        try:
            assert logging.getLogger("session_tests").level == TRACE
        finally:
            session.stop()
        assert logging.getLogger("session_tests").level == logging.WARNING

    def test_unset_level_restored(self) -> None:
        """A logger without its own level gets none back."""
        logging.getLogger("session_tests").setLevel(logging.NOTSET)
        with CaptureSession.for_packages("session_tests"):
            pass
        assert logging.getLogger("session_tests").level == logging.NOTSET

    def test_repeated_prefix_restores_original_level(self) -> None:
        """A prefix given twice is lowered once and restored to its own level."""
        logging.getLogger("session_tests").setLevel(logging.ERROR)
        session = CaptureSession.for_packages("session_tests", "session_tests")
        assert session.prefixes == ["session_tests"]
        session.start()
        session.stop()
        assert logging.getLogger("session_tests").level == logging.ERROR

    def test_captures_prefixed_loggers_only(self) -> None:
        """Only loggers under the prefixes are captured."""
        logging.getLogger("elsewhere").setLevel(logging.DEBUG)
        with CaptureSession.for_packages("session_tests") as session:
            logging.getLogger("session_tests.sub").debug("kept")
            logging.getLogger("elsewhere").info("dropped")
        assert [e.formatted_message for e in session.events] == ["kept"]

    def test_handler_detached_on_stop(self) -> None:
        """Nothing is captured after stop, but events stay readable."""
        root = logging.getLogger()
        before = list(root.handlers)
        session = CaptureSession.for_packages("session_tests")
        session.start()
        assert len(root.handlers) == len(before) + 1
        logging.getLogger("session_tests").warning("during")
        session.stop()
        logging.getLogger("session_tests").warning("after")
        assert root.handlers == before
        assert [e.formatted_message for e in session.events] == ["during"]
        session.assert_logged(Expectation(Level.WARN, "during"))

    def test_restart_discards_events(self) -> None:
        """A new run starts with an empty buffer."""
        session = CaptureSession.for_packages("session_tests")
        with session:
            logging.getLogger("session_tests").info("first run")
        with session:
            assert len(session.events) == 0

    def test_hooks(self) -> None:
        """before_each and after_each wrap start and stop."""
        session = CaptureSession.for_packages("session_tests")
        session.before_each()
        assert session.started
        session.after_each()
        assert not session.started

    def test_context_manager_stops_on_error(self) -> None:
        """Leaving the block through an exception still stops the session."""
        session = CaptureSession.for_packages("session_tests")
        with pytest.raises(KeyError):
            with session:
                raise KeyError("boom")
        assert not session.started

    def test_all_loggers(self) -> None:
        """The any-logger session lowers and restores the root level."""
        root = logging.getLogger()
        root.setLevel(logging.WARNING)
        with CaptureSession.for_all_loggers() as session:
            assert root.level == TRACE
            logging.getLogger("elsewhere").debug("anything")
        assert root.level == logging.WARNING
        session.assert_logged(Expectation(Level.DEBUG, "anything"))


# ---------------------------------------------------------------------------
# Tests: State Errors
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("restore_levels")
class TestStateErrors:
    """Test out-of-order lifecycle calls."""

    def test_double_start(self) -> None:
        """Starting twice is an error."""
        session = CaptureSession.for_packages("session_tests")
        session.start()
        try:
            with pytest.raises(SessionStateError):
                session.start()
        finally:
            session.stop()

    def test_stop_without_start(self) -> None:
        """Stopping an idle session is an error."""
        with pytest.raises(SessionStateError):
            CaptureSession.for_packages("session_tests").stop()

    def test_double_stop(self) -> None:
        """Stopping twice is an error."""
        session = CaptureSession.for_packages("session_tests")
        session.start()
        session.stop()
        with pytest.raises(SessionStateError):
            session.stop()

    def test_assert_before_start(self) -> None:
        """Asserting on a never-started session is an error."""
        session = CaptureSession.for_packages("session_tests")
        with pytest.raises(SessionStateError):
            session.assert_logged(info("x"))
        with pytest.raises(SessionStateError):
            session.events

    def test_state_errors_are_not_assertions(self) -> None:
        """State errors are misuse."""
        assert not issubclass(SessionStateError, AssertionError)
        assert issubclass(SessionStateError, RuntimeError)


# ---------------------------------------------------------------------------
# Tests: Global Matchers
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("restore_levels")
class TestWithMatchers:
    """Test with_matchers()."""

    def test_needs_matcher(self, capture: CaptureSession) -> None:
        """At least one matcher is required."""
        with pytest.raises(UsageError) as info_:
            capture.with_matchers()
        assert str(info_.value) == "with_matchers() needs at least one matcher"

    def test_rejects_non_matchers(self, capture: CaptureSession) -> None:
        """Only matchers are accepted."""
        with pytest.raises(UsageError):
            capture.with_matchers("web")  # type: ignore[arg-type]

    def test_applies_to_call(self, capture: CaptureSession, app_logger: logging.Logger) -> None:
        """The matchers constrain the assertion made through the result."""
        app_logger.info("hello")
        capture.with_matchers(LoggerNameRegex(r"\.app$")).assert_logged(info("hello"))
        with pytest.raises(LogAssertionError):
            capture.with_matchers(LoggerNameRegex("other")).assert_logged(info("hello"))

    def test_session_unchanged(self, capture: CaptureSession, app_logger: logging.Logger) -> None:
        """Global matchers do not stick to the session."""
        app_logger.info("hello")
        capture.with_matchers(LoggerNameRegex("other"))
        capture.assert_logged(info("hello"))


# ---------------------------------------------------------------------------
# Tests: Progress Output
# ---------------------------------------------------------------------------


@pytest.mark.usefixtures("restore_levels")
class TestProgressOutput:
    """Test the session's own output."""

    def test_verbose_lifecycle(self) -> None:
        """VERBOSE reports start and stop."""
        buf = StringIO()
        logger = SessionLogger(Verbosity.VERBOSE, buf)
        with CaptureSession.for_packages("session_tests", logger=logger):
            logging.getLogger("session_tests").info("one")
        assert buf.getvalue() == (
            "[SESSION] capturing session_tests\n"
            "[SESSION] stopped after 1 event(s)\n"
        )

    def test_debug_events(self) -> None:
        """DEBUG reports every captured event."""
        buf = StringIO()
        logger = SessionLogger(Verbosity.DEBUG, buf)
        with CaptureSession.for_packages("session_tests", logger=logger):
            logging.getLogger("session_tests.sub").error("bad")
        assert "[EVENT] ERROR session_tests.sub: bad\n" in buf.getvalue()

    def test_any_logger_shown(self) -> None:
        """The any-logger session is reported by name."""
        buf = StringIO()
        with CaptureSession.for_all_loggers(logger=SessionLogger(Verbosity.VERBOSE, buf)):
            pass
        assert buf.getvalue().startswith("[SESSION] capturing <all loggers>\n")

    def test_repr(self) -> None:
        """The repr shows prefixes and state."""
        assert repr(CaptureSession.for_packages("a")) == "CaptureSession(prefixes=['a'], stopped)"
