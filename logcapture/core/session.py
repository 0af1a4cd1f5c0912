"""
Capture session lifecycle.

A session owns one capture sink and the process-global logging changes
needed to feed it: on ``start`` it lowers the level of every captured
logger to TRACE and attaches a capturing handler; on ``stop`` it
detaches the handler and restores the levels observed at ``start``.

Sessions are used either through test-runner hooks (``before_each`` /
``after_each``, or the pytest ``log_capture`` fixture) or directly as a
context manager::

    with CaptureSession.for_packages("app") as capture:
        run_app()
        capture.assert_logged(info("started"))
"""

from __future__ import annotations

import inspect
import logging
from types import TracebackType
from typing import Dict, Iterable, List, Optional, Type, Union

from logcapture.adapters.stdlib import TRACE, CapturingHandler
from logcapture.core.asserter import Asserter, NothingElseLogged
from logcapture.core.count_policy import CountPolicy
from logcapture.core.errors import SessionStateError, UsageError
from logcapture.core.event import CapturedEvent
from logcapture.core.expectation import Expectation
from logcapture.core.matchers import Matcher
from logcapture.core.sink import ANY_LOGGER, ALL_CAPABILITIES, CaptureSink, EventsView, _AnyLogger
from logcapture.utils.logger import SessionLogger, Verbosity


def package_prefix(module_name: str, package: Optional[str] = None) -> str:
    """
    Derive the logger-name prefix capturing a module's package.

    Args:
        module_name: The module's ``__name__``.
        package: The module's ``__package__``, if known.

    Returns:
        *package* when set, otherwise *module_name* without its last
        component (or unchanged for top-level modules).
    """
    if package:
        return package
    name = module_name or ""
    if "." in name:
        return name.rsplit(".", 1)[0]
    return name


class CaptureSession:
    """
    Captures log events of selected loggers and asserts on them.

    Attributes:
        prefixes: Captured logger-name prefixes, or ``ANY_LOGGER``.
        logger: Output for session progress.
        target: Logger the capturing handler is attached to.
    """

    def __init__(
        self,
        prefixes: Union[Iterable[str], _AnyLogger],
        logger: Optional[SessionLogger] = None,
        target: Optional[logging.Logger] = None,
    ) -> None:
        """
        Initialize a session that is not yet started.

        Prefer the ``for_packages``, ``for_current_package`` and
        ``for_all_loggers`` factories.

        Args:
            prefixes: Logger-name prefixes to capture, or ``ANY_LOGGER``.
                Repeated prefixes are kept once.
            logger: Optional logger for progress output.
            target: Logger to attach the handler to (default: root).

        Raises:
            UsageError: If *prefixes* is empty.
        """
        if isinstance(prefixes, _AnyLogger):
            self.prefixes: Union[List[str], _AnyLogger] = ANY_LOGGER
        else:
            names = list(prefixes)
            if not names:
                raise UsageError("for_packages() needs at least one logger name prefix")
            for name in names:
                if not isinstance(name, str):
                    raise UsageError(f"logger name prefixes must be strings, got {name!r}")
            self.prefixes = list(dict.fromkeys(names))
        self.logger: SessionLogger = logger or SessionLogger(Verbosity.SILENT)
        self.target: logging.Logger = target or logging.getLogger()

        self._sink: Optional[CaptureSink] = None
        self._handler: Optional[CapturingHandler] = None
        self._saved_levels: Dict[str, int] = {}

    # ------------------------------------------------------------------ #
    # Factories
    # ------------------------------------------------------------------ #

    @classmethod
    def for_packages(
        cls, *prefixes: str, logger: Optional[SessionLogger] = None,
    ) -> CaptureSession:
        """
        Create a session capturing loggers whose names start with *prefixes*.

        Raises:
            UsageError: If no prefix is given.
        """
        return cls(prefixes, logger=logger)

    @classmethod
    def for_current_package(cls, logger: Optional[SessionLogger] = None) -> CaptureSession:
        """
        Create a session capturing the calling module's package.

        The prefix is the caller's ``__package__``, or its module name
        without the last component for modules outside a package.

        Raises:
            UsageError: If the interpreter does not support frame inspection.
        """
        frame = inspect.currentframe()
        if frame is None or frame.f_back is None:
            raise UsageError(
                "for_current_package() cannot inspect the calling module on this "
                "interpreter; use for_packages() with an explicit prefix"
            )
        try:
            caller = frame.f_back.f_globals
            prefix = package_prefix(caller.get("__name__", ""), caller.get("__package__"))
        finally:
            del frame
        return cls([prefix], logger=logger)

    @classmethod
    def for_all_loggers(cls, logger: Optional[SessionLogger] = None) -> CaptureSession:
        """Create a session capturing every logger."""
        return cls(ANY_LOGGER, logger=logger)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @property
    def started(self) -> bool:
        """True between ``start`` and ``stop``."""
        return self._handler is not None

    def _logger_names(self) -> List[str]:
        if self.prefixes is ANY_LOGGER:
            return [""]
        return list(self.prefixes)

    def start(self) -> None:
        """
        Start capturing.

        Lowers each captured logger to TRACE, remembering its previous
        level, and attaches a fresh sink to the host logging system.
        Events captured by an earlier run of this session are discarded.

        Raises:
            SessionStateError: If the session is already started.
        """
        if self.started:
            raise SessionStateError("start() called on a session that is already started")

        self._sink = CaptureSink(self.prefixes, ALL_CAPABILITIES)
        for name in self._logger_names():
            host = logging.getLogger(name)
            self._saved_levels[name] = host.level
            host.setLevel(TRACE)
        self._handler = CapturingHandler(self._sink, on_captured=self._event_captured)
        self.target.addHandler(self._handler)

        shown = ["<all loggers>"] if self.prefixes is ANY_LOGGER else self.prefixes
        self.logger.session_started(shown)

    def stop(self) -> None:
        """
        Stop capturing and restore the logging configuration.

        Captured events stay available for inspection and assertions.

        Raises:
            SessionStateError: If the session is not started.
        """
        if not self.started:
            raise SessionStateError("stop() called on a session that was not started")

        self.target.removeHandler(self._handler)
        self._handler.close()
        self._handler = None
        for name, level in self._saved_levels.items():
            logging.getLogger(name).setLevel(level)
        self._saved_levels.clear()
        self.logger.session_stopped(self._sink.count())

    def before_each(self) -> None:
        """Test-runner hook run before each test: start capturing."""
        self.start()

    def after_each(self) -> None:
        """Test-runner hook run after each test: stop capturing."""
        self.stop()

    def __enter__(self) -> CaptureSession:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.stop()

    def _event_captured(self, event: CapturedEvent) -> None:
        self.logger.event_captured(event.logger_name, event.level, event.formatted_message)

    # ------------------------------------------------------------------ #
    # Assertions
    # ------------------------------------------------------------------ #

    def _require_sink(self) -> CaptureSink:
        if self._sink is None:
            raise SessionStateError(
                "log assertions need a started capture session; call start() "
                "(or before_each()) first"
            )
        return self._sink

    @property
    def events(self) -> EventsView:
        """Read-only view of the events captured so far."""
        return self._require_sink().events()

    def with_matchers(self, *matchers: Matcher) -> Asserter:
        """
        Return an asserter applying *matchers* to every expectation.

        Raises:
            UsageError: If no matcher is given.
        """
        if not matchers:
            raise UsageError("with_matchers() needs at least one matcher")
        for matcher in matchers:
            if not isinstance(matcher, Matcher):
                raise UsageError(
                    f"expected a matcher, got {type(matcher).__name__}: {matcher!r}"
                )
        return Asserter(self._require_sink(), matchers, self.logger)

    def _asserter(self) -> Asserter:
        return Asserter(self._require_sink(), (), self.logger)

    def assert_logged(
        self,
        expectation_or_policy: Union[Expectation, CountPolicy],
        expectation: Optional[Expectation] = None,
    ) -> NothingElseLogged:
        """See ``Asserter.assert_logged``."""
        return self._asserter().assert_logged(expectation_or_policy, expectation)

    def assert_logged_in_order(self, *expectations: Expectation) -> NothingElseLogged:
        """See ``Asserter.assert_logged_in_order``."""
        return self._asserter().assert_logged_in_order(*expectations)

    def assert_logged_in_any_order(self, *expectations: Expectation) -> NothingElseLogged:
        """See ``Asserter.assert_logged_in_any_order``."""
        return self._asserter().assert_logged_in_any_order(*expectations)

    def assert_not_logged(self, *expectations: Expectation) -> None:
        """See ``Asserter.assert_not_logged``."""
        self._asserter().assert_not_logged(*expectations)

    def __repr__(self) -> str:
        state = "started" if self.started else "stopped"
        return f"CaptureSession(prefixes={self.prefixes!r}, {state})"
