"""
Tests for the session progress logger.

Tests cover verbosity filtering, output formatting of lifecycle,
event, scan and failure lines, statistics formatting, verbosity
parsing and the default stream.
"""

from io import StringIO

import pytest

from logcapture.core.event import Level
from logcapture.utils.logger import SessionLogger, Verbosity


# ---------------------------------------------------------------------------
# Tests: Verbosity Filtering
# ---------------------------------------------------------------------------


class TestVerbosityFiltering:
    """Test that verbosity levels filter messages correctly."""

    def test_silent_suppresses_all(self) -> None:
        """SILENT produces no output."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.SILENT, stream=buf)
        logger.session_started(["app"])
        logger.event_captured("app", Level.INFO, "hello")
        logger.assertion_failed("failure")
        assert buf.getvalue() == ""

    def test_default_is_silent(self) -> None:
        """A logger built without arguments writes nothing."""
        assert SessionLogger().level is Verbosity.SILENT

    def test_normal_shows_failures_only(self) -> None:
        """NORMAL only shows assertion failures."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.NORMAL, stream=buf)
        logger.event_captured("app", Level.INFO, "hello")
        logger.session_started(["app"])
        logger.assertion_failed("Expected log message has not occurred.")
        assert buf.getvalue() == "FAILED: Expected log message has not occurred.\n"

    def test_verbose_shows_lifecycle(self) -> None:
        """VERBOSE shows session lifecycle lines."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.VERBOSE, stream=buf)
        logger.session_stopped(0)
        assert "stopped after 0 event(s)" in buf.getvalue()

    def test_verbose_hides_debug(self) -> None:
        """VERBOSE does not show per-event or per-scan lines."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.VERBOSE, stream=buf)
        logger.event_captured("app", Level.DEBUG, "detail")
        logger.scan_result("INFO <any message>", "not found")
        assert buf.getvalue() == ""

    def test_debug_shows_everything(self) -> None:
        """DEBUG shows all messages."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.DEBUG, stream=buf)
        logger.session_started(["app"])
        logger.event_captured("app", Level.INFO, "hello")
        logger.assertion_failed("failure")
        output = buf.getvalue()
        assert "[SESSION] capturing app" in output
        assert "[EVENT] INFO app: hello" in output
        assert "FAILED: failure" in output


# ---------------------------------------------------------------------------
# Tests: Line Formats
# ---------------------------------------------------------------------------


class TestLineFormats:
    """Test the formatting of each kind of line."""

    def test_session_lines(self) -> None:
        """Lifecycle lines list sorted prefixes and the captured count."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.VERBOSE, stream=buf)
        logger.session_started(["b.pkg", "a.pkg"])
        logger.session_stopped(3)
        assert buf.getvalue() == (
            "[SESSION] capturing a.pkg, b.pkg\n"
            "[SESSION] stopped after 3 event(s)\n"
        )

    def test_event_line(self) -> None:
        """Captured events show level, logger and message."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.DEBUG, stream=buf)
        logger.event_captured("app.db", Level.WARN, "slow query")
        assert buf.getvalue() == "[EVENT] WARN app.db: slow query\n"

    def test_scan_line(self) -> None:
        """Scan outcomes name the expectation."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.DEBUG, stream=buf)
        logger.scan_result('INFO "x" (regex)', "found at index 2")
        assert buf.getvalue() == '[SCAN] INFO "x" (regex): found at index 2\n'


# ---------------------------------------------------------------------------
# Tests: Statistics
# ---------------------------------------------------------------------------


class TestStatistics:
    """Test statistics output."""

    def test_statistics_format(self) -> None:
        """Statistics are formatted with title-case labels."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.VERBOSE, stream=buf)
        logger.statistics({"full_matches": 2, "base_matches": 3})
        output = buf.getvalue()
        assert "Statistics" in output
        assert "Full Matches: 2" in output
        assert "Base Matches: 3" in output

    def test_statistics_hidden_at_normal(self) -> None:
        """Statistics are not shown at NORMAL level."""
        buf = StringIO()
        logger = SessionLogger(level=Verbosity.NORMAL, stream=buf)
        logger.statistics({"full_matches": 2})
        assert buf.getvalue() == ""


# ---------------------------------------------------------------------------
# Tests: Configuration
# ---------------------------------------------------------------------------


class TestConfiguration:
    """Test verbosity parsing and the output stream."""

    @pytest.mark.parametrize(
        "text, expected",
        [("silent", Verbosity.SILENT), ("Verbose", Verbosity.VERBOSE), (" debug ", Verbosity.DEBUG)],
    )
    def test_parse(self, text: str, expected: Verbosity) -> None:
        """Names parse case-insensitively."""
        assert Verbosity.parse(text) is expected

    def test_parse_unknown(self) -> None:
        """Unknown names list the valid choices."""
        with pytest.raises(ValueError, match="silent, normal, verbose, debug"):
            Verbosity.parse("loud")

    def test_default_stream_is_stderr(self, capsys: pytest.CaptureFixture) -> None:
        """Without a stream, output goes to stderr."""
        SessionLogger(level=Verbosity.NORMAL).assertion_failed("boom")
        captured = capsys.readouterr()
        assert captured.err == "FAILED: boom\n"
        assert captured.out == ""
