"""Tests for logging configuration."""

import io
import logging

from rich.logging import RichHandler

from pgshare.logging import LogLevel, configure_logging


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_normal_level(self) -> None:
        configure_logging(stream=io.StringIO())
        assert logging.getLogger().level == LogLevel.NORMAL

    def test_verbose_level(self) -> None:
        configure_logging(verbosity=1, stream=io.StringIO())
        assert logging.getLogger().level == LogLevel.VERBOSE

    def test_quiet_wins(self) -> None:
        """quiet takes precedence over verbosity."""
        configure_logging(verbosity=2, quiet=True, stream=io.StringIO())
        assert logging.getLogger().level == LogLevel.QUIET

    def test_lock_transitions_visible_when_verbose(self) -> None:
        stream = io.StringIO()
        configure_logging(verbosity=1, no_color=True, stream=stream)
        logging.getLogger("pgshare.core.lock").debug("Lock x: unlocked -> shared")
        assert "unlocked -> shared" in stream.getvalue()

    def test_returns_console_on_stream(self) -> None:
        stream = io.StringIO()
        console = configure_logging(no_color=True, stream=stream)
        console.print("hello")
        assert "hello" in stream.getvalue()

    def test_single_verbose_flag_shows_time_and_path(self) -> None:
        """One -v enables both DEBUG records and their timestamps and locations."""
        configure_logging(verbosity=1, stream=io.StringIO())
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler, RichHandler)
        assert handler._log_render.show_time
        assert handler._log_render.show_path

    def test_normal_hides_time_and_path(self) -> None:
        configure_logging(stream=io.StringIO())
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler, RichHandler)
        assert not handler._log_render.show_time
        assert not handler._log_render.show_path
