"""Logging configuration for pgshare CLI."""

import logging
import sys
from enum import IntEnum
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler


class LogLevel(IntEnum):
    """Log level enumeration."""

    QUIET = logging.WARNING
    NORMAL = logging.INFO
    VERBOSE = logging.DEBUG


def configure_logging(
    verbosity: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    stream: TextIO = sys.stderr,
) -> Console:
    """Configure logging based on CLI options.

    Args:
        verbosity: Number of -v flags (0=normal, 1+=debug with timestamps
            and source locations)
        quiet: Suppress non-error output (takes precedence over verbosity)
        no_color: Disable colored output
        stream: Output stream for logs

    Returns:
        Configured Rich console for output

    Note:
        Flag precedence: quiet > verbosity. Lock transitions and
        pg_ctl status decoding are logged at DEBUG, so -v shows how a
        process got (or didn't get) the cluster.
    """
    if quiet:
        level = LogLevel.QUIET
    elif verbosity >= 1:
        level = LogLevel.VERBOSE
    else:
        level = LogLevel.NORMAL

    console = Console(
        file=stream,
        force_terminal=not no_color,
        no_color=no_color,
    )

    handler = RichHandler(
        console=console,
        show_time=level == LogLevel.VERBOSE,
        show_path=level == LogLevel.VERBOSE,
    )

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )

    return console
