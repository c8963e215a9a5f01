"""Process execution for pg_ctl and friends.

The cluster never calls subprocess directly; it goes through a
CommandRunner so tests can script exit codes without a PostgreSQL install.
"""

import logging
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from ..constants import CTL_TIMEOUT
from ..errors import ProcessError

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    """Runs a command to completion, capturing its output."""

    def __call__(
        self,
        argv: Sequence[str | Path],
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]: ...


def run_command(
    argv: Sequence[str | Path],
    env: dict[str, str] | None = None,
    timeout: int | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a command and return the finished process.

    The exit status is not checked; callers decide what it means.

    Args:
        argv: Program and arguments
        env: Full environment for the child (inherits ours if None)
        timeout: Optional timeout in seconds (default: CTL_TIMEOUT)

    Returns:
        CompletedProcess with text stdout/stderr

    Raises:
        ProcessError: If the command cannot be run (missing, not executable)
            or times out
        BlockingIOError: If the system cannot fork right now
    """
    timeout = timeout or CTL_TIMEOUT
    args = [str(arg) for arg in argv]
    logger.debug(f"Running: {' '.join(args)}")
    try:
        return subprocess.run(
            args,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise ProcessError(f"{args[0]} timed out after {timeout} seconds", argv=args) from e
    except FileNotFoundError as e:
        raise ProcessError(f"Command not found: {args[0]}", argv=args) from e
    except BlockingIOError:
        # EAGAIN: the caller decides whether to retry or report contention
        raise
    except OSError as e:
        raise ProcessError(f"Cannot run {args[0]}: {e}", argv=args) from e


def check_completed(result: subprocess.CompletedProcess[str]) -> subprocess.CompletedProcess[str]:
    """Raise ProcessError unless the process exited with status 0."""
    if result.returncode != 0:
        raise ProcessError.from_completed(result)
    return result


def run_interactive(argv: Sequence[str | Path], env: dict[str, str] | None = None) -> int:
    """Run a command attached to our terminal and return its exit status.

    Raises:
        ProcessError: If the command cannot be found or started
    """
    args = [str(arg) for arg in argv]
    logger.debug(f"Running interactively: {' '.join(args)}")
    try:
        return subprocess.run(args, env=env).returncode
    except FileNotFoundError as e:
        raise ProcessError(f"Command not found: {args[0]}", argv=args) from e
    except OSError as e:
        raise ProcessError(f"Cannot run {args[0]}: {e}", argv=args) from e
