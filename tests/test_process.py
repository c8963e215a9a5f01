"""Tests for process execution helpers."""

import subprocess
import sys
from unittest import mock

import pytest

from pgshare.errors import ProcessError
from pgshare.services import check_completed, run_command, run_interactive


class TestRunCommand:
    """Tests for run_command function."""

    def test_captures_output(self) -> None:
        result = run_command([sys.executable, "-c", "print('hello')"])
        assert result.returncode == 0
        assert result.stdout.strip() == "hello"

    def test_does_not_check_status(self) -> None:
        result = run_command([sys.executable, "-c", "raise SystemExit(3)"])
        assert result.returncode == 3

    def test_missing_command(self) -> None:
        with pytest.raises(ProcessError, match="Command not found"):
            run_command(["pgshare-definitely-not-a-command"])

    def test_timeout(self) -> None:
        with (
            mock.patch(
                "subprocess.run",
                side_effect=subprocess.TimeoutExpired(cmd="pg_ctl", timeout=1),
            ),
            pytest.raises(ProcessError, match="timed out after 1 seconds"),
        ):
            run_command(["pg_ctl", "status"], timeout=1)

    def test_permission_denied(self) -> None:
        """A program that exists but cannot be executed is a ProcessError."""
        with (
            mock.patch("subprocess.run", side_effect=PermissionError(13, "Permission denied")),
            pytest.raises(ProcessError, match="Cannot run pg_ctl") as exc_info,
        ):
            run_command(["pg_ctl", "status"])
        assert isinstance(exc_info.value.__cause__, PermissionError)
        assert exc_info.value.argv == ["pg_ctl", "status"]

    def test_fork_failure_propagates(self) -> None:
        """Temporary spawn failures are left for the caller to interpret."""
        with (
            mock.patch("subprocess.run", side_effect=BlockingIOError()),
            pytest.raises(BlockingIOError),
        ):
            run_command(["pg_ctl", "status"])


class TestCheckCompleted:
    """Tests for check_completed function."""

    def test_success_passes_through(self) -> None:
        result = subprocess.CompletedProcess(["pg_ctl"], 0, "ok", "")
        assert check_completed(result) is result

    def test_failure_raises_with_details(self) -> None:
        result = subprocess.CompletedProcess(["/pg/bin/pg_ctl", "start"], 1, "", "no space\n")
        with pytest.raises(ProcessError) as excinfo:
            check_completed(result)
        assert str(excinfo.value) == "pg_ctl exited with status 1: no space"
        assert excinfo.value.returncode == 1
        assert excinfo.value.argv == ["/pg/bin/pg_ctl", "start"]
        assert excinfo.value.stderr == "no space\n"


class TestRunInteractive:
    """Tests for run_interactive function."""

    def test_returns_status(self) -> None:
        assert run_interactive([sys.executable, "-c", "raise SystemExit(5)"]) == 5

    def test_missing_command(self) -> None:
        with pytest.raises(ProcessError, match="Command not found"):
            run_interactive(["pgshare-definitely-not-a-command"])
