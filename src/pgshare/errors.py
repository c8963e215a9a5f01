"""Errors raised by pgshare.

Everything derives from ClusterError so callers can catch one type at the
CLI boundary. Lock contention is never an error: the try_* transitions in
pgshare.core.lock return the original handle instead.
"""

import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from .models import PartialVersion, Version


class ClusterError(Exception):
    """Base exception for cluster coordination errors."""


class LockError(ClusterError):
    """OS-level failure acquiring or releasing an advisory lock."""


class LockStateError(ClusterError):
    """A lock handle was used after a transition consumed it."""


class ProcessError(ClusterError):
    """An external command could not be run or exited unsuccessfully."""

    def __init__(
        self,
        message: str,
        argv: list[str] | None = None,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.argv = argv or []
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    @classmethod
    def from_completed(cls, result: subprocess.CompletedProcess[str]) -> Self:
        """Build from a finished process that exited unsuccessfully."""
        argv = [str(arg) for arg in result.args]
        detail = (result.stderr or result.stdout or "").strip()
        message = f"{Path(argv[0]).name} exited with status {result.returncode}"
        if detail:
            message += f": {detail[:200]}"
        return cls(
            message,
            argv=argv,
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )


class IndeterminateState(ClusterError):
    """pg_ctl status returned something we cannot interpret."""

    def __init__(self, version: "Version", returncode: int, output: str = "") -> None:
        if returncode < 0:
            reason = f"killed by signal {-returncode}"
        else:
            reason = f"exit status {returncode}"
        super().__init__(f"cannot tell if cluster is running ({reason}, PostgreSQL {version})")
        self.version = version
        self.returncode = returncode
        self.output = output


class UnsupportedVersion(ClusterError):
    """No status decoding is known for this PostgreSQL version."""

    def __init__(self, version: "Version") -> None:
        super().__init__(f"PostgreSQL version not supported: {version}")
        self.version = version


class ClusterInUse(ClusterError):
    """The cluster is busy; another process is operating on it."""

    def __init__(self, message: str = "cluster in use; cannot lock exclusively") -> None:
        super().__init__(message)


class VersionError(ClusterError):
    """A version string was missing or badly formed."""

    BADLY_FORMED = "badly formed"
    MISSING = "not found"

    def __init__(self, reason: str, text: str = "") -> None:
        message = f"PostgreSQL version {reason}"
        if text:
            message += f": {text.strip()[:80]!r}"
        super().__init__(message)
        self.reason = reason
        self.text = text


class RuntimeNotFound(ClusterError):
    """No installed runtime is compatible with the cluster's version."""

    def __init__(self, version: "PartialVersion") -> None:
        super().__init__(f"PostgreSQL runtime not found for version {version}")
        self.version = version


class RuntimeDefaultNotFound(ClusterError):
    """No runtime was found at all."""

    def __init__(self) -> None:
        super().__init__("PostgreSQL runtime not found")


class DatabaseError(ClusterError):
    """Error talking to the cluster over the wire protocol."""


class FilesystemError(ClusterError):
    """Creating or removing a cluster's files failed."""
