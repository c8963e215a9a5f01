"""Advisory file locking with flock(2).

A lock file is a zero-length file that exists only to carry flock state.
Every handle is in exactly one state, and each state has its own class:

    UnlockedFile  --lock_shared()-->     LockedFileShared
    UnlockedFile  --lock_exclusive()-->  LockedFileExclusive
    LockedFileShared  --lock_exclusive()-->  LockedFileExclusive
    LockedFileExclusive  --lock_shared()-->  LockedFileShared
    either locked state  --unlock()-->  UnlockedFile

A transition consumes the handle it is called on and returns a new handle
owning the same open file; the old handle raises LockStateError if used
again. The try_* variants never block: when the lock is contended they
return the original handle, still usable, rather than raising. The one
exception is a failed shared-to-exclusive upgrade that also loses its shared
lock; see LockedFileShared.try_lock_exclusive.

Closing a handle (directly or by leaving a ``with`` block) closes the file,
which releases any lock it holds. The OS also releases the lock if the
process dies, so there is no stale-lock cleanup to do.

Lock state belongs to the open file, not the path: two handles opened on
the same path contend with each other even inside one process.
"""

import fcntl
import logging
import tempfile
import uuid
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Self, TypeVar

from ..constants import LOCK_FILE_PREFIX, LOCK_NAMESPACE
from ..errors import LockError, LockStateError

logger = logging.getLogger(__name__)

H = TypeVar("H", bound="_LockHandle")


class LockState(str, Enum):
    """Logical state of a lock handle."""

    UNLOCKED = "unlocked"
    SHARED = "shared"
    EXCLUSIVE = "exclusive"


def lock_path_for(datadir: Path, lock_dir: Path | None = None) -> Path:
    """Derive the lock file path for a cluster data directory.

    The name is a UUIDv5 of the canonical path, so processes that refer to
    the same directory by different relative paths or symlinks still share
    one lock.

    Args:
        datadir: Cluster data directory (need not exist yet)
        lock_dir: Where to put the lock file (default: system temp dir)
    """
    canonical = Path(datadir).resolve()
    name = uuid.uuid5(LOCK_NAMESPACE, str(canonical)).hex
    directory = Path(lock_dir) if lock_dir is not None else Path(tempfile.gettempdir())
    return directory / f"{LOCK_FILE_PREFIX}{name}"


class _LockHandle:
    """Owner of one open lock file in one state."""

    state: LockState

    def __init__(self, file: BinaryIO) -> None:
        self._file: BinaryIO | None = file

    @property
    def path(self) -> Path:
        return Path(self._require().name)

    @property
    def closed(self) -> bool:
        """True once this handle has been closed or consumed."""
        return self._file is None

    def _require(self) -> BinaryIO:
        if self._file is None:
            raise LockStateError(
                f"{type(self).__name__} handle is closed or was consumed by a transition"
            )
        return self._file

    def _flock(self, operation: int) -> bool:
        """Apply a flock operation; False means contended (LOCK_NB only)."""
        file = self._require()
        try:
            fcntl.flock(file.fileno(), operation)
        except BlockingIOError:
            return False
        except OSError as e:
            raise LockError(f"flock failed on {file.name}: {e}") from e
        return True

    def _become(self, cls: type[H]) -> H:
        file = self._require()
        self._file = None
        logger.debug(f"Lock {file.name}: {self.state.value} -> {cls.state.value}")
        return cls(file)

    def close(self) -> None:
        """Close the lock file, releasing any lock. Safe to call repeatedly."""
        if self._file is not None:
            file, self._file = self._file, None
            file.close()

    def __enter__(self) -> Self:
        self._require()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        where = "closed" if self._file is None else self._file.name
        return f"<{type(self).__name__} {where}>"


class UnlockedFile(_LockHandle):
    """An open lock file holding no lock."""

    state = LockState.UNLOCKED

    @classmethod
    def open(cls, path: Path) -> Self:
        """Open (creating if needed) the lock file at path.

        Raises:
            LockError: If the file cannot be opened or created
        """
        try:
            # Append mode never truncates; nothing is ever written anyway
            file = open(path, "ab")
        except OSError as e:
            raise LockError(f"Cannot open lock file {path}: {e}") from e
        return cls(file)

    @classmethod
    def for_datadir(cls, datadir: Path, lock_dir: Path | None = None) -> Self:
        """Open the lock file derived from a cluster data directory."""
        return cls.open(lock_path_for(datadir, lock_dir))

    def try_lock_shared(self) -> "Self | LockedFileShared":
        if self._flock(fcntl.LOCK_SH | fcntl.LOCK_NB):
            return self._become(LockedFileShared)
        return self

    def lock_shared(self) -> "LockedFileShared":
        self._flock(fcntl.LOCK_SH)
        return self._become(LockedFileShared)

    def try_lock_exclusive(self) -> "Self | LockedFileExclusive":
        if self._flock(fcntl.LOCK_EX | fcntl.LOCK_NB):
            return self._become(LockedFileExclusive)
        return self

    def lock_exclusive(self) -> "LockedFileExclusive":
        self._flock(fcntl.LOCK_EX)
        return self._become(LockedFileExclusive)


class LockedFileShared(_LockHandle):
    """An open lock file holding a shared lock."""

    state = LockState.SHARED

    def try_lock_exclusive(self) -> "Self | LockedFileExclusive | UnlockedFile":
        """Try to upgrade to an exclusive lock without blocking.

        Returns this handle, still holding a shared lock, if other holders
        prevent the upgrade. flock conversion is not atomic, so the shared
        lock may be lost while the upgrade fails; if it cannot be taken back
        at once (a peer got in exclusively) an UnlockedFile is returned and
        the caller must not assume the resource is as it left it.
        """
        if self._flock(fcntl.LOCK_EX | fcntl.LOCK_NB):
            return self._become(LockedFileExclusive)
        if self._flock(fcntl.LOCK_SH | fcntl.LOCK_NB):
            return self
        logger.debug(f"Lock {self.path}: shared lock lost during failed upgrade")
        return self._become(UnlockedFile)

    def lock_exclusive(self) -> "LockedFileExclusive":
        self._flock(fcntl.LOCK_EX)
        return self._become(LockedFileExclusive)

    def try_unlock(self) -> "Self | UnlockedFile":
        if self._flock(fcntl.LOCK_UN | fcntl.LOCK_NB):
            return self._become(UnlockedFile)
        return self

    def unlock(self) -> UnlockedFile:
        self._flock(fcntl.LOCK_UN)
        return self._become(UnlockedFile)


class LockedFileExclusive(_LockHandle):
    """An open lock file holding an exclusive lock."""

    state = LockState.EXCLUSIVE

    def try_lock_shared(self) -> "Self | LockedFileShared":
        if self._flock(fcntl.LOCK_SH | fcntl.LOCK_NB):
            return self._become(LockedFileShared)
        return self

    def lock_shared(self) -> LockedFileShared:
        """Downgrade to a shared lock."""
        self._flock(fcntl.LOCK_SH)
        return self._become(LockedFileShared)

    def try_unlock(self) -> "Self | UnlockedFile":
        if self._flock(fcntl.LOCK_UN | fcntl.LOCK_NB):
            return self._become(UnlockedFile)
        return self

    def unlock(self) -> UnlockedFile:
        self._flock(fcntl.LOCK_UN)
        return self._become(UnlockedFile)
