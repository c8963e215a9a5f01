"""Cluster lifecycle coordination for pgshare.

- lock: typed flock(2) handles (unlocked, shared, exclusive)
- status: decoding pg_ctl status exit codes per PostgreSQL release
- cluster: create/start/stop/destroy a cluster in a data directory
- coordinate: run an action while a cluster is up, shared between processes
"""

from .cluster import Cluster, exists, version
from .coordinate import Backoff, Resource, run_and_destroy, run_and_stop, shutdown, startup
from .lock import LockedFileExclusive, LockedFileShared, LockState, UnlockedFile, lock_path_for
from .status import STATUS_CODES, StatusEra, StatusOutcome, decode_status, status_era

__all__ = [
    "STATUS_CODES",
    "Backoff",
    "Cluster",
    "LockState",
    "LockedFileExclusive",
    "LockedFileShared",
    "Resource",
    "StatusEra",
    "StatusOutcome",
    "UnlockedFile",
    "decode_status",
    "exists",
    "lock_path_for",
    "run_and_destroy",
    "run_and_stop",
    "shutdown",
    "startup",
    "status_era",
    "version",
]
