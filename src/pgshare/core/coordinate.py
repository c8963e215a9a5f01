"""Safely share a cluster between processes that never talk to each other.

Every user of a cluster holds a shared lock on the cluster's lock file for
as long as it needs the cluster. Starting up and shutting down need the
exclusive lock:

- Startup: whoever gets the exclusive lock creates and starts the cluster,
  then downgrades to shared. Everyone else waits for a shared lock and
  checks the cluster is running; if not, they back off for a random
  interval and try again.
- Shutdown: try to upgrade to exclusive without blocking. Success means
  nobody else is using the cluster, so stop (or destroy) it. Failure means
  others still are, so leave it running.

For example, to run a test suite against a cluster that many test
processes share::

    cluster = Cluster(datadir, default_strategy())
    lock = UnlockedFile.for_datadir(datadir)
    names = run_and_stop(cluster, lock, Cluster.databases)
"""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from ..constants import BACKOFF_MAX_MS, BACKOFF_MIN_MS
from ..errors import ClusterInUse
from .lock import LockedFileExclusive, LockedFileShared, UnlockedFile

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Resource(Protocol):
    """What the coordinator needs from a cluster."""

    def running(self) -> bool: ...

    def start(self) -> bool: ...

    def stop(self) -> bool: ...

    def destroy(self) -> bool: ...


R = TypeVar("R", bound=Resource)


@dataclass(frozen=True)
class Backoff:
    """Bounds for the random delay between startup attempts."""

    min_ms: int = BACKOFF_MIN_MS
    max_ms: int = BACKOFF_MAX_MS

    def __post_init__(self) -> None:
        if not 0 <= self.min_ms <= self.max_ms:
            raise ValueError(f"Invalid backoff range: {self.min_ms}..{self.max_ms} ms")

    def delay(self) -> float:
        """A uniformly random delay in seconds."""
        return random.uniform(self.min_ms, self.max_ms) / 1000


def run_and_stop(
    cluster: R,
    lock: UnlockedFile,
    action: Callable[[R], T],
    backoff: Backoff | None = None,
) -> T:
    """Run action against a running cluster, stopping it afterwards if unused.

    Creates the cluster if it does not exist and starts it if it is not
    running, runs action, then stops the cluster unless other processes are
    still using it, in which case it is left running for them.

    The lock handle is consumed and closed before returning.

    Returns:
        Whatever action returns

    Raises:
        ClusterError: Locking or cluster operations failed. Exceptions from
            action itself propagate unchanged, after shutdown has run.
    """
    return _run(cluster, lock, action, _stop, backoff)


def run_and_destroy(
    cluster: R,
    lock: UnlockedFile,
    action: Callable[[R], T],
    backoff: Backoff | None = None,
) -> T:
    """Like run_and_stop, but destroy the cluster afterwards if unused.

    Destroying stops the server and deletes the whole data directory. If
    others are still using the cluster it is left running, and NOT
    destroyed.
    """
    return _run(cluster, lock, action, _destroy, backoff)


def _stop(cluster: Resource) -> bool:
    return cluster.stop()


def _destroy(cluster: Resource) -> bool:
    return cluster.destroy()


def _run(
    cluster: R,
    lock: UnlockedFile,
    action: Callable[[R], T],
    teardown: Callable[[R], bool],
    backoff: Backoff | None,
) -> T:
    shared = startup(cluster, lock, backoff)
    try:
        result = action(cluster)
    except BaseException:
        try:
            shutdown(cluster, shared, teardown)
        except Exception:
            # The action's exception takes precedence
            logger.exception("Shutdown failed after action raised")
        raise
    shutdown(cluster, shared, teardown)
    return result


def startup(
    cluster: Resource,
    lock: UnlockedFile,
    backoff: Backoff | None = None,
) -> LockedFileShared:
    """Ensure the cluster is running and hold a shared lock on it.

    Exactly one of any number of racing processes creates and starts the
    cluster; all of them end up holding a shared lock on a running cluster.
    There is no retry limit.

    Returns:
        A shared lock, proof that the cluster won't be stopped under us
    """
    backoff = backoff or Backoff()
    current: UnlockedFile | LockedFileShared | LockedFileExclusive = lock
    try:
        while True:
            current = lock.try_lock_exclusive()
            if isinstance(current, LockedFileExclusive):
                cluster.start()
                current = current.lock_shared()
                return current
            # Someone else has the exclusive lock, probably starting the
            # cluster. Wait for them with a shared lock.
            current = current.lock_shared()
            if cluster.running():
                return current
            # They gave up, crashed, or were shutting it down. Let go and
            # retry after a random delay so that one of many competing
            # processes gets the exclusive lock quickly.
            lock = current.unlock()
            current = lock
            delay = backoff.delay()
            logger.debug(f"Cluster not running after waiting; retrying in {delay:.2f}s")
            time.sleep(delay)
    except BaseException:
        current.close()
        raise


def shutdown(
    cluster: R,
    lock: LockedFileShared,
    teardown: Callable[[R], bool],
) -> bool | None:
    """Tear the cluster down if we are its last user, then release the lock.

    Returns:
        What teardown returned, or None if the cluster was left running
        because others are using it (or were busy with it)
    """
    current: LockedFileShared | LockedFileExclusive | UnlockedFile = lock
    try:
        current = lock.try_lock_exclusive()
        if not isinstance(current, LockedFileExclusive):
            logger.debug("Cluster still in use by others; leaving it running")
            return None
        try:
            return teardown(cluster)
        except ClusterInUse:
            logger.warning("Cluster busy during shutdown; leaving it to its other users")
            return None
    finally:
        current.close()
