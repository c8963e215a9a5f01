"""Shared plumbing for commands that use a cluster."""

from collections.abc import Callable
from pathlib import Path

import typer

from ..config import get_active_config
from ..core import Cluster, UnlockedFile, run_and_destroy, run_and_stop
from ..errors import ClusterError
from ..models import ClusterMode
from ..output import get_output_context


def run_in_cluster(
    datadir: Path | None,
    database: str | None,
    destroy: bool | None,
    mode: ClusterMode | None,
    action: Callable[[Cluster, str], int],
) -> None:
    """Run action against a shared cluster, then exit with its status.

    Options left as None fall back to the [cluster] section of the config.
    The cluster is stopped (or destroyed) afterwards only if no other
    process is still using it.

    Raises:
        typer.Exit: Always; with action's status, or 1 on cluster errors
    """
    ctx = get_output_context()
    config = get_active_config()
    datadir = datadir if datadir is not None else config.cluster.datadir
    database = database or config.cluster.database
    destroy = config.cluster.destroy if destroy is None else destroy
    mode = mode or config.cluster.mode

    def session(cluster: Cluster) -> int:
        if mode is not None:
            cluster.set_mode(mode)
        if database not in cluster.databases():
            cluster.createdb(database)
        return action(cluster, database)

    try:
        # Resolving needs the directory to exist so symlinks are followed
        datadir.mkdir(parents=True, exist_ok=True)
        datadir = datadir.resolve()
        cluster = Cluster(datadir, config.runtime.strategy())
        lock = UnlockedFile.for_datadir(datadir, config.lock.dir)
        teardown = run_and_destroy if destroy else run_and_stop
        status = teardown(cluster, lock, session, config.lock.backoff())
    except (ClusterError, OSError) as e:
        ctx.error(str(e))
        raise typer.Exit(1) from None

    raise typer.Exit(status)
