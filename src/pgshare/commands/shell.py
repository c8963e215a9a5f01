"""Shell command implementation."""

from pathlib import Path

import typer

from ..core import Cluster
from ..models import ClusterMode
from .session import run_in_cluster


def shell(
    datadir: Path | None = typer.Option(
        None,
        "--datadir",
        "-D",
        envvar="PGDATA",
        help="Cluster data directory (default: from config)",
    ),
    database: str | None = typer.Option(
        None,
        "--database",
        "-d",
        envvar="PGDATABASE",
        help="Database to connect to, created if missing",
    ),
    destroy: bool | None = typer.Option(
        None,
        "--destroy/--no-destroy",
        help="Delete the cluster afterwards if no one else is using it",
    ),
    mode: ClusterMode | None = typer.Option(
        None,
        "--mode",
        help="Durability mode: fast trades crash safety for speed",
    ),
) -> None:
    """Start a psql shell, starting the cluster first if necessary.

    The cluster is created if it doesn't exist, and stopped when the shell
    exits unless other sessions are still using it.
    """

    def action(cluster: Cluster, name: str) -> int:
        return cluster.shell(name)

    run_in_cluster(datadir, database, destroy, mode, action)
