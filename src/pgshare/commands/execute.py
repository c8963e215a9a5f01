"""Exec command implementation."""

import os
from pathlib import Path

import typer

from ..core import Cluster
from ..models import ClusterMode
from .session import run_in_cluster


def execute(
    command: str | None = typer.Argument(
        None,
        help="Command to run (default: $SHELL)",
    ),
    args: list[str] | None = typer.Argument(
        None,
        help="Arguments for the command",
    ),
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
    """Run a command with PGDATA, PGHOST and PGDATABASE set for the cluster.

    Use -- before the command if it has options of its own, for example
    ``pgshare exec -- pytest -x``. Exits with the command's status.
    """
    program = command or os.environ.get("SHELL", "/bin/sh")

    def action(cluster: Cluster, name: str) -> int:
        return cluster.exec(name, program, args or [])

    run_in_cluster(datadir, database, destroy, mode, action)
