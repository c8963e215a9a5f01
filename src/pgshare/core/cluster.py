"""Create, start, introspect, stop, and destroy PostgreSQL clusters.

A Cluster may not exist on disk yet, may exist but be stopped, or may be
running. Each operation here is idempotent, but nothing stops another
process changing the cluster at the same time; use pgshare.core.coordinate
for that.
"""

import contextlib
import logging
import shlex
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from psycopg2.extensions import connection

from ..constants import LOG_FILE, PID_FILE, VERSION_FILE
from ..errors import (
    ClusterInUse,
    FilesystemError,
    ProcessError,
    RuntimeDefaultNotFound,
    RuntimeNotFound,
)
from ..models import ClusterMode, PartialVersion
from ..services import database as db
from ..services.process import CommandRunner, check_completed, run_command, run_interactive
from ..services.runtime import PG_CTL, RuntimeStrategy
from .status import decode_status

logger = logging.getLogger(__name__)


def exists(datadir: Path) -> bool:
    """Quick check: is datadir a directory containing PG_VERSION?

    version() is more thorough and also says which runtime is needed.
    """
    datadir = Path(datadir)
    return datadir.is_dir() and (datadir / VERSION_FILE).is_file()


def version(datadir: Path) -> PartialVersion | None:
    """Version of PostgreSQL a cluster was created with, from PG_VERSION.

    Before 10 this is major and minor (9.6); from 10 on just the major (14).

    Returns:
        The version, or None if there is no PG_VERSION file

    Raises:
        VersionError: If PG_VERSION is present but unparseable
    """
    try:
        text = (Path(datadir) / VERSION_FILE).read_text()
    except FileNotFoundError:
        return None
    return PartialVersion.parse(text)


class Cluster:
    """A PostgreSQL cluster living in a data directory.

    Args:
        datadir: The cluster's data directory (PGDATA)
        strategy: Finds a runtime matching the cluster's PG_VERSION, or a
            default runtime if the cluster doesn't exist yet
        runner: Runs pg_ctl; tests pass a fake

    Raises:
        RuntimeNotFound: No runtime is compatible with an existing cluster
        RuntimeDefaultNotFound: No runtime was found for a new cluster
    """

    def __init__(
        self,
        datadir: Path,
        strategy: RuntimeStrategy,
        runner: CommandRunner | None = None,
    ) -> None:
        self.datadir = Path(datadir)
        on_disk = version(self.datadir)
        if on_disk is None:
            runtime = strategy.fallback()
            if runtime is None:
                raise RuntimeDefaultNotFound()
        else:
            runtime = strategy.select(on_disk)
            if runtime is None:
                raise RuntimeNotFound(on_disk)
        self.runtime = runtime
        self._runner = runner or run_command

    def __repr__(self) -> str:
        return f"<Cluster {self.datadir} (PostgreSQL {self.runtime.version})>"

    @property
    def pidfile(self) -> Path:
        """PID file of the running server; may not exist."""
        return self.datadir / PID_FILE

    @property
    def logfile(self) -> Path:
        """Server log file; may not exist."""
        return self.datadir / LOG_FILE

    def exists(self) -> bool:
        return exists(self.datadir)

    def environ(self, database: str | None = None) -> dict[str, str]:
        """Environment for running PostgreSQL tools against this cluster."""
        env = self.runtime.environ()
        env["PGDATA"] = str(self.datadir)
        env["PGHOST"] = str(self.datadir)
        if database is not None:
            env["PGDATABASE"] = database
        return env

    def _ctl(
        self, *args: str | Path, env: dict[str, str] | None = None
    ) -> subprocess.CompletedProcess[str]:
        environ = self.environ()
        environ.update(env or {})
        return self._runner([self.runtime.program(PG_CTL), *args], environ)

    def running(self) -> bool:
        """Check if the server is running.

        Distinguishes carefully between definitely running, definitely not
        running, and don't know; the last raises.

        Raises:
            IndeterminateState: pg_ctl status gave an unrecognised answer
            UnsupportedVersion: The runtime is too old to interpret
        """
        result = self._ctl("status")
        output = (result.stdout or "") + (result.stderr or "")
        running = decode_status(self.runtime.version, result.returncode, self.exists, output)
        logger.debug(f"pg_ctl status exited {result.returncode}: running={running}")
        return running

    def create(self) -> bool:
        """Create the cluster if it does not already exist.

        Returns:
            True if this call created it, False if it was already there

        Raises:
            ClusterInUse: Something else is busy with the cluster
            FilesystemError: The data directory could not be created
        """
        try:
            return self._create()
        except BlockingIOError as e:
            if self.exists():
                return False
            raise ClusterInUse() from e
        except ProcessError:
            # Lost a race with another initdb that has since finished
            if self.exists():
                logger.debug(f"Cluster in {self.datadir} appeared while creating it")
                return False
            raise

    def _create(self) -> bool:
        if self.exists():
            return False
        try:
            self.datadir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Cannot create {self.datadir}: {e}") from e
        # "-o" takes the initdb options as one argument
        check_completed(
            self._ctl("init", "-s", "-o", "-E utf8 --locale C -A trust", env={"TZ": "UTC"})
        )
        logger.info(f"Created cluster in {self.datadir}")
        return True

    def start(self) -> bool:
        """Start the server if it's not running, creating the cluster first.

        Returns:
            True if this call started it, False if it was already running

        Raises:
            ClusterInUse: Something else is busy with the cluster
        """
        try:
            return self._start()
        except BlockingIOError as e:
            if self.running():
                return False
            raise ClusterInUse() from e
        except ProcessError:
            if self.running():
                logger.debug(f"Cluster in {self.datadir} started while starting it")
                return False
            raise

    def _start(self) -> bool:
        self.create()
        if self.running():
            return False
        # pg_ctl: -l log file, -s quiet, -w wait for startup.
        # postgres: -h '' disables TCP, -k puts the socket in the data directory.
        check_completed(
            self._ctl(
                "start",
                "-l",
                self.logfile,
                "-s",
                "-w",
                "-o",
                f"-h '' -k {shlex.quote(str(self.datadir))}",
            )
        )
        logger.info(f"Started cluster in {self.datadir}")
        return True

    def stop(self) -> bool:
        """Stop the server if it's running.

        Returns:
            True if this call stopped it, False if it was already stopped

        Raises:
            ClusterInUse: Something else is busy with the cluster
        """
        try:
            return self._stop()
        except BlockingIOError as e:
            if not self.running():
                return False
            raise ClusterInUse() from e

    def _stop(self) -> bool:
        if not self.running():
            return False
        # -w waits for shutdown; fast mode disconnects clients
        check_completed(self._ctl("stop", "-s", "-w", "-m", "fast"))
        logger.info(f"Stopped cluster in {self.datadir}")
        return True

    def destroy(self) -> bool:
        """Stop the server if it's running, then delete the data directory.

        Returns:
            True if anything was removed

        Raises:
            ClusterInUse: Something else is busy with the cluster
            FilesystemError: The data directory could not be removed
        """
        try:
            return self._destroy()
        except BlockingIOError as e:
            raise ClusterInUse() from e

    def _destroy(self) -> bool:
        if self._stop() or self.datadir.is_dir():
            try:
                shutil.rmtree(self.datadir)
            except OSError as e:
                raise FilesystemError(f"Cannot remove {self.datadir}: {e}") from e
            logger.info(f"Destroyed cluster in {self.datadir}")
            return True
        return False

    def connect(self, database: str = "postgres", user: str | None = None) -> connection:
        """Connect to a database in this (running) cluster."""
        return db.connect(self.datadir, database, user)

    def databases(self) -> list[str]:
        with contextlib.closing(self.connect("template1")) as conn:
            return db.list_databases(conn)

    def createdb(self, name: str) -> bool:
        with contextlib.closing(self.connect("template1")) as conn:
            db.create_database(conn, name)
        return True

    def dropdb(self, name: str) -> bool:
        with contextlib.closing(self.connect("template1")) as conn:
            db.drop_database(conn, name)
        return True

    def set_mode(self, mode: ClusterMode) -> None:
        """Apply a durability mode; it persists across restarts."""
        with contextlib.closing(self.connect("template1")) as conn:
            db.apply_mode(conn, mode)

    def shell(self, database: str) -> int:
        """Run an interactive psql session; returns its exit status."""
        return run_interactive([self.runtime.program("psql"), "--quiet"], self.environ(database))

    def exec(self, database: str, command: str, args: Sequence[str] = ()) -> int:
        """Run a command with this cluster's environment; returns its exit status.

        The runtime's bindir is first on PATH, so bare names like ``psql``
        resolve to the cluster's own tools.
        """
        env = self.environ(database)
        program = shutil.which(command, path=env["PATH"]) or command
        return run_interactive([program, *args], env)
