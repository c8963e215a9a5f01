"""Shared test fixtures for pgshare tests."""

import subprocess
import threading
from collections.abc import Callable, Generator, Sequence
from pathlib import Path

import pytest
from typer.testing import CliRunner

from pgshare.config import PgShareConfig, set_active_config
from pgshare.core import Cluster
from pgshare.models import Runtime, Version
from pgshare.services import FixedRuntime, clear_version_cache

# Handler for one pg_ctl subcommand: gets the data directory, returns an exit code
CtlHandler = Callable[[Path], int]


class FakeCtl:
    """Scripted stand-in for pg_ctl, tracking one server's state in memory.

    Subcommands behave like PostgreSQL 10+: ``status`` exits 0 when running,
    3 when stopped, and 4 when the data directory is missing. Individual
    subcommands can be overridden through ``handlers``.
    """

    def __init__(self, pg_version: str = "14") -> None:
        self.pg_version = pg_version
        self.running = False
        self.calls: list[str] = []
        self.handlers: dict[str, CtlHandler] = {}
        self._lock = threading.Lock()

    def count(self, command: str) -> int:
        return self.calls.count(command)

    def __call__(
        self,
        argv: Sequence[str | Path],
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess[str]:
        assert env is not None
        command = str(argv[1])
        datadir = Path(env["PGDATA"])
        with self._lock:
            self.calls.append(command)
            handler = self.handlers.get(command)
            if handler is not None:
                code = handler(datadir)
            else:
                code = self._default(command, datadir)
        return subprocess.CompletedProcess([str(a) for a in argv], code, "", "")

    def _default(self, command: str, datadir: Path) -> int:
        if command == "status":
            if self.running:
                return 0
            return 3 if datadir.is_dir() else 4
        if command == "init":
            (datadir / "PG_VERSION").write_text(f"{self.pg_version}\n")
            return 0
        if command == "start":
            self.running = True
            return 0
        if command == "stop":
            self.running = False
            return 0
        return 1


class FakeResource:
    """In-memory Resource recording how it was driven."""

    def __init__(self, running: Sequence[bool] = ()) -> None:
        self._running = list(running)
        self.started = 0
        self.stopped = 0
        self.destroyed = 0

    def running(self) -> bool:
        if self._running:
            return self._running.pop(0)
        return True

    def start(self) -> bool:
        self.started += 1
        return True

    def stop(self) -> bool:
        self.stopped += 1
        return True

    def destroy(self) -> bool:
        self.destroyed += 1
        return True


@pytest.fixture
def runner() -> CliRunner:
    """Create CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _reset_state() -> Generator[None, None, None]:
    """Reset module-level caches and config between tests."""
    clear_version_cache()
    yield
    clear_version_cache()
    set_active_config(PgShareConfig())


@pytest.fixture
def runtime(tmp_path: Path) -> Runtime:
    """A PostgreSQL 14.6 runtime; its bindir exists but holds nothing."""
    bindir = tmp_path / "bin"
    bindir.mkdir()
    return Runtime(bindir=bindir, version=Version(major=14, minor=6))


@pytest.fixture
def ctl() -> FakeCtl:
    return FakeCtl()


@pytest.fixture
def datadir(tmp_path: Path) -> Path:
    """Where the cluster lives; not created."""
    return tmp_path / "cluster"


@pytest.fixture
def lock_dir(tmp_path: Path) -> Path:
    d = tmp_path / "locks"
    d.mkdir()
    return d


@pytest.fixture
def cluster(datadir: Path, runtime: Runtime, ctl: FakeCtl) -> Cluster:
    """A cluster driven by the fake pg_ctl."""
    return Cluster(datadir, FixedRuntime(runtime), runner=ctl)
