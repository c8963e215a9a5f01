"""Discover PostgreSQL runtimes.

Many versions of PostgreSQL may be installed side by side: on Debian and
Ubuntu under /usr/lib/postgresql/*, with Homebrew under
Cellar/postgresql@*, or anywhere on PATH. A RuntimeStrategy answers three
questions: which runtimes exist, which one best serves a cluster of a given
version, and which one to use for a brand new cluster.
"""

import hashlib
import logging
import os
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..constants import VERSION_TIMEOUT
from ..errors import ClusterError, VersionError
from ..models import PartialVersion, Runtime, Version
from .process import CommandRunner, run_command

logger = logging.getLogger(__name__)

PG_CTL = "pg_ctl"
DEBIAN_RUNTIMES = Path("/usr/lib/postgresql")


@dataclass(frozen=True)
class _CacheEntry:
    size: int
    digest: str
    version: Version


_version_cache: dict[Path, _CacheEntry] = {}
_version_cache_lock = threading.Lock()


def _fingerprint(binary: Path) -> tuple[int, str]:
    sha = hashlib.sha256()
    with open(binary, "rb") as f:
        for chunk in iter(lambda: f.read(16384), b""):
            sha.update(chunk)
    return binary.stat().st_size, sha.hexdigest()


def _default_version_runner(
    argv: Sequence[str | Path], env: dict[str, str] | None = None
) -> subprocess.CompletedProcess[str]:
    return run_command(argv, env=env, timeout=VERSION_TIMEOUT)


def binary_version(binary: Path, runner: CommandRunner | None = None) -> Version:
    """Get the PostgreSQL version of a binary, e.g. pg_ctl.

    Results are cached by canonical path. The binary is fingerprinted by size
    and content hash on every call; when either changes it is run again.

    Raises:
        VersionError: If the binary fails or prints no recognisable version
        ProcessError: If the binary cannot be run
        OSError: If the binary cannot be read
    """
    binary = binary.resolve(strict=True)
    size, digest = _fingerprint(binary)

    with _version_cache_lock:
        entry = _version_cache.get(binary)
    if entry is not None and entry.size == size and entry.digest == digest:
        return entry.version

    result = (runner or _default_version_runner)([binary, "--version"])
    if result.returncode != 0:
        raise VersionError(VersionError.MISSING, result.stderr)
    # Parses "pg_ctl (PostgreSQL) 12.2" as 12.2
    version = Version.parse(result.stdout)

    with _version_cache_lock:
        _version_cache[binary] = _CacheEntry(size=size, digest=digest, version=version)
    return version


def clear_version_cache() -> None:
    """Forget all cached binary versions."""
    with _version_cache_lock:
        _version_cache.clear()


def runtime_for(bindir: Path, runner: CommandRunner | None = None) -> Runtime:
    """Build a Runtime for bindir, asking its pg_ctl for the version."""
    return Runtime(bindir=bindir, version=binary_version(bindir / PG_CTL, runner))


def _sort_key(runtime: Runtime) -> tuple[int, int, int]:
    return runtime.version.sort_key()


class RuntimeStrategy(ABC):
    """A way of finding PostgreSQL runtimes."""

    @abstractmethod
    def runtimes(self) -> Iterator[Runtime]:
        """Yield every runtime this strategy knows about."""

    def select(self, version: PartialVersion) -> Runtime | None:
        """Pick the highest runtime compatible with version, if any."""
        compatible = (r for r in self.runtimes() if version.compatible(r.version))
        return max(compatible, key=_sort_key, default=None)

    def fallback(self) -> Runtime | None:
        """Pick a runtime when there is no constraint, e.g. for a new cluster.

        Defaults to the highest version known.
        """
        return max(self.runtimes(), key=_sort_key, default=None)


def _runtimes_in(bindirs: Iterable[Path], runner: CommandRunner | None) -> Iterator[Runtime]:
    for bindir in bindirs:
        try:
            yield runtime_for(bindir, runner)
        except (ClusterError, OSError) as e:
            # Can't determine the version, so it's no use to us
            logger.debug(f"Ignoring runtime in {bindir}: {e}")


class RuntimesInDirs(RuntimeStrategy):
    """Runtimes in an explicit list of bindirs."""

    def __init__(self, bindirs: Iterable[Path], runner: CommandRunner | None = None) -> None:
        self.bindirs = [Path(bindir) for bindir in bindirs]
        self.runner = runner

    def runtimes(self) -> Iterator[Runtime]:
        return _runtimes_in(self.bindirs, self.runner)


class RuntimesOnPath(RuntimeStrategy):
    """Runtimes on a PATH-style search path.

    Args:
        path: Search path to use; None reads PATH from the environment
            each time runtimes() is called.
    """

    def __init__(self, path: str | None = None, runner: CommandRunner | None = None) -> None:
        self.path = path
        self.runner = runner

    def bindirs(self) -> list[Path]:
        path = os.environ.get("PATH", "") if self.path is None else self.path
        entries = (Path(entry) for entry in path.split(os.pathsep) if entry)
        return [entry for entry in entries if (entry / PG_CTL).exists()]

    def runtimes(self) -> Iterator[Runtime]:
        return _runtimes_in(self.bindirs(), self.runner)


class RuntimesOnPlatform(RuntimeStrategy):
    """Runtimes found using platform-specific knowledge.

    - Linux: Debian/Ubuntu style /usr/lib/postgresql/*/bin
    - macOS: Homebrew Cellar/postgresql@*/*/bin
    """

    def __init__(self, runner: CommandRunner | None = None) -> None:
        self.runner = runner

    def bindirs(self) -> list[Path]:
        if sys.platform.startswith("linux"):
            pattern_root, pattern = DEBIAN_RUNTIMES, f"*/bin/{PG_CTL}"
        elif sys.platform == "darwin":
            prefix = self._brew_prefix()
            if prefix is None:
                return []
            pattern_root, pattern = prefix / "Cellar", f"postgresql@*/*/bin/{PG_CTL}"
        else:
            return []
        if not pattern_root.is_dir():
            return []
        return sorted(path.parent for path in pattern_root.glob(pattern) if path.is_file())

    def _brew_prefix(self) -> Path | None:
        try:
            result = (self.runner or _default_version_runner)(["brew", "--prefix"])
        except (ClusterError, OSError):
            return None
        if result.returncode != 0:
            return None
        return Path(result.stdout.strip())

    def runtimes(self) -> Iterator[Runtime]:
        return _runtimes_in(self.bindirs(), self.runner)


class StrategySet(RuntimeStrategy):
    """Several strategies, in order of preference."""

    def __init__(self, strategies: Iterable[RuntimeStrategy]) -> None:
        self.strategies = list(strategies)

    def runtimes(self) -> Iterator[Runtime]:
        """Runtimes from every strategy, deduplicated by version.

        The first runtime seen with a given version wins.
        """
        seen: set[Version] = set()
        for strategy in self.strategies:
            for runtime in strategy.runtimes():
                if runtime.version not in seen:
                    seen.add(runtime.version)
                    yield runtime

    def select(self, version: PartialVersion) -> Runtime | None:
        for strategy in self.strategies:
            runtime = strategy.select(version)
            if runtime is not None:
                return runtime
        return None

    def fallback(self) -> Runtime | None:
        for strategy in self.strategies:
            runtime = strategy.fallback()
            if runtime is not None:
                return runtime
        return None


class FixedRuntime(RuntimeStrategy):
    """A single known runtime used as a strategy."""

    def __init__(self, runtime: Runtime) -> None:
        self.runtime = runtime

    def runtimes(self) -> Iterator[Runtime]:
        yield self.runtime

    def select(self, version: PartialVersion) -> Runtime | None:
        return self.runtime if version.compatible(self.runtime.version) else None

    def fallback(self) -> Runtime | None:
        return self.runtime


def default_strategy(
    bindirs: Iterable[Path] = (),
    use_path: bool = True,
    use_platform: bool = True,
) -> StrategySet:
    """Configured bindirs first, then PATH, then platform locations."""
    strategies: list[RuntimeStrategy] = []
    bindirs = list(bindirs)
    if bindirs:
        strategies.append(RuntimesInDirs(bindirs))
    if use_path:
        strategies.append(RuntimesOnPath())
    if use_platform:
        strategies.append(RuntimesOnPlatform())
    return StrategySet(strategies)
