"""Runtime model: one installed PostgreSQL, identified by its bindir."""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from .version import Version


def prepend_to_path(directory: Path, path: str | None) -> str:
    """Put directory at the front of a PATH-style string.

    If directory is already present it is moved to the front rather than
    duplicated. Does not modify the environment.
    """
    entries = [str(directory)]
    if path:
        entries.extend(entry for entry in path.split(os.pathsep) if entry != str(directory))
    return os.pathsep.join(entries)


class Runtime(BaseModel):
    """An installation of PostgreSQL.

    Attributes:
        bindir: Directory containing pg_ctl and the other binaries.
        version: Version reported by ``pg_ctl --version``.
    """

    model_config = ConfigDict(frozen=True)

    bindir: Path
    version: Version

    def program(self, name: str) -> Path:
        """Path to a program inside this runtime's bindir."""
        return self.bindir / name

    def environ(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Environment for running programs with this runtime first on PATH."""
        env = dict(os.environ if base is None else base)
        env["PATH"] = prepend_to_path(self.bindir, env.get("PATH"))
        return env
