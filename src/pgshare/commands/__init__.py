"""CLI command implementations for pgshare.

This package contains the implementation of each CLI command,
separated from the CLI framework setup in cli.py.
"""

from .execute import execute
from .init import init
from .runtimes import runtimes
from .shell import shell

__all__ = [
    "execute",
    "init",
    "runtimes",
    "shell",
]
