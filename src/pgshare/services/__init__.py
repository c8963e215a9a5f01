"""External collaborators for pgshare.

- process: running pg_ctl, psql and arbitrary commands
- runtime: discovering installed PostgreSQL runtimes and their versions
- database: psycopg2 access to a running cluster
"""

from .database import apply_mode, connect, create_database, drop_database, list_databases
from .process import CommandRunner, check_completed, run_command, run_interactive
from .runtime import (
    FixedRuntime,
    RuntimesInDirs,
    RuntimesOnPath,
    RuntimesOnPlatform,
    RuntimeStrategy,
    StrategySet,
    binary_version,
    clear_version_cache,
    default_strategy,
    runtime_for,
)

__all__ = [
    "CommandRunner",
    "FixedRuntime",
    "RuntimeStrategy",
    "RuntimesInDirs",
    "RuntimesOnPath",
    "RuntimesOnPlatform",
    "StrategySet",
    "apply_mode",
    "binary_version",
    "check_completed",
    "clear_version_cache",
    "connect",
    "create_database",
    "default_strategy",
    "drop_database",
    "list_databases",
    "run_command",
    "run_interactive",
    "runtime_for",
]
