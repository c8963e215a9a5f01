"""Wire-protocol access to a cluster via psycopg2.

Clusters listen only on a Unix socket inside their data directory, so the
data directory doubles as the host.
"""

import getpass
import logging
from pathlib import Path

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import connection

from ..errors import DatabaseError
from ..models import MODE_SETTINGS, ClusterMode

logger = logging.getLogger(__name__)


def connect(host: Path, database: str, user: str | None = None) -> connection:
    """Open an autocommit connection to a database in a cluster.

    Autocommit is needed for CREATE/DROP DATABASE and ALTER SYSTEM, which
    refuse to run inside a transaction block.

    Args:
        host: Socket directory, i.e. the cluster's data directory
        database: Database name
        user: Role to connect as (default: the current OS user)

    Raises:
        DatabaseError: If the connection fails
    """
    user = user or getpass.getuser()
    try:
        conn = psycopg2.connect(host=str(host), dbname=database, user=user)
    except psycopg2.Error as e:
        raise DatabaseError(f"Cannot connect to database {database!r} in {host}: {e}") from e
    conn.autocommit = True
    return conn


def list_databases(conn: connection) -> list[str]:
    """Names of all databases, sorted."""
    try:
        with conn.cursor() as cur:
            cur.execute("SELECT datname FROM pg_catalog.pg_database ORDER BY datname")
            return [row[0] for row in cur.fetchall()]
    except psycopg2.Error as e:
        raise DatabaseError(f"Cannot list databases: {e}") from e


def create_database(conn: connection, name: str) -> None:
    """CREATE DATABASE with a safely quoted name."""
    _execute(conn, sql.SQL("CREATE DATABASE {}").format(sql.Identifier(name)))
    logger.info(f"Created database {name}")


def drop_database(conn: connection, name: str) -> None:
    """DROP DATABASE with a safely quoted name."""
    _execute(conn, sql.SQL("DROP DATABASE {}").format(sql.Identifier(name)))
    logger.info(f"Dropped database {name}")


def apply_mode(conn: connection, mode: ClusterMode) -> None:
    """Persist a durability mode with ALTER SYSTEM and reload the config."""
    for setting in MODE_SETTINGS:
        if mode is ClusterMode.FAST:
            statement = sql.SQL("ALTER SYSTEM SET {} = off").format(sql.Identifier(setting))
        else:
            statement = sql.SQL("ALTER SYSTEM RESET {}").format(sql.Identifier(setting))
        _execute(conn, statement)
    _execute(conn, sql.SQL("SELECT pg_reload_conf()"))
    logger.info(f"Cluster mode set to {mode.value}")


def _execute(conn: connection, statement: sql.Composable) -> None:
    try:
        with conn.cursor() as cur:
            cur.execute(statement)
    except psycopg2.Error as e:
        raise DatabaseError(f"Statement failed: {e}") from e
