"""Tests for psycopg2 database access."""

from collections.abc import Generator
from pathlib import Path
from unittest import mock

import psycopg2
from psycopg2 import errors, sql
import pytest

from pgshare.errors import DatabaseError
from pgshare.models import ClusterMode
from pgshare.services import (
    apply_mode,
    connect,
    create_database,
    drop_database,
    list_databases,
)


@pytest.fixture
def conn() -> mock.MagicMock:
    """A mock connection whose cursor works as a context manager."""
    return mock.MagicMock()


def _cursor(conn: mock.MagicMock) -> mock.MagicMock:
    return conn.cursor.return_value.__enter__.return_value


def _statements(conn: mock.MagicMock) -> list[object]:
    return [c.args[0] for c in _cursor(conn).execute.call_args_list]


class TestConnect:
    """Tests for connect function."""

    @pytest.fixture
    def pg_connect(self) -> Generator[mock.MagicMock, None, None]:
        with mock.patch("pgshare.services.database.psycopg2.connect") as pg_connect:
            yield pg_connect

    def test_connects_over_socket_dir(self, pg_connect: mock.MagicMock) -> None:
        conn = connect(Path("/data/cluster"), "mydb", "alice")
        pg_connect.assert_called_once_with(host="/data/cluster", dbname="mydb", user="alice")
        assert conn.autocommit is True

    def test_defaults_to_current_user(self, pg_connect: mock.MagicMock) -> None:
        with mock.patch("pgshare.services.database.getpass.getuser", return_value="bob"):
            connect(Path("/data/cluster"), "mydb")
        assert pg_connect.call_args.kwargs["user"] == "bob"

    def test_failure_wrapped(self, pg_connect: mock.MagicMock) -> None:
        pg_connect.side_effect = psycopg2.OperationalError("no such socket")
        with pytest.raises(DatabaseError, match="Cannot connect to database 'mydb'"):
            connect(Path("/data/cluster"), "mydb", "alice")


class TestStatements:
    """Tests for statement helpers."""

    def test_list_databases(self, conn: mock.MagicMock) -> None:
        _cursor(conn).fetchall.return_value = [("postgres",), ("template0",)]
        assert list_databases(conn) == ["postgres", "template0"]

    def test_list_databases_failure(self, conn: mock.MagicMock) -> None:
        _cursor(conn).execute.side_effect = psycopg2.ProgrammingError("nope")
        with pytest.raises(DatabaseError, match="Cannot list databases"):
            list_databases(conn)

    def test_create_database_quotes_name(self, conn: mock.MagicMock) -> None:
        create_database(conn, 'odd "name"')
        (statement,) = _statements(conn)
        assert isinstance(statement, sql.Composed)
        assert sql.Identifier('odd "name"') in statement.seq

    def test_drop_database(self, conn: mock.MagicMock) -> None:
        drop_database(conn, "app")
        (statement,) = _statements(conn)
        assert sql.Identifier("app") in statement.seq

    def test_statement_failure_wrapped(self, conn: mock.MagicMock) -> None:
        _cursor(conn).execute.side_effect = errors.DuplicateDatabase("exists")
        with pytest.raises(DatabaseError, match="Statement failed"):
            create_database(conn, "app")


class TestApplyMode:
    """Tests for apply_mode function."""

    def test_fast_turns_settings_off(self, conn: mock.MagicMock) -> None:
        apply_mode(conn, ClusterMode.FAST)
        statements = _statements(conn)
        # One per setting, then a reload
        assert len(statements) == 4
        for statement in statements[:3]:
            assert "ALTER SYSTEM SET" in repr(statement)
        assert "pg_reload_conf" in repr(statements[-1])

    def test_slow_resets_settings(self, conn: mock.MagicMock) -> None:
        apply_mode(conn, ClusterMode.SLOW)
        statements = _statements(conn)
        assert len(statements) == 4
        for statement in statements[:3]:
            assert "ALTER SYSTEM RESET" in repr(statement)

    def test_covers_durability_settings(self, conn: mock.MagicMock) -> None:
        apply_mode(conn, ClusterMode.FAST)
        names = {
            part.strings[0]
            for statement in _statements(conn)[:3]
            for part in statement.seq
            if isinstance(part, sql.Identifier)
        }
        assert names == {"fsync", "full_page_writes", "synchronous_commit"}
