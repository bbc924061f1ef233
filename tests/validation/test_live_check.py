"""Tests for the LiveChecker using a mocked connection pool.

The pool hands out a MagicMock connection whose ``execute`` raises real
``psycopg.errors`` instances, so SQLSTATE classification is exercised without
a running server.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import psycopg
import psycopg.errors
import pytest

from snippet_check.catalog import CatalogEntry
from snippet_check.core.enums import Outcome
from snippet_check.validation.checks.live import LiveChecker, open_pool
from snippet_check.validation.models import SourceLocation


def _entry(body: str) -> CatalogEntry:
    return CatalogEntry(section_number=7, title="Live entry", body=body)


def _pool_with(conn: MagicMock) -> MagicMock:
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    return pool


@pytest.fixture
def conn():
    return MagicMock()


def test_passing_entry_runs_in_rolled_back_transaction(conn):
    checker = LiveChecker(_pool_with(conn), statement_timeout_ms=250)
    result = checker.check(_entry("INSERT INTO users (name) VALUES ('a');\nSELECT 1;"))

    assert result.outcome == Outcome.PASSED
    conn.transaction.assert_called_once_with(force_rollback=True)
    executed = [c.args[0] for c in conn.execute.call_args_list]
    assert executed[0] == "SET LOCAL statement_timeout = 250"
    assert len(executed) == 3
    assert "INSERT INTO users" in executed[1]
    assert "SELECT 1" in executed[2]


def test_undefined_table_is_skipped(conn):
    conn.execute.side_effect = psycopg.errors.UndefinedTable('relation "users" does not exist')
    result = LiveChecker(_pool_with(conn)).check(_entry("SELECT * FROM users;"))

    assert result.outcome == Outcome.SKIPPED
    assert "requires schema context" in result.detail
    assert "[42P01]" in result.detail
    assert result.location == SourceLocation(line=1, column=1)


def test_runtime_error_names_failing_statement(conn):
    def fake_execute(sql, *args, **kwargs):
        if "1/0" in sql:
            raise psycopg.errors.DivisionByZero("division by zero")

    conn.execute.side_effect = fake_execute
    result = LiveChecker(_pool_with(conn)).check(_entry("SELECT 1;\nSELECT 1/0;"))

    assert result.outcome == Outcome.RUNTIME_ERROR
    assert result.detail == "statement 2: [22012] division by zero"
    assert result.location == SourceLocation(line=2, column=1)


def test_server_syntax_error_is_syntax_error(conn):
    conn.execute.side_effect = psycopg.errors.SyntaxError("syntax error at or near \"x\"")
    result = LiveChecker(_pool_with(conn)).check(_entry("SELECT 1;"))
    assert result.outcome == Outcome.SYNTAX_ERROR


def test_statement_refusing_transaction_is_skipped(conn):
    conn.execute.side_effect = psycopg.errors.ActiveSqlTransaction(
        "VACUUM cannot run inside a transaction block"
    )
    result = LiveChecker(_pool_with(conn)).check(_entry("VACUUM users;"))
    assert result.outcome == Outcome.SKIPPED
    assert "rolled-back transaction" in result.detail


def test_transaction_control_is_not_executed(conn):
    pool = _pool_with(conn)
    result = LiveChecker(pool).check(_entry("BEGIN;\nUPDATE t SET x = 1;\nCOMMIT;"))
    assert result.outcome == Outcome.SKIPPED
    assert "transaction control" in result.detail
    pool.connection.assert_not_called()


def test_syntax_error_short_circuits(conn):
    pool = _pool_with(conn)
    result = LiveChecker(pool).check(_entry("SELECT * FROM WHERE;"))
    assert result.outcome == Outcome.SYNTAX_ERROR
    assert result.token == "WHERE"
    pool.connection.assert_not_called()


def test_transient_connection_failure_is_retried_once(conn):
    pool = MagicMock()
    good = MagicMock()
    good.__enter__.return_value = conn
    pool.connection.side_effect = [psycopg.OperationalError("connection refused"), good]

    result = LiveChecker(pool).check(_entry("SELECT 1;"))

    assert result.outcome == Outcome.PASSED
    assert pool.connection.call_count == 2


def test_repeated_connection_failure_is_runtime_error():
    pool = MagicMock()
    pool.connection.side_effect = psycopg.OperationalError("connection refused")

    result = LiveChecker(pool, connect_retries=1).check(_entry("SELECT 1;"))

    assert result.outcome == Outcome.RUNTIME_ERROR
    assert result.detail.startswith("connection failed:")
    assert pool.connection.call_count == 2


def test_non_transient_errors_are_not_retried(conn):
    pool = _pool_with(conn)
    conn.execute.side_effect = psycopg.errors.UniqueViolation("duplicate key value")
    result = LiveChecker(pool).check(_entry("INSERT INTO t VALUES (1);"))
    assert result.outcome == Outcome.RUNTIME_ERROR
    assert pool.connection.call_count == 1


def test_open_pool_closes_pool_when_connect_fails(monkeypatch):
    pool = MagicMock()
    pool.open.side_effect = psycopg.OperationalError("connection refused")
    monkeypatch.setattr(
        "snippet_check.validation.checks.live.ConnectionPool", MagicMock(return_value=pool)
    )

    with pytest.raises(psycopg.OperationalError, match="connection refused"):
        open_pool("postgresql://x", size=2, connect_timeout=0.1)

    pool.close.assert_called_once_with()
