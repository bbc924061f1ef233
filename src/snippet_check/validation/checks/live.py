"""Live execution check.

Runs each entry's statements against a real PostgreSQL server. Every entry
gets its own pooled connection and a single transaction that is always rolled
back, so illustrative INSERT/UPDATE/DELETE examples never change the target
database. Snippets that need objects from their own fictional schema are
reported as skipped rather than failed.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import psycopg
from pglast import ast, parse_sql, split
from psycopg_pool import ConnectionPool

from snippet_check.catalog.loader import CatalogEntry
from snippet_check.core.enums import Outcome
from snippet_check.core.utils import token_at
from ..config import (
    CONNECTION_SQLSTATE_CLASS,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_CONNECT_TIMEOUT,
    classify_sqlstate,
)
from ..models import CheckResult
from .syntax import PreparedSql, SyntaxChecker

logger = logging.getLogger(__name__)

Statement = Tuple[int, str]  # (offset into the prepared SQL, statement text)


class StatementFailed(Exception):
    """A statement of an entry raised a database error."""

    def __init__(self, index: int, error: psycopg.Error) -> None:
        super().__init__(str(error))
        self.index = index
        self.error = error


def open_pool(
    dsn: str, size: int, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
) -> ConnectionPool:
    """Open a connection pool with one connection slot per worker.

    Raises:
        psycopg_pool.PoolTimeout: If no connection can be made within connect_timeout.
    """
    pool = ConnectionPool(
        conninfo=dsn,
        min_size=1,
        max_size=max(1, size),
        timeout=connect_timeout,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=connect_timeout)
    except Exception:
        # The pool's background workers are already running
        pool.close()
        raise
    logger.info("Connection pool opened (max %d connections)", max(1, size))
    return pool


def _is_transient(error: psycopg.Error) -> bool:
    if not isinstance(error, psycopg.OperationalError):
        return False
    return error.sqlstate is None or error.sqlstate.startswith(CONNECTION_SQLSTATE_CLASS)


class LiveChecker:
    """Syntax-check an entry, then execute it inside a rolled-back transaction."""

    def __init__(
        self,
        pool: ConnectionPool,
        syntax_checker: Optional[SyntaxChecker] = None,
        statement_timeout_ms: Optional[int] = None,
        connect_retries: int = DEFAULT_CONNECT_RETRIES,
    ) -> None:
        self.pool = pool
        self.syntax_checker = syntax_checker or SyntaxChecker()
        self.statement_timeout_ms = statement_timeout_ms
        self.connect_retries = connect_retries

    def check(self, entry: CatalogEntry) -> CheckResult:
        result = self.syntax_checker.check(entry)
        if result.outcome != Outcome.PASSED:
            return result

        prepared = self.syntax_checker.prepare(entry)
        if any(isinstance(raw.stmt, ast.TransactionStmt) for raw in parse_sql(prepared.text)):
            return CheckResult(
                entry=entry,
                outcome=Outcome.SKIPPED,
                detail="contains transaction control statements; not executed in live mode",
            )

        statements: List[Statement] = [
            (s.start, prepared.text[s])
            for s in split(prepared.text, with_parser=True, only_slices=True)
        ]

        attempts = self.connect_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                self._execute(statements)
                return CheckResult(entry=entry, outcome=Outcome.PASSED)
            except StatementFailed as failure:
                index: Optional[int] = failure.index
                error = failure.error
            except psycopg.Error as acquire_error:
                index, error = None, acquire_error

            if _is_transient(error) and attempt < attempts:
                logger.warning(
                    "Section %d: transient connection failure (%s), retrying",
                    entry.section_number,
                    error,
                )
                continue
            return self._result_for_error(entry, prepared, statements, index, error)

        raise AssertionError("unreachable")  # pragma: no cover

    def _execute(self, statements: List[Statement]) -> None:
        with self.pool.connection() as conn:
            with conn.transaction(force_rollback=True):
                if self.statement_timeout_ms is not None:
                    conn.execute(
                        f"SET LOCAL statement_timeout = {int(self.statement_timeout_ms)}"
                    )
                for index, (_, sql) in enumerate(statements):
                    try:
                        conn.execute(sql)
                    except psycopg.Error as e:
                        raise StatementFailed(index, e) from e

    @staticmethod
    def _result_for_error(
        entry: CatalogEntry,
        prepared: PreparedSql,
        statements: List[Statement],
        index: Optional[int],
        error: psycopg.Error,
    ) -> CheckResult:
        message = error.diag.message_primary or str(error).strip() or type(error).__name__
        sqlstate = error.sqlstate
        if sqlstate:
            message = f"[{sqlstate}] {message}"
        if index is not None:
            message = f"statement {index + 1}: {message}"

        location = None
        token = None
        if index is not None:
            start, sql = statements[index]
            offset = start + (len(sql) - len(sql.lstrip()))
            position = error.diag.statement_position
            if position and str(position).isdigit():
                offset = start + int(position) - 1
            location = prepared.location(offset)
            token = token_at(prepared.text, offset)

        if _is_transient(error):
            return CheckResult(
                entry=entry,
                outcome=Outcome.RUNTIME_ERROR,
                detail=f"connection failed: {message}",
            )

        category = classify_sqlstate(sqlstate)
        if category == "syntax":
            return CheckResult(
                entry=entry,
                outcome=Outcome.SYNTAX_ERROR,
                detail=message,
                location=location,
                token=token,
            )
        if category == "schema_context":
            return CheckResult(
                entry=entry,
                outcome=Outcome.SKIPPED,
                detail=f"requires schema context: {message}",
                location=location,
            )
        if category == "transaction":
            return CheckResult(
                entry=entry,
                outcome=Outcome.SKIPPED,
                detail=f"cannot run inside a rolled-back transaction: {message}",
                location=location,
            )
        return CheckResult(
            entry=entry,
            outcome=Outcome.RUNTIME_ERROR,
            detail=message,
            location=location,
        )
