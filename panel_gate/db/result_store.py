from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any

from ..models.config_models import AuthMode, StoreConnectionParams, StoreSchema

"""Historical test-result store client (MS SQL Server via pymssql).

Two read-only count queries:
- count_total_tests: every record for the exact scanned identifier
- count_max_panel_failures: failed records per board on the panel, top row only

Connections are one-shot: connect_with_retry opens a fresh connection per
attempt (no reuse of a failed socket) and open_result_store closes it after the
invocation. Nothing is pooled.
"""

__all__ = [
    "StoreError",
    "StoreConnectionError",
    "QueryError",
    "NoResultError",
    "UnexpectedShapeError",
    "open_connection",
    "connect_with_retry",
    "count_total_tests",
    "count_max_panel_failures",
    "ResultStore",
    "open_result_store",
]

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class StoreConnectionError(StoreError):
    """Raised when every connection attempt failed. ``__cause__`` is the last failure."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class QueryError(StoreError):
    pass


class NoResultError(StoreError):
    pass


class UnexpectedShapeError(StoreError):
    pass


def open_connection(params: StoreConnectionParams) -> Any:
    """Open one pymssql connection. No retry here; see connect_with_retry."""
    try:
        import pymssql  # type: ignore
    except Exception as e:  # pymssql が依存にある想定
        raise RuntimeError(f"pymssql not available: {e}") from e

    kwargs: dict[str, Any] = {
        "server": params.server,
        "login_timeout": params.connect_timeout,
        "timeout": params.query_timeout,
        "autocommit": True,
    }
    if params.port is not None:
        kwargs["port"] = str(params.port)
    if params.auth is AuthMode.SQL:
        kwargs["user"] = params.username
        kwargs["password"] = params.password
    # AuthMode.WINDOWS: user/password を渡さないとドライバが統合認証を使う
    return pymssql.connect(**kwargs)


def connect_with_retry(
    params: StoreConnectionParams,
    max_attempts: int = 3,
    connect: Callable[[StoreConnectionParams], Any] = open_connection,
) -> Any:
    """Connect to the store, trying up to ``max_attempts`` times in total.

    Attempts run back to back with no delay. Each attempt gets its own copy of
    the parameters and opens a brand new connection.

    Raises:
        StoreConnectionError: all attempts failed (last failure chained as cause)
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            conn = connect(params.with_overrides())
        except Exception as e:
            last_error = e
            logger.debug(f"connect attempt {attempt}/{max_attempts} to {params.server} failed: {e}")
            continue
        if attempt > 1:
            logger.info(f"connected to {params.server} on attempt {attempt}")
        return conn

    raise StoreConnectionError(
        "Connection to DB failed!", attempts=max_attempts
    ) from last_error


def _quote_ident(name: str) -> str:
    """Bracket-quote a possibly schema-qualified SQL Server identifier."""
    parts = [p.strip().strip("[]") for p in name.split(".")]
    return ".".join("[" + p.replace("]", "]]") + "]" for p in parts)


def _use_database(cursor: Any, database: str | None) -> None:
    if not database:
        return
    try:
        cursor.execute(f"USE {_quote_ident(database)}")
    except Exception as e:
        raise QueryError(f"USE {database} failed: {e}") from e


def _read_count(row: Any, label: str) -> int:
    try:
        value = row[0]
    except (TypeError, IndexError, KeyError) as e:
        raise UnexpectedShapeError(f"{label} Parsing error.") from e
    # bool は int のサブクラスなので除外
    if isinstance(value, bool) or not isinstance(value, int):
        raise UnexpectedShapeError(f"{label} Parsing error.")
    return value


def count_total_tests(
    conn: Any,
    database: str | None,
    serial: str,
    schema: StoreSchema | None = None,
) -> int:
    """Count every historical record (pass or fail) for the exact identifier.

    Raises:
        QueryError: transport/protocol failure
        NoResultError: the COUNT query returned no row
        UnexpectedShapeError: first column is not an integer
    """
    schema = schema or StoreSchema()
    sql = (
        f"SELECT COUNT(*) FROM {_quote_ident(schema.table)} "
        f"WHERE {_quote_ident(schema.serial_column)} = %s"
    )
    try:
        cursor = conn.cursor()
    except Exception as e:
        raise QueryError(f"Q#1 failed: {e}") from e
    try:
        _use_database(cursor, database)
        try:
            cursor.execute(sql, (serial,))
            row = cursor.fetchone()
        except Exception as e:
            raise QueryError(f"Q#1 failed: {e}") from e
    finally:
        cursor.close()

    if row is None:
        raise NoResultError("Q#1 result is none.")
    return _read_count(row, "Q#1")


def count_max_panel_failures(
    conn: Any,
    database: str | None,
    siblings: Sequence[str],
    schema: StoreSchema | None = None,
) -> int:
    """Return the highest per-board failed-record count across the panel.

    No row means no board on the panel ever failed, which is a count of 0.
    """
    if not siblings:
        raise ValueError("siblings must not be empty")
    schema = schema or StoreSchema()
    serial_col = _quote_ident(schema.serial_column)
    placeholders = ", ".join(["%s"] * len(siblings))
    sql = (
        f"SELECT COUNT(*) AS Fails FROM {_quote_ident(schema.table)} "
        f"WHERE {serial_col} IN ({placeholders}) "
        f"AND {_quote_ident(schema.result_column)} = %s "
        f"GROUP BY {serial_col} "
        f"ORDER BY Fails DESC"
    )
    try:
        cursor = conn.cursor()
    except Exception as e:
        raise QueryError(f"Q#2 failed: {e}") from e
    try:
        _use_database(cursor, database)
        try:
            cursor.execute(sql, (*siblings, schema.failed_value))
            row = cursor.fetchone()
        except Exception as e:
            raise QueryError(f"Q#2 failed: {e}") from e
    finally:
        cursor.close()

    if row is None:
        return 0
    return _read_count(row, "Q#2")


class ResultStore:
    """Open store session bound to one connection, database and schema."""

    def __init__(self, conn: Any, database: str | None, schema: StoreSchema) -> None:
        self.conn = conn
        self.database = database
        self.schema = schema

    def count_total_tests(self, serial: str) -> int:
        return count_total_tests(self.conn, self.database, serial, self.schema)

    def count_max_panel_failures(self, siblings: Sequence[str]) -> int:
        return count_max_panel_failures(self.conn, self.database, siblings, self.schema)


@contextmanager
def open_result_store(
    params: StoreConnectionParams,
    max_attempts: int = 3,
    schema: StoreSchema | None = None,
    connect: Callable[[StoreConnectionParams], Any] | None = None,
) -> Iterator[ResultStore]:
    """Context manager: connect with retry, yield a ResultStore, always close."""
    conn = connect_with_retry(params, max_attempts, connect=connect or open_connection)
    try:
        yield ResultStore(conn, params.database, schema or StoreSchema())
    finally:
        try:
            conn.close()
        except Exception as e:  # pragma: no cover
            logger.debug(f"closing store connection failed: {e}")
