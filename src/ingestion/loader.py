"""DuckDB connection management and user loading operations."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import duckdb
import polars as pl

from src.ingestion.errors import PersistenceError
from src.ingestion.models import NormalizedRow

# Default warehouse location
DEFAULT_DB_PATH: str = "data/warehouse/users.duckdb"
IN_MEMORY: str = ":memory:"

USER_COLUMNS: tuple[str, ...] = ("name", "age", "address", "additional_info")

_USERS_SEQ_DDL: str = """
CREATE SEQUENCE IF NOT EXISTS users_id_seq START 1;
"""

_USERS_DDL: str = """
CREATE TABLE IF NOT EXISTS users (
    user_id            INTEGER PRIMARY KEY DEFAULT nextval('users_id_seq'),
    name               VARCHAR NOT NULL,
    age                INTEGER NOT NULL,
    address            JSON,
    additional_info    JSON,
    ingested_at        TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

_INGESTION_RUNS_DDL: str = """
CREATE TABLE IF NOT EXISTS ingestion_runs (
    run_id              VARCHAR PRIMARY KEY,
    source_file         VARCHAR NOT NULL,
    started_at          TIMESTAMPTZ NOT NULL,
    completed_at        TIMESTAMPTZ,
    status              VARCHAR NOT NULL,
    rows_processed      INTEGER NOT NULL DEFAULT 0,
    error_message       VARCHAR,
    elapsed_seconds     DOUBLE
);
"""

logger = logging.getLogger("ingest_users")


def connect(db_path: str | Path = DEFAULT_DB_PATH) -> duckdb.DuckDBPyConnection:
    """Create a DuckDB connection, ensuring the parent directory exists.

    Args:
        db_path: Path to the DuckDB database file, or ``:memory:``.

    Returns:
        An open DuckDB connection.
    """
    if str(db_path) == IN_MEMORY:
        logger.info("Connecting to in-memory DuckDB")
        return duckdb.connect(IN_MEMORY)

    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Connecting to DuckDB at %s", db_path)
    return duckdb.connect(str(db_path))


def create_tables(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the users and ingestion_runs tables if they do not exist.

    Safe to call multiple times (idempotent).

    Args:
        conn: An open DuckDB connection.
    """
    conn.execute(_USERS_SEQ_DDL)
    conn.execute(_USERS_DDL)
    conn.execute(_INGESTION_RUNS_DDL)
    logger.info("Warehouse tables ready")


def _to_json(value: dict[str, Any] | None) -> str | None:
    return json.dumps(value) if value else None


def build_insert(rows: Sequence[NormalizedRow]) -> tuple[str, list[Any]]:
    """Build one multi-row parameterized INSERT for a batch of users.

    JSON columns are bound as their serialized text.

    Args:
        rows: Non-empty batch of rows, in insert order.

    Returns:
        Tuple of (SQL statement, flat parameter list).
    """
    placeholders = "(" + ", ".join("?" for _ in USER_COLUMNS) + ")"
    values_sql = ",\n".join(placeholders for _ in rows)
    params: list[Any] = []
    for row in rows:
        params.extend([
            row.name,
            row.age,
            _to_json(row.address),
            _to_json(row.additional_info),
        ])
    sql = f"INSERT INTO users ({', '.join(USER_COLUMNS)}) VALUES\n{values_sql}"
    return sql, params


def insert_users(
    conn: duckdb.DuckDBPyConnection,
    rows: Sequence[NormalizedRow],
) -> int:
    """Insert a batch of users with a single statement.

    Runs inside whatever transaction ``conn`` currently holds.

    Args:
        conn: An open DuckDB connection with tables created.
        rows: Rows to insert, in order.

    Returns:
        Number of records inserted.
    """
    if not rows:
        return 0
    sql, params = build_insert(rows)
    conn.execute(sql, params)
    return len(rows)


def count_users(conn: duckdb.DuckDBPyConnection) -> int:
    """Return the number of rows in the users table."""
    result = conn.execute("SELECT COUNT(*) FROM users").fetchone()
    return int(result[0]) if result else 0


def fetch_age_counts(conn: duckdb.DuckDBPyConnection) -> pl.DataFrame:
    """Run the grouped age count query.

    Args:
        conn: An open DuckDB connection with tables created.

    Returns:
        Polars DataFrame with columns ``age`` and ``cnt``.
    """
    return conn.execute(
        "SELECT age, COUNT(*) AS cnt FROM users GROUP BY age ORDER BY age"
    ).pl()


def create_run(
    conn: duckdb.DuckDBPyConnection,
    *,
    run_id: str,
    source_file: str,
    started_at: str,
) -> None:
    """Create an ingestion_runs record at pipeline start.

    Args:
        conn: An open DuckDB connection with tables created.
        run_id: Unique pipeline run identifier.
        source_file: Path of the CSV source being ingested.
        started_at: ISO-format timestamp of when the run began.
    """
    conn.execute(
        """
        INSERT INTO ingestion_runs (run_id, source_file, started_at, status)
        VALUES (?, ?, ?::TIMESTAMPTZ, 'running')
        """,
        [run_id, source_file, started_at],
    )
    logger.info("Created ingestion run %s", run_id)


def complete_run(
    conn: duckdb.DuckDBPyConnection,
    *,
    run_id: str,
    status: str,
    completed_at: str,
    rows_processed: int,
    elapsed_seconds: float,
    error_message: str | None = None,
) -> None:
    """Update an ingestion_runs record upon pipeline completion.

    Args:
        conn: An open DuckDB connection with tables created.
        run_id: Unique pipeline run identifier.
        status: Final run status ('completed' or 'failed').
        completed_at: ISO-format timestamp of when the run finished.
        rows_processed: Rows committed during the run.
        elapsed_seconds: Total run duration in seconds.
        error_message: Failure message for failed runs.
    """
    conn.execute(
        """
        UPDATE ingestion_runs
        SET completed_at = ?::TIMESTAMPTZ,
            status = ?,
            rows_processed = ?,
            error_message = ?,
            elapsed_seconds = ?
        WHERE run_id = ?
        """,
        [
            completed_at,
            status,
            rows_processed,
            error_message,
            elapsed_seconds,
            run_id,
        ],
    )
    logger.info("Completed ingestion run %s with status=%s", run_id, status)


def table_exists(conn: duckdb.DuckDBPyConnection, table_name: str) -> bool:
    """Check whether a table exists in the DuckDB database.

    Args:
        conn: An open DuckDB connection.
        table_name: Name of the table to check.

    Returns:
        True if the table exists, False otherwise.
    """
    result = conn.execute(
        """
        SELECT COUNT(*)
        FROM information_schema.tables
        WHERE table_name = ?
        """,
        [table_name],
    ).fetchone()
    return result is not None and result[0] > 0


class UserStore:
    """Persistence handle owning one DuckDB database.

    Every operation borrows its own cursor through ``connection()`` and
    returns it on every exit path, so concurrent runs never share a
    transaction.

    Attributes:
        db_path: Location of the database file (or ``:memory:``).
    """

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH) -> None:
        self.db_path = db_path
        try:
            self._root = connect(db_path)
        except (duckdb.Error, OSError) as exc:
            raise PersistenceError(f"Could not open database at {db_path}: {exc}") from exc

    def __enter__(self) -> UserStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the root connection."""
        self._root.close()

    @contextmanager
    def connection(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Borrow a cursor for one operation.

        Yields:
            A DuckDB cursor sharing the store's database.

        Raises:
            PersistenceError: If a DuckDB error escapes the operation.
        """
        cursor = self._root.cursor()
        try:
            yield cursor
        except duckdb.Error as exc:
            raise PersistenceError(f"Database operation failed: {exc}") from exc
        finally:
            cursor.close()

    def create_tables(self) -> None:
        """Ensure the warehouse tables exist."""
        with self.connection() as conn:
            create_tables(conn)

    def write_batch(self, rows: Sequence[NormalizedRow]) -> int:
        """Insert one batch of users inside its own transaction.

        Args:
            rows: Rows to insert, in order.

        Returns:
            Number of rows committed.

        Raises:
            PersistenceError: If the insert or commit fails. The whole
                batch is rolled back; earlier batches stay committed.
        """
        if not rows:
            return 0
        with self.connection() as conn:
            conn.begin()
            try:
                inserted = insert_users(conn, rows)
                conn.commit()
            except Exception as exc:
                _rollback(conn)
                msg = f"Failed to write batch of {len(rows)} user(s): {exc}"
                raise PersistenceError(msg) from exc
        logger.info("Inserted %d records into users", inserted)
        return inserted

    def count_users(self) -> int:
        """Return the number of persisted users."""
        with self.connection() as conn:
            return count_users(conn)

    def fetch_age_counts(self) -> pl.DataFrame:
        """Return per-age user counts as a Polars DataFrame."""
        with self.connection() as conn:
            return fetch_age_counts(conn)


def _rollback(conn: duckdb.DuckDBPyConnection) -> None:
    try:
        conn.rollback()
    except duckdb.Error as exc:
        # A failed COMMIT has already ended the transaction.
        logger.warning("Rollback skipped: %s", exc)
