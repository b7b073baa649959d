"""
SQLite connection management and schema bootstrap for the lifecycle store.

All lifecycle tables live in one database file. The schema is created on
first connection and the bootstrap is idempotent.
"""

import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from models.errors import create_db_error
from utils.transition_table import EXCLUSIVE_STATES

# Default database path relative to repository root
DEFAULT_DB_PATH = "data/lifecycle.db"

# Seconds a connection waits on another writer's lock before failing
BUSY_TIMEOUT_SECONDS = 5.0


def resolve_db_path(db_path: Optional[str] = None) -> Path:
    """
    Resolve the database path with support for overrides and defaults.

    Resolution order:
    1. Provided db_path parameter
    2. LIFECYCLE_DB environment variable
    3. LIFECYCLE_ROOT/data/lifecycle.db
    4. Default path: data/lifecycle.db

    Args:
        db_path: Optional database path override

    Returns:
        Resolved absolute Path to the database
    """
    if db_path is not None:
        path_str = db_path
    else:
        db_env = os.getenv("LIFECYCLE_DB")
        if db_env:
            path_str = db_env
        else:
            root_env = os.getenv("LIFECYCLE_ROOT")
            if root_env:
                return Path(root_env) / "data" / "lifecycle.db"
            path_str = DEFAULT_DB_PATH

    path = Path(path_str)

    # If relative, resolve from repository root
    if not path.is_absolute():
        current_file = Path(__file__).resolve()
        repo_root = current_file.parents[2]  # db/ -> mcp-server-python/ -> repo/
        path = repo_root / path

    return path


def _exclusive_index_sql() -> str:
    """One partial unique index per kind, built from the declared exclusive states."""
    statements = []
    for kind, states in sorted(EXCLUSIVE_STATES.items()):
        state_list = ", ".join(f"'{state}'" for state in sorted(states))
        statements.append(
            f"CREATE UNIQUE INDEX IF NOT EXISTS idx_lifecycle_records_exclusive_{kind} "
            f"ON lifecycle_records(subject_ref, counterparty_ref) "
            f"WHERE kind = '{kind}' AND state IN ({state_list});"
        )
    return "\n".join(statements)


def bootstrap_schema(conn: sqlite3.Connection) -> None:
    """
    Create the lifecycle tables and indexes if they don't exist.

    Creates:
    - lifecycle_records: one row per record, ``version`` for optimistic concurrency,
      the mentorship plan as JSON beside the score
    - lifecycle_audit_entries: insert-only audit rows keyed by (record_id, seq)
    - one partial unique index per kind over (subject_ref, counterparty_ref)
      in the kind's exclusive states, so duplicates cannot be inserted
    - lifecycle_events: outbox of rendered notifications

    Raises:
        PersistenceError: If schema creation fails
    """
    try:
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS lifecycle_records (
                id TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                subject_ref TEXT NOT NULL,
                counterparty_ref TEXT NOT NULL,
                state TEXT NOT NULL,
                score_json TEXT,
                plan_json TEXT,
                version INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_lifecycle_records_parties
            ON lifecycle_records(kind, subject_ref, counterparty_ref);

            CREATE INDEX IF NOT EXISTS idx_lifecycle_records_state
            ON lifecycle_records(kind, state);

            CREATE TABLE IF NOT EXISTS lifecycle_audit_entries (
                record_id TEXT NOT NULL REFERENCES lifecycle_records(id),
                seq INTEGER NOT NULL,
                timestamp TEXT NOT NULL,
                actor TEXT NOT NULL,
                from_state TEXT NOT NULL,
                to_state TEXT NOT NULL,
                note TEXT,
                PRIMARY KEY (record_id, seq)
            );

            CREATE TABLE IF NOT EXISTS lifecycle_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_type TEXT NOT NULL,
                record_id TEXT NOT NULL,
                kind TEXT NOT NULL,
                recipient_ref TEXT,
                title TEXT,
                message TEXT,
                priority TEXT,
                payload_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
        """)
        conn.executescript(_exclusive_index_sql())
    except sqlite3.Error as e:
        raise create_db_error(
            f"Failed to bootstrap schema: {str(e)}", retryable=False, original_error=e
        ) from e


@contextmanager
def connect(db_path: Optional[str] = None) -> Iterator[sqlite3.Connection]:
    """
    Context manager for read-write lifecycle database connections.

    Creates parent directories and the schema on demand. The connection runs
    in autocommit mode; callers open explicit transactions with
    ``BEGIN IMMEDIATE`` so the write lock is taken before any read that a
    write depends on.

    Args:
        db_path: Optional database path override

    Yields:
        sqlite3.Connection with ``sqlite3.Row`` rows

    Raises:
        PersistenceError: If the directory, connection or schema cannot be created
    """
    resolved_path = resolve_db_path(db_path)

    try:
        resolved_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise create_db_error(
            f"Failed to create parent directories: {str(e)}", retryable=False, original_error=e
        ) from e

    conn = None
    try:
        conn = sqlite3.connect(
            str(resolved_path), timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None
        )
        conn.row_factory = sqlite3.Row
        bootstrap_schema(conn)

        yield conn

    except sqlite3.OperationalError as e:
        raise create_db_error(str(e), retryable=True, original_error=e) from e

    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    finally:
        if conn is not None:
            conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """
    Run a block inside ``BEGIN IMMEDIATE`` / ``COMMIT``.

    Rolls back on any exception and re-raises it.
    """
    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
