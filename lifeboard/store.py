"""
Lifeboard storage backend (SQLite).

A Store owns exactly one connection. It is opened by the composition root
and handed to every repository; repositories never open connections of
their own. Statements run in autocommit mode unless grouped by
Store.transaction().
"""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from .schema import UNSET

logger = logging.getLogger(__name__)

# ISO-8601 UTC with milliseconds; used for column defaults and updated_at.
NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"


def _connect(db_path: str) -> sqlite3.Connection:
    """Open a connection with FK enforcement and WAL mode."""
    conn = sqlite3.connect(db_path, isolation_level=None, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


class Store:
    """Explicit handle on the lifeboard database."""

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = _connect(db_path)
        self._depth = 0

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.conn.close()

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Group statements into one all-or-nothing unit.

        Nested use joins the outer transaction. Any exception rolls the
        outermost transaction back and is re-raised unchanged.
        """
        if self._depth:
            self._depth += 1
            try:
                yield self.conn
            finally:
                self._depth -= 1
            return

        self.conn.execute("BEGIN IMMEDIATE")
        self._depth = 1
        try:
            yield self.conn
        except BaseException:
            self._depth = 0
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise
        self._depth = 0
        try:
            self.conn.execute("COMMIT")
        except BaseException:
            # a failed COMMIT can leave the transaction open
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        return self.conn.execute(sql, tuple(params))

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[sqlite3.Row]:
        # fetchall() steps RETURNING statements to completion before returning
        rows = self.conn.execute(sql, tuple(params)).fetchall()
        return rows[0] if rows else None

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> List[sqlite3.Row]:
        return self.conn.execute(sql, tuple(params)).fetchall()


class UpdateBuilder:
    """
    Accumulates (column, value) pairs for one parameterized UPDATE.

    Values equal to UNSET are skipped, so a builder fed from a partial
    payload only ever touches the columns that were present.
    """

    def __init__(self, table: str):
        self.table = table
        self.columns: List[str] = []
        self.values: List[Any] = []

    def set(self, column: str, value: Any) -> "UpdateBuilder":
        if value is UNSET:
            return self
        self.columns.append(column)
        self.values.append(value)
        return self

    def __len__(self) -> int:
        return len(self.columns)

    def sql(self, key: str = "id") -> str:
        assignments = ", ".join(f"{column} = ?" for column in self.columns)
        return (
            f"UPDATE {self.table} SET {assignments}, updated_at = {NOW_SQL} "
            f"WHERE {key} = ? RETURNING *"
        )

    def execute(self, store: Store, key_value: Any, key: str = "id") -> Optional[sqlite3.Row]:
        """Run the update; returns the updated row, or None when nothing matched."""
        if not self.columns:
            raise ValueError(f"UpdateBuilder for {self.table} has no columns to set")
        return store.fetch_one(self.sql(key), (*self.values, key_value))


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Migrations
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


# Columns added after the first release of the tasks table.
TASK_TRACKING_COLUMNS = [
    ("estimated_minutes", "INTEGER"),
    ("estimated_start_date", "TEXT"),
    ("estimated_end_date", "TEXT"),
    ("actual_start_date", "TEXT"),
    ("actual_end_date", "TEXT"),
    ("actual_minutes", "INTEGER"),
]


def migrate(store: Store) -> None:
    """Create tables if they don't exist and add missing columns."""
    with store.transaction():
        store.execute(f"""
            CREATE TABLE IF NOT EXISTS projects (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                color TEXT,
                icon TEXT,
                position INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT ({NOW_SQL}),
                updated_at TEXT NOT NULL DEFAULT ({NOW_SQL}),
                archived_at TEXT
            )
        """)
        store.execute(f"""
            CREATE TABLE IF NOT EXISTS tasks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                project_id INTEGER NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                description TEXT,
                status TEXT NOT NULL DEFAULT 'To-Do',
                due_date TEXT,
                priority TEXT,
                tags TEXT,  -- JSON list
                position REAL NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL DEFAULT ({NOW_SQL}),
                updated_at TEXT NOT NULL DEFAULT ({NOW_SQL})
            )
        """)
        _migrate_columns(store, "tasks", TASK_TRACKING_COLUMNS)
        store.execute(f"""
            CREATE TABLE IF NOT EXISTS task_states (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                task_id INTEGER NOT NULL REFERENCES tasks(id) ON DELETE CASCADE,
                from_status TEXT,
                to_status TEXT NOT NULL,
                ts TEXT NOT NULL DEFAULT ({NOW_SQL})
            )
        """)
        store.execute(f"""
            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                ts TEXT NOT NULL,
                type TEXT NOT NULL,
                meta TEXT,  -- JSON object
                weight REAL NOT NULL DEFAULT 1.0,
                created_at TEXT NOT NULL DEFAULT ({NOW_SQL})
            )
        """)
        store.execute("CREATE INDEX IF NOT EXISTS idx_projects_position ON projects(position)")
        store.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project_status ON tasks(project_id, status)")
        store.execute("CREATE INDEX IF NOT EXISTS idx_tasks_due_date ON tasks(due_date)")
        store.execute("CREATE INDEX IF NOT EXISTS idx_task_states_task ON task_states(task_id, ts)")
        store.execute("CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts)")


def _migrate_columns(store: Store, table: str, columns) -> None:
    """Add columns missing from an existing table."""
    existing = {row["name"] for row in store.fetch_all(f"PRAGMA table_info({table})")}
    for col_name, col_type in columns:
        if col_name not in existing:
            logger.info(f"Adding column {table}.{col_name}")
            store.execute(f"ALTER TABLE {table} ADD COLUMN {col_name} {col_type}")


def open_store(db_path: str) -> Store:
    """Open a store and bring its schema up to date."""
    store = Store(db_path)
    migrate(store)
    return store
