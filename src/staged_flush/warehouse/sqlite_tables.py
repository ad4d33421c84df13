"""SQLite-backed destination tables that staged batches are committed into."""

import sqlite3
import threading
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from ..registry import FieldSpec, TableId

SQLITE_TYPES = {
    "STRING": "TEXT",
    "JSON": "TEXT",
    "TIMESTAMP": "TIMESTAMPTZ",
    "INTEGER": "BIGINT",
    "FLOAT": "REAL",
    "BOOLEAN": "BOOLEAN",
}


def _quote(identifier: str) -> str:
    return '"' + identifier.replace('"', '""') + '"'


def physical_table_name(table: TableId) -> str:
    """SQLite has no datasets; fold the dataset into the table name."""
    return f"{table.dataset}__{table.table}"


class SQLiteWarehouse:
    """Destination warehouse whose commit step is a single transaction."""

    def __init__(self, db_path: str):
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()

    def close(self):
        self._conn.close()

    def _ensure_table(self, table: TableId, schema: Sequence[FieldSpec]):
        columns = ",\n".join(
            f"{_quote(field.name)} {SQLITE_TYPES.get(field.type.upper(), 'TEXT')}"
            for field in schema
        )
        self._conn.execute(
            f"CREATE TABLE IF NOT EXISTS {_quote(physical_table_name(table))} (\n{columns}\n)"
        )

    def commit_rows(
        self,
        table: TableId,
        schema: Sequence[FieldSpec],
        rows: Iterable[Sequence[object]],
    ) -> int:
        """Insert all rows or none; returns the number of rows committed."""
        if not schema:
            raise ValueError(f"Table {table} has an empty schema")
        width = len(schema)
        placeholders = ", ".join("?" for _ in schema)
        column_list = ", ".join(_quote(field.name) for field in schema)
        statement = (
            f"INSERT INTO {_quote(physical_table_name(table))} ({column_list}) "
            f"VALUES ({placeholders})"
        )
        inserted = 0
        with self._lock, self._conn:
            self._ensure_table(table, schema)
            for row in rows:
                values = tuple(row)
                if len(values) != width:
                    raise ValueError(
                        f"Row {inserted + 1} for {table} has {len(values)} values; "
                        f"schema expects {width}"
                    )
                self._conn.execute(statement, values)
                inserted += 1
        return inserted

    def count_rows(self, table: TableId) -> int:
        with self._lock:
            if not self._table_exists(table):
                return 0
            cursor = self._conn.execute(
                f"SELECT COUNT(*) FROM {_quote(physical_table_name(table))}"
            )
            return int(cursor.fetchone()[0])

    def fetch_rows(self, table: TableId) -> List[Tuple[object, ...]]:
        """Return all rows in insertion order."""
        with self._lock:
            cursor = self._conn.execute(
                f"SELECT * FROM {_quote(physical_table_name(table))} ORDER BY rowid"
            )
            return [tuple(row) for row in cursor.fetchall()]

    def table_exists(self, table: TableId) -> bool:
        with self._lock:
            return self._table_exists(table)

    def _table_exists(self, table: TableId) -> bool:
        cursor = self._conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?",
            (physical_table_name(table),),
        )
        return cursor.fetchone() is not None

    def list_tables(self) -> List[str]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
            )
            return [row["name"] for row in cursor.fetchall()]
