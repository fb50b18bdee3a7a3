"""Export vote records to a SQLite table."""

from __future__ import annotations

from pathlib import Path

import sqlite3

from ..parser import RECORD_FIELDS, Record
from .base import BaseExporter


class SQLiteExporter(BaseExporter):
    """Persist data records as one row each; the header pseudo-record is skipped."""

    def __init__(self, path: Path, table: str = "records") -> None:
        self.path = path
        self.table = table
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.path)
        columns = ", ".join(f"{name} TEXT NOT NULL" for name in RECORD_FIELDS)
        self.conn.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {self.table} (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                {columns}
            )
            """
        )
        self.conn.commit()
        self.count = 0

    def export(self, record: Record) -> None:
        if record.header:
            return
        placeholders = ", ".join("?" for _ in RECORD_FIELDS)
        self.conn.execute(
            f"INSERT INTO {self.table}({', '.join(RECORD_FIELDS)}) VALUES ({placeholders})",
            record.as_row(),
        )
        self.count += 1

    def flush(self) -> None:
        self.conn.commit()

    def close(self) -> None:
        self.conn.commit()
        self.conn.close()


__all__ = ["SQLiteExporter"]
