"""Stream/file exporter supporting CSV and JSON lines."""

from __future__ import annotations

import csv
import json
import sys
from pathlib import Path
from typing import TextIO

from ..parser import Record
from .base import BaseExporter


class FileExporter(BaseExporter):
    """Write records to a file, or to stdout when no path is given.

    CSV output writes every record it receives, so the header
    pseudo-record at the front of an aggregation becomes the header line.
    JSON lines output only carries data records.
    """

    def __init__(
        self,
        fmt: str = "csv",
        path: Path | None = None,
        stream: TextIO | None = None,
    ) -> None:
        if fmt not in {"csv", "json"}:
            raise ValueError(f"Unsupported file format: {fmt}")
        self.format = fmt
        self.path = path
        if path is not None:
            path.parent.mkdir(parents=True, exist_ok=True)
            self._file = path.open("w", encoding="utf-8", newline="")
            self._owns_file = True
        else:
            self._file = stream or sys.stdout
            self._owns_file = False
        self._csv_writer = csv.writer(self._file) if fmt == "csv" else None
        self.count = 0

    def export(self, record: Record) -> None:
        if self._csv_writer is not None:
            self._csv_writer.writerow(record.as_row())
        else:
            if record.header:
                return
            json.dump(record.as_dict(), self._file, ensure_ascii=False)
            self._file.write("\n")
        self.count += 1

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        self.flush()
        if self._owns_file:
            self._file.close()


__all__ = ["FileExporter"]
