import io
import json
import sqlite3

import pytest

from tally_crawler.engine import HEADER, Record
from tally_crawler.engine.exporter import FileExporter, SQLiteExporter

RECORDS = [
    HEADER,
    Record("臺北市", "松山區", "1", "Alice/Party X", "12345", "45.67"),
    Record("臺北市", "松山區", "2", "Bob, Jr./Party Y", "6789", "54.33"),
]


def test_csv_to_stream_writes_header_first():
    stream = io.StringIO()
    exporter = FileExporter("csv", stream=stream)
    exporter.export_many(RECORDS)
    exporter.close()

    lines = stream.getvalue().splitlines()
    assert lines[0] == "縣市,鄉鎮市區,號次,總統/副總統,得票數,得票率%"
    assert lines[1] == "臺北市,松山區,1,Alice/Party X,12345,45.67"
    assert lines[2] == '臺北市,松山區,2,"Bob, Jr./Party Y",6789,54.33'
    assert not stream.closed


def test_csv_to_file(tmp_path):
    path = tmp_path / "out" / "results.csv"
    with FileExporter("csv", path=path) as exporter:
        exporter.export_many(RECORDS)
    assert len(path.read_text(encoding="utf-8").splitlines()) == 3


def test_json_lines_skip_header(tmp_path):
    path = tmp_path / "results.jsonl"
    exporter = FileExporter("json", path=path)
    exporter.export_many(RECORDS)
    exporter.flush()
    exporter.close()

    data = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert exporter.count == 2
    assert data[0] == {
        "division": "臺北市",
        "district": "松山區",
        "number": "1",
        "candidates": "Alice/Party X",
        "ballots": "12345",
        "percentage": "45.67",
    }


def test_unknown_file_format_rejected():
    with pytest.raises(ValueError):
        FileExporter("txt", stream=io.StringIO())


def test_sqlite_exporter(tmp_path):
    exporter = SQLiteExporter(tmp_path / "results.db")
    exporter.export_many(RECORDS)
    exporter.flush()
    exporter.close()

    conn = sqlite3.connect(tmp_path / "results.db")
    rows = conn.execute(
        "SELECT division, district, number, candidates, ballots, percentage FROM records ORDER BY id"
    ).fetchall()
    conn.close()
    assert rows == [record.as_row() for record in RECORDS[1:]]
