from __future__ import annotations

from tally_crawler.engine import HEADER, Aggregator, Area, JobOutcome, Record
from tally_crawler.ui import ProgressReporter

AREA_A = Area(area_id="1", name="A", division="City", group_index=0, member_index=1)
AREA_B = Area(area_id="2", name="B", division="City", group_index=0, member_index=2)


def _record(area: Area, number: str, sequence: int, row: int) -> Record:
    return Record(area.division, area.name, number, "X", "1", "1.00", sort_key=(sequence, row))


def _messages():
    return [
        _record(AREA_B, "1", 1, 0),
        _record(AREA_A, "1", 0, 0),
        _record(AREA_B, "2", 1, 1),
        JobOutcome(AREA_B, 1, ok=True, record_count=2),
        _record(AREA_A, "2", 0, 1),
        JobOutcome(AREA_A, 0, ok=True, record_count=2),
        JobOutcome(AREA_A, 2, ok=False, error="unexpected status 500"),
    ]


def test_aggregate_keeps_arrival_order_after_header() -> None:
    aggregation = Aggregator().aggregate(iter(_messages()))

    assert aggregation.records[0] is HEADER
    assert [(r.district, r.number) for r in aggregation.rows] == [
        ("B", "1"),
        ("A", "1"),
        ("B", "2"),
        ("A", "2"),
    ]
    assert aggregation.summary() == {"jobs": 3, "succeeded": 2, "failed": 1, "records": 4}
    assert aggregation.failures[0].error == "unexpected status 500"


def test_aggregate_sorts_once_by_emission_key() -> None:
    aggregation = Aggregator(sort_output=True).aggregate(_messages())

    assert aggregation.records[0] is HEADER
    assert [(r.district, r.number) for r in aggregation.rows] == [
        ("A", "1"),
        ("A", "2"),
        ("B", "1"),
        ("B", "2"),
    ]


def test_aggregate_empty_stream_is_header_only() -> None:
    aggregation = Aggregator().aggregate([])
    assert aggregation.records == [HEADER]
    assert aggregation.summary()["jobs"] == 0


def test_aggregate_forwards_outcomes_to_progress() -> None:
    progress = ProgressReporter(enabled=False)
    progress.start(total=3)
    Aggregator(progress=progress).aggregate(_messages())
    assert progress.summary() == {"success": 2, "failed": 1}
    assert progress.state.current == "A"
