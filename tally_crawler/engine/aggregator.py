"""Fan-in of worker output into the final ordered record collection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable

from .parser import HEADER, Record
from .worker_pool import JobOutcome, ResultMessage

if TYPE_CHECKING:
    from ..ui import ProgressReporter


@dataclass
class Aggregation:
    """Header-first record collection plus the outcome of every job."""

    records: list[Record] = field(default_factory=lambda: [HEADER])
    outcomes: list[JobOutcome] = field(default_factory=list)

    @property
    def rows(self) -> list[Record]:
        return self.records[1:]

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)

    @property
    def failures(self) -> list[JobOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    def summary(self) -> dict[str, int]:
        return {
            "jobs": len(self.outcomes),
            "succeeded": self.succeeded,
            "failed": self.failed,
            "records": len(self.rows),
        }


class Aggregator:
    """Drain result messages until the stream closes."""

    def __init__(self, sort_output: bool = False, progress: "ProgressReporter | None" = None) -> None:
        self.sort_output = sort_output
        self.progress = progress

    def aggregate(self, messages: Iterable[ResultMessage]) -> Aggregation:
        aggregation = Aggregation()
        for message in messages:
            if isinstance(message, JobOutcome):
                aggregation.outcomes.append(message)
                if self.progress is not None:
                    self.progress.advance(
                        success=message.ok, failed=not message.ok, current=message.area.name
                    )
            else:
                aggregation.records.append(message)
        if self.sort_output:
            aggregation.records[1:] = sorted(aggregation.rows, key=lambda record: record.sort_key)
        return aggregation


__all__ = ["Aggregation", "Aggregator"]
