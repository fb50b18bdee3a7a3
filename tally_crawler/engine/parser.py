"""DOM parsing helpers turning result pages into vote records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from selectolax.parser import HTMLParser, Node

if TYPE_CHECKING:
    from .manifest import Area

_OUTER_TAG = re.compile(r"^\s*<[^>]*>(?P<inner>.*)</[^>]+>\s*$", re.DOTALL)
_LINE_BREAK = re.compile(r"<br\s*/?>", re.IGNORECASE)

RECORD_FIELDS = ("division", "district", "number", "candidates", "ballots", "percentage")


@dataclass(frozen=True, slots=True)
class Record:
    """One candidate row of a district result table."""

    division: str
    district: str
    number: str
    candidates: str
    ballots: str
    percentage: str
    # (job sequence, row index) assigned at emission time
    sort_key: tuple[int, int] = field(default=(0, 0), compare=False, repr=False)
    header: bool = field(default=False, compare=False, repr=False)

    def as_row(self) -> tuple[str, ...]:
        return tuple(getattr(self, name) for name in RECORD_FIELDS)

    def as_dict(self) -> dict[str, str]:
        return dict(zip(RECORD_FIELDS, self.as_row()))


HEADER = Record("縣市", "鄉鎮市區", "號次", "總統/副總統", "得票數", "得票率%", header=True)


class RowHandle:
    """Positional access to the cells of one table row."""

    def __init__(self, node: Node) -> None:
        self._cells = node.css("td")

    def __len__(self) -> int:
        return len(self._cells)

    def cell_text(self, index: int) -> str:
        if index >= len(self._cells):
            return ""
        return self._cells[index].text(strip=True)

    def cell_html(self, index: int) -> str:
        """Return the inner markup of a cell, without its own ``<td>`` tags.

        Leading and trailing whitespace is stripped, matching ``cell_text``;
        whitespace inside the markup is kept as-is.
        """

        if index >= len(self._cells):
            return ""
        markup = self._cells[index].html or ""
        match = _OUTER_TAG.match(markup)
        return match.group("inner").strip() if match else ""


class PageHandle:
    """Parsed result page."""

    def __init__(self, html: str, url: str | None = None) -> None:
        self.url = url
        self._tree = HTMLParser(html)

    def rows(self, selector: str) -> list[RowHandle]:
        return [RowHandle(node) for node in self._tree.css(selector)]


class RecordExtractor:
    """Read the fixed-position cells of every result row on a page."""

    def __init__(self, row_selector: str = "#divContent .trT", separator: str = "/") -> None:
        self.row_selector = row_selector
        self.separator = separator

    def extract(self, page: PageHandle, area: "Area", sequence: int = 0) -> list[Record]:
        records: list[Record] = []
        for index, row in enumerate(page.rows(self.row_selector)):
            records.append(
                Record(
                    division=area.division,
                    district=area.name,
                    number=row.cell_text(1),
                    candidates=_LINE_BREAK.sub(self.separator, row.cell_html(2)),
                    ballots=row.cell_text(4).replace(",", ""),
                    percentage=row.cell_text(5),
                    sort_key=(sequence, index),
                )
            )
        return records


__all__ = ["HEADER", "PageHandle", "Record", "RecordExtractor", "RowHandle", "RECORD_FIELDS"]
