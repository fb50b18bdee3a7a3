"""Shared fixtures: isolated project home, configs, manifests and fake pages."""

from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import Any, Callable, Iterable, Sequence

import pytest

from tally_crawler.config import ConfigLocator, ConfigRepository, CrawlConfig
from tally_crawler.engine import PageHandle, TransportError

SAMPLE_MANIFEST = """
var secAreaID = new Array();
var secAreaName = new Array();
secAreaID[0]=new Array();
secAreaID[0][0]='63000';secAreaID[0][1]='63000010';secAreaID[0][2]='63000020';
secAreaID[1]=new Array();
secAreaID[1][0]='65000';secAreaID[1][1]='65000010';
secAreaName[0][0]='臺北市';secAreaName[0][1]='松山區';secAreaName[0][2]='信義區';
secAreaName[1][0]='新北市';secAreaName[1][1]='板橋區';
"""


def build_result_page(rows: Sequence[Sequence[str]]) -> str:
    """Render a result page whose ``#divContent .trT`` rows hold the given cells."""

    body = "".join(
        "<tr class='trT'>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>" for row in rows
    )
    return (
        "<html><body><div id='divContent'><table>"
        "<tr class='title'><td>號次</td><td>候選人</td></tr>"
        f"{body}</table></div></body></html>"
    )


class FakePageSource:
    """Stand-in for ``Fetcher.fetch_document`` keyed by page URL."""

    def __init__(self, pages: dict[str, str], failing: Iterable[str] = ()) -> None:
        self.pages = pages
        self.failing = set(failing)
        self.calls: list[str] = []
        self._lock = Lock()

    def __call__(self, url: str) -> PageHandle:
        with self._lock:
            self.calls.append(url)
        if url in self.failing or url not in self.pages:
            raise TransportError(url, "unexpected status 404")
        return PageHandle(self.pages[url], url=url)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("TALLY_CRAWLER_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture
def sample_config() -> Callable[..., CrawlConfig]:
    def _builder(**overrides: Any) -> CrawlConfig:
        base: dict[str, Any] = {
            "manifest_url": "https://results.example/js/tree.js",
            "page_url_template": "https://results.example/n{area_id}.html",
            "pool_size": 4,
            "enable_progress_bar": False,
        }
        base.update(overrides)
        return CrawlConfig(**base)

    return _builder


@pytest.fixture
def sample_manifest() -> str:
    return SAMPLE_MANIFEST


@pytest.fixture
def page_source() -> Callable[..., FakePageSource]:
    return FakePageSource


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> ConfigRepository:
    return ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def result_page() -> Callable[[Sequence[Sequence[str]]], str]:
    return build_result_page
