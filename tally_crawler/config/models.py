"""Pydantic models used across the tally-crawler configuration flow."""

from __future__ import annotations

from pathlib import Path
from string import Formatter
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_MANIFEST_URL = "https://www.cec.gov.tw/pc/zh_TW/js/treeP1.js"
DEFAULT_PAGE_URL_TEMPLATE = "https://www.cec.gov.tw/pc/zh_TW/P1/n{area_id}.html"
PAGE_PLACEHOLDER = "area_id"


class CrawlConfig(BaseModel):
    """Everything one crawl run needs: endpoints, pool sizing and output."""

    manifest_url: str = DEFAULT_MANIFEST_URL
    page_url_template: str = DEFAULT_PAGE_URL_TEMPLATE
    pool_size: int = 30
    result_buffer: int = 1
    request_timeout: float = 15.0
    user_agent: str | None = None
    manifest_encoding: str = "utf-8"
    row_selector: str = "#divContent .trT"
    candidate_separator: str = "/"
    output_format: Literal["csv", "json", "sqlite"] = "csv"
    output_path: Path | None = None
    sort_output: bool = False
    enable_progress_bar: bool = True

    @field_validator("page_url_template")
    @classmethod
    def _single_placeholder(cls, value: str) -> str:
        try:
            fields = [
                (name, spec, conversion)
                for _, name, spec, conversion in Formatter().parse(value)
                if name is not None
            ]
            value.format(**{PAGE_PLACEHOLDER: "0"})
        except (AttributeError, IndexError, KeyError, ValueError) as exc:
            raise ValueError(f"page_url_template is not a valid format string: {exc}") from exc
        # area ids are plain strings, so no format spec or conversion is allowed
        if fields != [(PAGE_PLACEHOLDER, "", None)]:
            raise ValueError(
                f"page_url_template must contain exactly one bare {{{PAGE_PLACEHOLDER}}} placeholder"
            )
        return value

    @field_validator("output_path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)

    @model_validator(mode="after")
    def _validate_limits(self) -> "CrawlConfig":
        if self.pool_size < 1:
            raise ValueError("pool_size must be >= 1")
        if self.result_buffer < 1:
            raise ValueError("result_buffer must be >= 1")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be > 0")
        if self.output_format == "sqlite" and self.output_path is None:
            raise ValueError("sqlite output requires output_path")
        return self

    def page_url(self, area_id: str) -> str:
        return self.page_url_template.format(**{PAGE_PLACEHOLDER: area_id})


__all__ = [
    "CrawlConfig",
    "DEFAULT_MANIFEST_URL",
    "DEFAULT_PAGE_URL_TEMPLATE",
    "PAGE_PLACEHOLDER",
]
