"""HTTP fetching of the manifest and result pages."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

import httpx
import structlog

from ..config import CrawlConfig
from ..logging_conf import component_logger
from .parser import PageHandle

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class TransportError(RuntimeError):
    """Raised when a resource cannot be retrieved."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason


@dataclass(slots=True)
class FetchRequest:
    """Input for the fetcher."""

    url: str
    method: str = "GET"
    params: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    timeout: float | None = None


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    content: bytes
    headers: Dict[str, str]
    encoding: str | None = None
    raw: httpx.Response | None = field(repr=False, default=None)

    @property
    def text(self) -> str:
        return self.content.decode(self.encoding or "utf-8", errors="replace")


class Fetcher:
    """Thread-safe httpx client shared by the manifest resolver and all workers."""

    def __init__(self, config: CrawlConfig, logger: structlog.BoundLogger | None = None) -> None:
        self.config = config
        self.logger = logger or component_logger("fetcher")
        self._client = httpx.Client(
            follow_redirects=True,
            timeout=config.request_timeout,
            headers={"User-Agent": config.user_agent or DEFAULT_USER_AGENT},
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def fetch(self, request: FetchRequest) -> FetchResponse:
        try:
            response = self._client.request(
                method=request.method,
                url=request.url,
                params=request.params,
                headers=request.headers,
                timeout=request.timeout or self.config.request_timeout,
            )
        except httpx.HTTPError as exc:
            self.logger.debug("fetch_error", url=request.url, error=str(exc))
            raise TransportError(request.url, str(exc) or type(exc).__name__) from exc
        if self._is_failure(response):
            raise TransportError(request.url, f"unexpected status {response.status_code}")
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            encoding=response.encoding,
            raw=response,
        )

    def fetch_bytes(self, url: str) -> bytes:
        return self.fetch(FetchRequest(url=url)).content

    def fetch_document(self, url: str) -> PageHandle:
        response = self.fetch(FetchRequest(url=url))
        return PageHandle(response.text, url=response.url)

    @staticmethod
    def _is_failure(response: Any) -> bool:
        status_code = getattr(response, "status_code", 0)
        return status_code >= 400


__all__ = ["Fetcher", "FetchRequest", "FetchResponse", "TransportError", "DEFAULT_USER_AGENT"]
