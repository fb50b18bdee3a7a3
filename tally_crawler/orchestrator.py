"""Run coordinator wiring manifest resolution, the worker pool and export."""

from __future__ import annotations

import sys
from threading import Thread
from typing import Callable, TextIO

from .config import CrawlConfig
from .engine import (
    Aggregation,
    Aggregator,
    Fetcher,
    ManifestIndex,
    ManifestResolver,
    RecordExtractor,
    WorkerPool,
)
from .engine.exporter import BaseExporter, FileExporter, SQLiteExporter
from .logging_conf import component_logger, configure_logging
from .ui import ProgressActivity, ProgressReporter


def submit_all(pool: WorkerPool, index: ManifestIndex) -> None:
    """Push every leaf area into the pool, then close its result stream."""

    try:
        for area in index.leaves():
            pool.submit(area)
    finally:
        pool.await_completion()


class Orchestrator:
    """Central coordinator for one crawl run."""

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: Fetcher | None = None,
        progress_factory: Callable[[bool], ProgressReporter] | None = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher or Fetcher(config)
        self.progress_factory = progress_factory or (lambda enabled: ProgressReporter(enabled=enabled))
        configure_logging()
        self.logger = component_logger("orchestrator")

    def close(self) -> None:
        self.fetcher.close()

    # ------------------------------------------------------------------
    def resolve_manifest(self) -> ManifestIndex:
        resolver = ManifestResolver(self.fetcher.fetch_bytes, encoding=self.config.manifest_encoding)
        return resolver.resolve(self.config.manifest_url)

    def run(self, progress_enabled: bool | None = None) -> Aggregation:
        """Resolve the manifest, crawl every leaf area and aggregate the records.

        Manifest failures raise ``ManifestError`` before any worker starts.
        Per-page failures are reported in ``Aggregation.outcomes``.
        """

        progress_flag = self.config.enable_progress_bar if progress_enabled is None else progress_enabled
        activity = ProgressActivity(enabled=progress_flag)
        activity.start("Resolving area manifest…")
        try:
            index = self.resolve_manifest()
        finally:
            activity.close()

        progress = self.progress_factory(progress_flag)
        progress.start(index.leaf_count())
        extractor = RecordExtractor(
            row_selector=self.config.row_selector, separator=self.config.candidate_separator
        )
        aggregator = Aggregator(sort_output=self.config.sort_output, progress=progress)
        try:
            with WorkerPool(
                fetch_page=self.fetcher.fetch_document,
                extractor=extractor,
                page_url=self.config.page_url,
                size=self.config.pool_size,
                result_buffer=self.config.result_buffer,
            ) as pool:
                submitter = Thread(target=submit_all, args=(pool, index), name="tally-submit", daemon=True)
                submitter.start()
                aggregation = aggregator.aggregate(pool.results())
                submitter.join()
        finally:
            progress.close()

        self.logger.info("run_finished", **aggregation.summary())
        for outcome in aggregation.failures:
            self.logger.warning(
                "job_failed", area_id=outcome.area.area_id, district=outcome.area.name, error=outcome.error
            )
        return aggregation

    def create_exporter(self, stream: TextIO | None = None) -> BaseExporter:
        if self.config.output_format == "sqlite":
            return SQLiteExporter(self.config.output_path)
        return FileExporter(
            self.config.output_format,
            path=self.config.output_path,
            stream=stream or sys.stdout,
        )

    def export(self, aggregation: Aggregation, exporter: BaseExporter | None = None) -> int:
        exporter = exporter or self.create_exporter()
        with exporter:
            exporter.export_many(aggregation.records)
            exporter.flush()
        return len(aggregation.rows)


__all__ = ["Orchestrator", "submit_all"]
