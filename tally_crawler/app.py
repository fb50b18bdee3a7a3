"""Typer CLI entrypoint for tally-crawler."""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich import box
from rich.console import Console
from rich.table import Table

from .config import ConfigRepository, CrawlConfig
from .engine import Aggregation, ManifestError, ManifestIndex
from .logging_conf import configure_logging, default_log_dir, log_file, tail_log
from .orchestrator import Orchestrator

app = typer.Typer(
    help="Concurrent election result crawler.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(name="config", help="Inspect or initialise the crawl configuration.", no_args_is_help=True)
log_app = typer.Typer(name="log", help="Inspect application logs.", no_args_is_help=True)

app.add_typer(config_app, name="config")
app.add_typer(log_app, name="log")

# stdout is reserved for exported records
console = Console(stderr=True)


@dataclass
class AppState:
    repository: ConfigRepository
    config: CrawlConfig


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    return AppState(repository=repository, config=repository.load_config())


def build_orchestrator(config: CrawlConfig) -> Orchestrator:
    return Orchestrator(config)


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _progress_default_enabled() -> bool:
    return console.is_terminal


def _render_summary(aggregation: Aggregation) -> Table:
    summary = aggregation.summary()
    table = Table(title="Crawl summary", box=box.SIMPLE_HEAD)
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Jobs", str(summary["jobs"]))
    table.add_row("Succeeded", str(summary["succeeded"]))
    table.add_row("Failed", str(summary["failed"]))
    table.add_row("Records", str(summary["records"]))
    return table


def _render_failures(aggregation: Aggregation, limit: int = 10) -> Table:
    table = Table(title="Failed pages", box=box.SIMPLE_HEAD)
    table.add_column("Area", style="cyan", no_wrap=True)
    table.add_column("District", style="magenta")
    table.add_column("Error", style="red", overflow="fold")
    for outcome in aggregation.failures[:limit]:
        table.add_row(outcome.area.area_id, outcome.area.name, outcome.error or "-")
    return table


def _render_areas(index: ManifestIndex, limit: int | None) -> Table:
    table = Table(title=f"Areas · {index.leaf_count()} districts in {len(index)} divisions", box=box.SIMPLE_HEAD)
    table.add_column("Group", style="dim", justify="right")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Division", style="magenta")
    table.add_column("District", style="green")
    for position, area in enumerate(index.leaves()):
        if limit is not None and position >= limit:
            break
        table.add_row(str(area.group_index), area.area_id, area.division, area.name)
    return table


@app.callback()
def main(
    ctx: typer.Context, verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.")
) -> None:
    ctx.obj = build_state(verbose)


@app.command("run", help="Crawl every district and write the aggregated records.")
def run(
    ctx: typer.Context,
    manifest_url: Optional[str] = typer.Option(None, "--manifest-url", help="Area manifest script URL."),
    page_template: Optional[str] = typer.Option(
        None, "--page-template", help="Result page URL containing an {area_id} placeholder."
    ),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Number of concurrent fetches."),
    fmt: Optional[str] = typer.Option(None, "--format", help="Output format: csv, json or sqlite."),
    output: Optional[Path] = typer.Option(None, "--output", help="Write to this path instead of stdout."),
    sort: Optional[bool] = typer.Option(None, "--sort/--no-sort", help="Order records by manifest position."),
    quiet: bool = typer.Option(False, "--quiet", help="Suppress progress and summary output."),
) -> None:
    state = _get_state(ctx)
    overrides = {
        "manifest_url": manifest_url,
        "page_url_template": page_template,
        "pool_size": workers,
        "output_format": fmt,
        "output_path": output,
        "sort_output": sort,
    }
    payload = state.config.model_dump()
    payload.update({key: value for key, value in overrides.items() if value is not None})
    try:
        config = CrawlConfig.model_validate(payload)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    orchestrator = build_orchestrator(config)
    try:
        try:
            aggregation = orchestrator.run(progress_enabled=_progress_default_enabled() and not quiet)
        except ManifestError as exc:
            console.print(f"Manifest error: {exc}", style="red")
            raise typer.Exit(code=1) from exc
        try:
            orchestrator.export(aggregation)
        except (OSError, sqlite3.Error) as exc:
            console.print(f"Failed to write output: {exc}", style="red")
            raise typer.Exit(code=1) from exc
    finally:
        orchestrator.close()

    if quiet:
        return
    console.print(_render_summary(aggregation))
    if aggregation.failed:
        console.print(_render_failures(aggregation))


@app.command("areas", help="Resolve the manifest and list its districts.")
def areas(
    ctx: typer.Context,
    manifest_url: Optional[str] = typer.Option(None, "--manifest-url", help="Area manifest script URL."),
    limit: Optional[int] = typer.Option(50, "--limit", min=1, help="Show at most N districts."),
) -> None:
    state = _get_state(ctx)
    config = state.config
    if manifest_url:
        config = config.model_copy(update={"manifest_url": manifest_url})
    orchestrator = build_orchestrator(config)
    try:
        index = orchestrator.resolve_manifest()
    except ManifestError as exc:
        console.print(f"Manifest error: {exc}", style="red")
        raise typer.Exit(code=1) from exc
    finally:
        orchestrator.close()
    console.print(_render_areas(index, limit))


@config_app.command("show", help="Print the active configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    console.print(f"# {state.repository.config_path()}", style="dim")
    console.print(yaml.safe_dump(state.config.model_dump(mode="json"), allow_unicode=True, sort_keys=False))


@config_app.command("init", help="Write the default configuration file.")
def config_init(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file."),
) -> None:
    state = _get_state(ctx)
    path = state.repository.config_path()
    if path.exists() and not force:
        loaded = state.repository.load_config()
        if loaded != CrawlConfig():
            console.print(f"{path} already customised; pass --force to overwrite.", style="yellow")
            raise typer.Exit(code=1)
    path = state.repository.save_config(CrawlConfig())
    console.print(f"Wrote default configuration to {path}", style="green")


@log_app.command("show", help="Show the most recent application log lines.")
def log_show(
    ctx: typer.Context,
    errors: bool = typer.Option(False, "--errors", help="Show error.log instead of crawler.log."),
    tail: int = typer.Option(100, "--tail", min=1, help="Number of lines to show."),
) -> None:
    state = ctx.obj
    log_dir = state.repository.locator.logs_dir if state is not None else default_log_dir()
    path = log_file(log_dir, errors_only=errors)
    lines = tail_log(path, tail)
    if not lines:
        console.print("No log entries yet.", style="dim")
        return
    console.print(f"{path.name} · last {len(lines)} lines", style="cyan")
    console.print("".join(lines), markup=False, highlight=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
