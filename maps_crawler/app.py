"""Typer CLI entrypoint for maps-crawler."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import typer
import yaml
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config import AppConfig, ConfigRepository
from .engine.exporter import FileExporter
from .errors import CrawlerError
from .logging_conf import configure_logging
from .models import PlaceRecord
from .service import ScraperService

app = typer.Typer(
    help="maps-crawler command line tool",
    no_args_is_help=True,
    rich_markup_mode=None,
)
config_app = typer.Typer(
    name="config",
    help="Inspect configuration.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
app.add_typer(config_app, name="config")

console = Console()


@dataclass
class AppState:
    repository: ConfigRepository
    config: AppConfig
    service_factory: Callable[[], ScraperService]


def build_state(verbose: bool) -> AppState:
    repository = ConfigRepository()
    config = repository.load()
    configure_logging(verbose=verbose, log_dir=repository.locator.logs_dir)
    return AppState(
        repository=repository,
        config=config,
        service_factory=lambda: ScraperService.from_config(config),
    )


def _get_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if state is None:
        state = build_state(verbose=False)
        ctx.obj = state
    return state


def _render_results_table(query: str, records: Sequence[PlaceRecord]) -> Table:
    table = Table(title=f"{escape(query)} · {len(records)} places", box=box.SIMPLE_HEAD)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Name", style="cyan", overflow="fold")
    table.add_column("Phone", style="green")
    table.add_column("Rating", justify="right")
    table.add_column("Reviews", justify="right")
    table.add_column("Website", style="magenta", overflow="fold")
    for index, record in enumerate(records, start=1):
        table.add_row(
            str(index),
            escape(record.name),
            record.phone or "-",
            f"{record.rating:.1f}" if record.rating is not None else "-",
            str(record.reviews) if record.reviews is not None else "-",
            escape(record.website or "-"),
        )
    return table


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging.", is_flag=True),
) -> None:
    ctx.obj = build_state(verbose)


@app.command("scrape", help="Scrape one query and print the places found.")
def scrape(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search query, e.g. 'coffee berlin'."),
    max_results: Optional[int] = typer.Option(None, "--max-results", "-n", min=1, help="Result cap."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Parallel workers."),
    export: bool = typer.Option(False, "--export", help="Export results to data/outputs.", is_flag=True),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Directory to export results into."),
    fmt: str = typer.Option("json", "--format", help="Export format: json or csv."),
) -> None:
    state = _get_state(ctx)

    async def _run():
        service = state.service_factory()
        try:
            return await service.run_sync(query, max_results, workers)
        finally:
            await service.aclose()

    try:
        with console.status(f"Scraping '{query}'…"):
            outcome = asyncio.run(_run())
    except (CrawlerError, ValueError) as exc:
        console.print(f"Scrape failed: {escape(str(exc))}", style="red")
        raise typer.Exit(code=1)

    console.print(_render_results_table(query, outcome.results))
    console.print(
        f"{len(outcome.results)} results in {outcome.duration:.1f}s ({outcome.speed:.2f} results/sec)",
        style="dim",
    )
    if export or output is not None:
        target = output or state.repository.locator.outputs_dir
        try:
            exporter = FileExporter(target, query, fmt)
        except ValueError as exc:
            console.print(escape(str(exc)), style="red")
            raise typer.Exit(code=1)
        with exporter:
            exporter.export_many(outcome.results)
        console.print(f"Exported to {exporter.path}", style="green")


@app.command("bulk", help="Scrape several queries in concurrent batches.")
def bulk(
    ctx: typer.Context,
    queries: List[str] = typer.Argument(..., help="Queries to scrape."),
    max_results: Optional[int] = typer.Option(None, "--max-results", "-n", min=1, help="Result cap per query."),
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Parallel workers per query."),
) -> None:
    state = _get_state(ctx)

    async def _run():
        service = state.service_factory()
        try:
            return await service.run_bulk(queries, max_results, workers)
        finally:
            await service.aclose()

    try:
        with console.status(f"Scraping {len(queries)} queries…"):
            outcome = asyncio.run(_run())
    except (CrawlerError, ValueError) as exc:
        console.print(f"Bulk scrape failed: {escape(str(exc))}", style="red")
        raise typer.Exit(code=1)

    table = Table(title="Bulk results", box=box.SIMPLE_HEAD)
    table.add_column("Query", style="cyan")
    table.add_column("Places", justify="right", style="green")
    table.add_column("Error", style="red", overflow="fold")
    for query in queries:
        if query in outcome.results:
            table.add_row(escape(query), str(len(outcome.results[query])), "")
        else:
            table.add_row(escape(query), "-", escape(outcome.errors.get(query, "")))
    console.print(table)
    console.print(
        f"{len(outcome.results)}/{outcome.total_queries} queries succeeded in {outcome.duration:.1f}s",
        style="dim",
    )


@app.command("serve", help="Run the HTTP API.")
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address."),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port."),
) -> None:
    import uvicorn

    from .web import create_app

    state = _get_state(ctx)
    server = state.config.server
    api = create_app(state.service_factory(), api_key=server.api_key)
    console.print(
        f"maps-crawler API on {host or server.host}:{port or server.port} "
        f"(workers {server.default_workers}, max jobs {server.max_concurrent_jobs})",
        style="cyan",
    )
    uvicorn.run(api, host=host or server.host, port=port or server.port)


@config_app.command("show", help="Print the effective configuration.")
def config_show(ctx: typer.Context) -> None:
    state = _get_state(ctx)
    payload = state.config.model_dump(mode="json")
    if payload.get("server", {}).get("api_key"):
        payload["server"]["api_key"] = "***"
    console.print(f"# {state.repository.locator.config_path()}", style="dim")
    console.print(yaml.safe_dump(payload, allow_unicode=True, sort_keys=False), markup=False)


def cli() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    cli()
