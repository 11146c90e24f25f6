"""Command-line interface for PlaceMiner."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import click
import structlog
import yaml
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from placeminer import __version__
from placeminer.config import Config, load_config
from placeminer.errors import IngestError
from placeminer.exporter import CsvExporter
from placeminer.extractor import ExtractionEngine
from placeminer.ingest import load_work_items
from placeminer.observability import configure_logging, start_metrics_server
from placeminer.orchestrator import Orchestrator, build_query
from placeminer.progress import ProgressBoard, ProgressChannel
from placeminer.protocols import ProgressEvent, ResultRecord, WorkItem
from placeminer.source import PlaywrightContentSource

console = Console()
logger = structlog.get_logger(__name__)

EXIT_INGEST_ERROR = 2
EXIT_INTERRUPTED = 130


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """PlaceMiner - company contact enrichment from map listings."""
    ctx.ensure_object(dict)
    settings = load_config(Path(config) if config else None)
    if log_level:
        settings.monitoring.log_level = log_level
    ctx.obj["config"] = settings


@cli.command()
@click.argument("input_csv", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), help="Directory for the export")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Explicit export file path")
@click.option("--headed", is_flag=True, help="Show the browser window")
@click.option("--dry-run", is_flag=True, help="Validate the input and print the queries without running")
@click.pass_context
def run(
    ctx: click.Context,
    input_csv: Path,
    output_dir: Optional[Path],
    output: Optional[Path],
    headed: bool,
    dry_run: bool,
) -> None:
    """Enrich every row of INPUT_CSV and export the results."""
    config: Config = ctx.obj["config"]
    if output_dir is not None:
        config.export.output_dir = output_dir
    if headed:
        config.source.headless = False

    configure_logging(config.monitoring)

    try:
        items = load_work_items(input_csv)
    except IngestError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(EXIT_INGEST_ERROR)
        return

    if dry_run:
        console.print(_queries_table(items, config.orchestrator.query_separator))
        console.print(f"[blue]Dry run: {len(items)} rows validated, nothing scraped.[/blue]")
        return

    if config.monitoring.prometheus_port:
        start_metrics_server(config.monitoring.prometheus_port)

    console.print(
        Panel.fit(
            f"[bold blue]PlaceMiner[/bold blue]\n"
            f"Rows: {len(items)}\n"
            f"Politeness delay: {config.orchestrator.politeness_delay}s",
            title="Starting Run",
        )
    )

    board = ProgressBoard()
    try:
        records = asyncio.run(execute_run(config, items, board))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted, no results exported.[/yellow]")
        sys.exit(EXIT_INTERRUPTED)

    console.print(results_table(board.newest_first()))

    found = sum(1 for event in board.latest.values() if event.success)
    path = CsvExporter(config.export).export(records, output)
    logger.info("Run complete", found=found, total=len(records), path=str(path))
    console.print(
        Panel(
            f"Found: {found}/{len(records)}\nExported to: {escape(str(path))}",
            title="Results",
            border_style="green" if found else "yellow",
        )
    )


@cli.command("show-config")
@click.pass_context
def show_config(ctx: click.Context) -> None:
    """Print the effective configuration as YAML."""
    config: Config = ctx.obj["config"]
    click.echo(yaml.safe_dump(config.model_dump(mode="json"), sort_keys=False))


async def execute_run(config: Config, items: Sequence[WorkItem], board: ProgressBoard) -> List[ResultRecord]:
    """Run the orchestrator over items with a live progress bar."""
    channel = ProgressChannel()
    channel.subscribe(board)

    progress = Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )

    with progress:
        task = progress.add_task("Enriching companies", total=len(items))

        def on_event(event: ProgressEvent) -> None:
            progress.update(
                task,
                completed=event.processed_count,
                description=f"{escape(event.record.company)} ({event.status})",
            )

        channel.subscribe(on_event)

        async with PlaywrightContentSource(config.source) as source:
            orchestrator = Orchestrator(
                source,
                ExtractionEngine(config.extraction),
                config.orchestrator,
                channel,
            )
            return await orchestrator.run(items)


def results_table(events: Sequence[ProgressEvent]) -> Table:
    table = Table(title="Results")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Company", style="cyan")
    table.add_column("Status")
    table.add_column("Name")
    table.add_column("Phone")
    table.add_column("Website")
    table.add_column("Email")

    for event in events:
        record = event.record
        status_style = "green" if event.success else "red"
        table.add_row(
            str(event.processed_count),
            escape(record.company),
            f"[{status_style}]{event.status}[/{status_style}]",
            escape(record.name),
            escape(record.phone),
            escape(record.website),
            escape(record.email),
        )
    return table


def _queries_table(items: Sequence[WorkItem], separator: str) -> Table:
    table = Table(title="Queries")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Query", style="cyan")
    for item in items:
        table.add_row(str(item.id), escape(build_query(item, separator)))
    return table


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
