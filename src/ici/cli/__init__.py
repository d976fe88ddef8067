"""
CLI for the incremental classfile indexer.

Provides command-line interface for refreshing, watching and searching the
symbol index of a JVM project.
"""

import asyncio
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
)
from rich.table import Table

from ici.core.config import ICIConfig, configure_logging, load_config
from ici.core.models import FqnSymbol
from ici.infrastructure import FileWatcher
from ici.services import ServicesContainer, WatchService, create_services

load_dotenv()

# Initialize Rich Console
console = Console()

app = typer.Typer(
    name="ici",
    help="Incremental Classfile Indexer - Symbol search over JVM build output",
    add_completion=False,
)

_state: dict = {"config_path": None}


@app.callback()
def main(
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file (YAML or JSON)"
    ),
):
    """Incremental Classfile Indexer."""
    _state["config_path"] = config_path


def get_config() -> ICIConfig:
    """Load configuration and apply its logging section."""
    cfg = load_config(_state["config_path"])
    configure_logging(cfg.logging)
    return cfg


def get_services(cfg: ICIConfig, progress_callback=None) -> ServicesContainer:
    return create_services(config=cfg, progress_callback=progress_callback)


def _symbol_table(title: str, symbols: List[FqnSymbol]) -> Table:
    table = Table(title=title, border_style="blue")
    table.add_column("Kind", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Descriptor", style="dim")
    table.add_column("Location", overflow="fold")
    for s in symbols:
        location = s.source_uri or s.entry_path
        if s.line is not None:
            location = f"{location}:{s.line}"
        table.add_row(s.kind.value, s.fqn, s.descriptor or s.internal or "", location)
    return table


@app.command()
def refresh():
    """Index every class file and archive that is not up to date."""
    try:
        cfg = get_config()
        console.print("[bold blue]Refreshing index...[/bold blue]")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Initializing...", total=None)

            def update_progress(current: int, total: int, message: str) -> None:
                progress.update(task, completed=current, total=total or None, description=message)

            container = get_services(cfg, progress_callback=update_progress)
            try:
                result = asyncio.run(container.search_service.refresh())
            finally:
                container.close()

        summary = Table.grid(padding=1)
        summary.add_column(style="bold")
        summary.add_column()
        summary.add_row("Removed:", str(result.removed))
        summary.add_row("Indexed:", str(result.indexed))
        summary.add_row("Duration:", f"{result.duration_seconds:.2f}s")
        if result.failed_files:
            summary.add_row("Failed Files:", f"[red]{len(result.failed_files)}[/red]")

        console.print(
            Panel(
                summary,
                title="[bold green]Refresh Complete[/bold green]",
                border_style="green",
                expand=False,
            )
        )

        if result.failed_files:
            console.print("\n[bold red]Failed Files:[/bold red]")
            for f in result.failed_files[:5]:
                console.print(f"  - {f}")
            if len(result.failed_files) > 5:
                console.print(f"  ... and {len(result.failed_files) - 5} more")

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def search(
    query: str = typer.Argument(..., help="Class name query, e.g. 'HttpCli'"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Number of results"),
):
    """Search classes by name."""
    try:
        cfg = get_config()
        container = get_services(cfg)
        try:
            results = container.search_service.search_classes(
                query, limit or cfg.search.default_limit
            )
        finally:
            container.close()

        if not results:
            console.print("[yellow]No results found.[/yellow]")
            return
        console.print(_symbol_table(f"Classes matching '{query}'", results))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def methods(
    terms: List[str] = typer.Argument(..., help="Terms that must all match"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Number of results"),
):
    """Search classes and methods matching all terms."""
    try:
        cfg = get_config()
        container = get_services(cfg)
        try:
            results = container.search_service.search_classes_methods(
                terms, limit or cfg.search.default_limit
            )
        finally:
            container.close()

        if not results:
            console.print("[yellow]No results found.[/yellow]")
            return
        console.print(_symbol_table(f"Symbols matching {' '.join(terms)}", results))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def find(
    fqn: str = typer.Argument(..., help="Fully qualified name"),
):
    """Look up a symbol by its exact fully qualified name."""
    try:
        cfg = get_config()
        container = get_services(cfg)
        try:
            symbol = container.search_service.find_unique(fqn)
        finally:
            container.close()

        if symbol is None:
            console.print(f"[yellow]No symbol named {fqn}.[/yellow]")
            raise typer.Exit(1)
        console.print(_symbol_table(fqn, [symbol]))

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def watch(
    no_refresh: bool = typer.Option(
        False, "--no-refresh", help="Skip the refresh before watching"
    ),
):
    """Keep the index current while the build writes class files."""
    try:
        cfg = get_config()
        if no_refresh:
            cfg.watch.refresh_on_start = False
        container = get_services(cfg)
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    watch_service = WatchService.for_project(
        container.search_service, FileWatcher(), container.project, cfg.watch
    )

    async def run() -> None:
        await watch_service.start()
        console.print("[bold green]Watching for changes.[/bold green] Press Ctrl+C to stop.")
        try:
            while True:
                await asyncio.sleep(1)
        finally:
            await watch_service.stop()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        stats = watch_service.get_stats()
        console.print(
            f"\n[cyan]Stopped.[/cyan] {stats.events_received} events, "
            f"{stats.errors} errors"
        )
    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    finally:
        container.close()


@app.command()
def stats():
    """Show index statistics and configuration."""
    try:
        cfg = get_config()
        container = get_services(cfg)
        try:
            store_stats = container.metadata_store.get_stats()
            documents = container.index_store.count_documents()
        finally:
            container.close()

        grid = Table.grid(padding=1)
        grid.add_column(style="bold")
        grid.add_column()
        grid.add_row("Files:", str(store_stats.total_files))
        grid.add_row("Archives:", str(store_stats.total_archives))
        grid.add_row("Symbols:", str(store_stats.total_symbols))
        grid.add_row("Index Documents:", str(documents))
        console.print(Panel(grid, title="Index Statistics", border_style="blue", expand=False))

        if store_stats.symbols_by_kind:
            kind_table = Table(title="Symbols", box=None, show_header=True)
            kind_table.add_column("Kind", style="cyan")
            kind_table.add_column("Count", justify="right")
            for kind, count in sorted(store_stats.symbols_by_kind.items()):
                kind_table.add_row(kind, str(count))
            console.print(Panel(kind_table, border_style="blue", expand=False))

        config_summary = Table.grid(padding=1)
        config_summary.add_column(style="bold")
        config_summary.add_column()
        config_summary.add_row("Index:", str(cfg.project.index_dir))
        config_summary.add_row("Metadata:", str(cfg.project.sql_dir))
        config_summary.add_row("Modules:", str(len(cfg.project.modules)))
        config_summary.add_row("Workers:", str(cfg.indexing.max_workers))
        console.print(Panel(config_summary, title="Configuration", border_style="dim", expand=False))

    except Exception as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
