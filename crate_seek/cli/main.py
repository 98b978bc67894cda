"""Main CLI entry point for crate-seek."""

import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..cargo.environment import CargoEnvironment
from ..core.configuration import ConfigurationManager
from ..core.exceptions import CrateSeekError
from ..core.interfaces import (
    MAX_PAGE_SIZE, CrateRecord, RecordHydrated, Scope, SearchCompleted, SearchFailed, Sort
)
from ..fetcher.crates_io import CratesIoClient
from ..search.merge import hydrate_record
from ..search.results import ResultSet
from ..search.session import SearchSession

# Initialize rich console for better output formatting
console = Console()

SCOPE_CHOICES = [scope.value for scope in Scope]
SORT_CHOICES = [sort.value for sort in Sort]


def setup_logging(verbose: bool = False):
    """Set up logging configuration."""
    # Check environment variable for log level override
    env_log_level = os.getenv('CRATE_SEEK_LOG_LEVEL', '').upper()
    if env_log_level in ['DEBUG', 'INFO', 'WARNING', 'ERROR']:
        level = getattr(logging, env_log_level)
    else:
        level = logging.DEBUG if verbose else logging.WARNING

    log_format = os.getenv('CRATE_SEEK_LOG_FORMAT', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    logging.basicConfig(
        level=level,
        format=log_format
    )


def _truncate(text: Optional[str], width: int = 60) -> str:
    text = (text or "").strip().replace("\n", " ")
    return text[:width] + ("..." if len(text) > width else "")


def display_search_results(results: ResultSet, term: str):
    """Display one page of search results in a formatted table."""
    if not results.records:
        console.print(f"[yellow]No crates found for:[/yellow] {term}")
        return

    table = Table(title=f"Search Results for '{term}'")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Version", style="green")
    table.add_column("Project", style="magenta")
    table.add_column("Installed", style="magenta")
    table.add_column("Downloads", style="yellow", justify="right")
    table.add_column("Description", style="white")

    selected = results.selected_index()
    offset = results.items_in_previous_pages()

    for index, record in enumerate(results.records):
        name = f"[bold]{record.name}[/bold]" if index == selected else record.name
        table.add_row(
            str(offset + index + 1),
            name,
            record.version,
            record.project_version or "",
            record.installed_version or "",
            f"{record.downloads:,}" if record.downloads is not None else "",
            _truncate(record.description)
        )

    console.print(table)
    console.print(
        f"Page {results.current_page} of {max(results.page_count(), 1)} "
        f"({results.total_count} total matches)"
    )


def display_crate_details(record: CrateRecord):
    """Display the full metadata of a crate."""
    lines = [f"[bold cyan]{record.name}[/bold cyan] {record.version}"]
    if record.description:
        lines.append(record.description.strip())
    lines.append("")

    fields = [
        ("Project", record.project_version),
        ("Installed", record.installed_version),
        ("License", record.license),
        ("Homepage", record.homepage),
        ("Documentation", record.documentation),
        ("Repository", record.repository),
        ("Downloads", f"{record.downloads:,}" if record.downloads is not None else None),
        ("Recent downloads", f"{record.recent_downloads:,}" if record.recent_downloads is not None else None),
        ("Created", record.created_at),
        ("Updated", record.updated_at),
        ("Categories", ", ".join(record.categories or []) or None),
        ("Keywords", ", ".join(record.keywords or []) or None),
        ("Features", ", ".join(record.features or []) or None),
    ]
    for label, value in fields:
        if value:
            lines.append(f"[yellow]{label}:[/yellow] {value}")

    console.print(Panel("\n".join(lines), title=record.id, border_style="blue"))


def _load_config(ctx, page_size: Optional[int] = None):
    config = ConfigurationManager(ctx.obj['config']).load()
    if page_size is not None:
        config.page_size = page_size
    return config


async def run_search(session: SearchSession, term: str, page: int, sort: Sort, scope: Scope,
                     details: bool = False, timeout: float = 60.0):
    """
    Run a single search to completion on ``session``.

    Returns:
        The SearchCompleted or SearchFailed event for the search.
    """
    session.search(term, page=page, sort=sort, scope=scope)

    while True:
        event = await session.next_event(timeout=timeout)
        if isinstance(event, (SearchCompleted, SearchFailed)):
            break

    if details and isinstance(event, SearchCompleted) and session.hydration.needs_hydration(session.selected()):
        wait = session.config.hydration_debounce + session.config.request_timeout * 2
        try:
            while not isinstance(await session.next_event(timeout=wait), RecordHydrated):
                pass
        except asyncio.TimeoutError:
            logging.getLogger(__name__).warning("Timed out waiting for crate details")

    session.hydration.cancel()
    return event


@click.group()
@click.option('--config', '-c', type=click.Path(),
              default=lambda: os.getenv('CRATE_SEEK_CONFIG'),
              help='Path to configuration file (env: CRATE_SEEK_CONFIG)')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging (env: CRATE_SEEK_VERBOSE)')
@click.pass_context
def cli(ctx, config, verbose):
    """
    Search Rust crates across your project, installed binaries and crates.io.

    \b
    Examples:

      # Search everywhere
      crate-seek search serde

      # Only the current project's dependencies
      crate-seek search serde --scope project

      # Second page of the registry, most downloaded first
      crate-seek search http --scope registry --sort downloads --page 2

      # Full metadata for one crate
      crate-seek info tokio
    """
    ctx.ensure_object(dict)
    ctx.obj['config'] = config

    if not verbose and os.getenv('CRATE_SEEK_VERBOSE', '').lower() in ['true', '1', 'yes']:
        verbose = True

    ctx.obj['verbose'] = verbose
    setup_logging(verbose)


@cli.command()
@click.argument('term')
@click.option('--scope', '-s', type=click.Choice(SCOPE_CHOICES), default=None,
              help='Which sources to search (default from configuration)')
@click.option('--sort', type=click.Choice(SORT_CHOICES), default=None,
              help='Registry sort order (default from configuration)')
@click.option('--page', '-p', default=1, type=click.IntRange(min=1), help='Page to show')
@click.option('--page-size', type=click.IntRange(min=1, max=MAX_PAGE_SIZE), default=None,
              help=f'Results per page (at most {MAX_PAGE_SIZE})')
@click.option('--manifest-path', type=click.Path(exists=True, file_okay=False),
              default=None, help='Directory to look for Cargo.toml from (default: current directory)')
@click.option('--details', '-d', is_flag=True, help='Also show full metadata for the best match')
@click.pass_context
def search(ctx, term, scope, sort, page, page_size, manifest_path, details):
    """
    Search for crates.

    Results from the project come first, then installed binaries, then the
    registry; duplicates are merged and marked with their local versions.
    """
    try:
        config = _load_config(ctx, page_size)
        scope = Scope(scope) if scope else config.default_scope
        sort = Sort(sort) if sort else config.default_sort

        environment = CargoEnvironment(root=Path(manifest_path or os.getcwd()))
        if scope != Scope.REGISTRY:
            environment.refresh()

        session = SearchSession(config=config, environment=environment)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"Searching for '{term}'...", total=None)
                event = asyncio.run(run_search(session, term, page, sort, scope, details=details))
        finally:
            session.close()

        if isinstance(event, SearchFailed):
            console.print(f"[red]Error:[/red] {event.message}")
            sys.exit(1)

        display_search_results(session.results, term)
        if details and session.selected() is not None:
            display_crate_details(session.selected())

    except CrateSeekError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command()
@click.argument('name')
@click.pass_context
def info(ctx, name):
    """
    Show the full registry metadata for a crate.
    """
    try:
        config = _load_config(ctx)
        client = CratesIoClient(config)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                progress.add_task(f"Fetching '{name}'...", total=None)
                detail = client.get_crate(name)
        finally:
            client.close()

        record = CrateRecord(id=detail.id, name=detail.name, version=detail.version)
        hydrate_record(record, detail)
        display_crate_details(record)

    except CrateSeekError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


@cli.command(name='config')
@click.pass_context
def show_config(ctx):
    """
    Print the effective configuration as YAML.
    """
    try:
        config = _load_config(ctx)
    except CrateSeekError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    click.echo(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False))


def main() -> int:
    """Main CLI entry point."""
    try:
        cli(standalone_mode=False)
        return 0
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        return 130
    except SystemExit as e:
        return e.code
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
