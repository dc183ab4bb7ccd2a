"""
Typer commands: init, run, revert, status and validate.
"""

import asyncio
import logging
import time
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from cms_migrator import __version__
from cms_migrator.core.pipeline import MigrationPipeline
from cms_migrator.core.revert import RevertRunner
from cms_migrator.core.session import MigrationSession
from cms_migrator.exceptions import MigratorError
from cms_migrator.models.entities import Category
from cms_migrator.storage.config_manager import ConfigManager, default_config_path
from cms_migrator.storage.snapshot import PIPELINE_STAGES, SnapshotStore, Stage
from cms_migrator.strategies import STRATEGIES, get_strategy

from .formatters import (
    print_config,
    print_status_table,
    print_summary_panel,
    print_validation_table,
)
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("cms_migrator")

app = typer.Typer(
    name="cms-migrator",
    help=(
        "Migrates press releases, events, presentations, download lists and"
        " person profiles from one CMS site to another. Use 'cms-migrator"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

CONFIG_FILE = default_config_path()


class StageChoice(str, Enum):
    ALL = "all"
    INDEX = "index"
    DETAILS = "details"
    DOWNLOADS = "downloads"
    CREATE = "create"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Show debug logging.",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """CMS content migration CLI"""
    if version:
        console.print(f"[bold]cms-migrator[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    logging.getLogger("cms_migrator").setLevel("DEBUG" if verbose >= 1 else "INFO")

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]cms-migrator init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config_manager = ConfigManager(CONFIG_FILE)
        config_manager._parser.read(CONFIG_FILE, encoding="utf-8")
        print_config(CONFIG_FILE, config_manager._get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    source_url: str = typer.Argument(..., help="Admin URL of the site to migrate from."),
    destination_url: str = typer.Option(
        "", "--destination", "-d", help="Admin URL of the site to migrate to."
    ),
    files_base_url: str = typer.Option(
        "", "--files-base-url", help="Public URL relative document paths are resolved against."
    ),
    username: str = typer.Option("", "--username", "-u", help="CMS user name."),
    password: str = typer.Option(
        "", "--password", "-p", help="CMS password (or set CMS_PASSWORD)."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Write a new configuration file."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "source_url": source_url,
        "destination_url": destination_url,
        "files_base_url": files_base_url,
        "username": username,
        "password": password,
    }
    ConfigManager(CONFIG_FILE).save_new_config(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    if not (username and password):
        console.print(
            "[dim]No credentials stored. Set CMS_USER and CMS_PASSWORD before running.[/dim]"
        )
    console.print("Ready! Try: [cyan]cms-migrator run press-releases[/cyan]")


@app.command(name="run")
def run_command(
    category: Category = typer.Argument(..., help="Content category to migrate."),
    stage: StageChoice = typer.Option(
        StageChoice.ALL, "--stage", "-s", help="Run a single stage instead of all of them."
    ),
    workers: int | None = typer.Option(
        None, "-w", "--workers", help="Simultaneous file downloads (1-5)."
    ),
    fresh: bool = typer.Option(
        False, "--fresh", help="Ignore the stage's own snapshot and start from the previous one."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Fill the create forms without saving them."
    ),
    max_pages: int | None = typer.Option(
        None, "--max-pages", help="Read at most this many listing pages (-1 for all)."
    ),
    headless: bool | None = typer.Option(
        None, "--headless/--show-browser", help="Run the browser without a window."
    ),
):
    """Migrate one content category."""
    if category not in STRATEGIES:
        console.print(
            f"[red]✗ '{category.value}' cannot be migrated.[/red] "
            "Use [cyan]cms-migrator revert[/cyan] for dashboard items."
        )
        raise typer.Exit(code=1)

    cli_options = {
        "workers": workers,
        "max_index_pages": max_pages,
        "headless": headless,
        "dry_run": dry_run or None,
    }
    stages = PIPELINE_STAGES if stage is StageChoice.ALL else (Stage(stage.value),)

    async def _run_async():
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        strategy_type = get_strategy(category)

        if config.dry_run:
            console.print("[bold cyan]Starting dry run...[/bold cyan]")
        else:
            console.print(f"[bold cyan]Migrating {category.value}...[/bold cyan]")

        start_time = time.monotonic()
        async with ProgressManager(console=console, dry_run=config.dry_run) as progress_manager:
            async with MigrationSession(config, category) as session:
                strategy = strategy_type(
                    session.driver,
                    files_base_url=config.files_base_url or None,
                    download_root=session.download_root,
                    dry_run=config.dry_run,
                )
                pipeline = MigrationPipeline(session, strategy, progress_manager)
                await pipeline.run(stages, fresh=fresh)

        print_summary_panel(session.stats, time.monotonic() - start_time)
        if session.stats.entities_failed or session.stats.files_failed:
            raise typer.Exit(code=1)

    asyncio.run(_run_async())


@app.command()
def revert(
    dashboard_url: str | None = typer.Option(
        None, "--dashboard-url", help="Page listing the pending items (default: destination URL)."
    ),
    fresh: bool = typer.Option(
        False, "--fresh", help="Ignore earlier dashboard snapshots."
    ),
):
    """Revert every pending dashboard item on the destination to its live version."""

    async def _revert_async():
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[bold cyan]Reverting dashboard items to live...[/bold cyan]")
        start_time = time.monotonic()
        async with MigrationSession(config, Category.DASHBOARD) as session:
            await RevertRunner(session).run(dashboard_url, fresh=fresh)
        print_summary_panel(session.stats, time.monotonic() - start_time)
        if session.stats.entities_failed:
            raise typer.Exit(code=1)

    asyncio.run(_revert_async())


@app.command()
def status(
    category: Category = typer.Argument(..., help="Content category to report on."),
):
    """Show how far the records of a category got."""
    config = ConfigManager(CONFIG_FILE).load_config()
    store = SnapshotStore(Path(config.snapshot_dir), category)
    snapshot = store.latest()
    if snapshot is None:
        print_status_table(category.value, None, [])
        return
    print_status_table(category.value, snapshot.stage.value, snapshot.entities)
    if snapshot.rejected:
        console.print(
            f"[yellow]⚠ {len(snapshot.rejected)} record(s) in the snapshot failed "
            "validation and were left out.[/yellow]"
        )


@app.command()
def validate():
    """Check the configuration file and show the settings a run would use."""
    try:
        config_manager = ConfigManager(CONFIG_FILE)
        config = config_manager.load_config()
        print_validation_table(config)
    except MigratorError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
