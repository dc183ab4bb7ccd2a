"""
Rich renderings of configuration, run summaries, snapshot status and errors.
"""

from collections import Counter
from pathlib import Path
from typing import Any, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from cms_migrator.exceptions import (
    BlankFormTimeoutError,
    ConfigurationError,
    CreationError,
    DownloadError,
    NavigationError,
    PageError,
    SnapshotError,
)
from cms_migrator.models.config import MigrationConfig
from cms_migrator.models.entities import Entity
from cms_migrator.models.state import State
from cms_migrator.models.stats import MigrationStats
from cms_migrator.utils.formatting import format_duration, format_size, truncate

HIDDEN_KEYS = ("password",)

STATE_STYLES = {
    State.UNINITIALIZED: "dim",
    State.INDEX: "cyan",
    State.DETAILS: "blue",
    State.CREATED: "green",
    State.REVERTED: "green",
    State.ERROR: "bold red",
}


SUGGESTIONS: dict[type[BaseException], tuple[str, ...]] = {
    ConfigurationError: (
        "Check the values in the configuration file (`cms-migrator --show-config`).",
        "Run `cms-migrator init` to write a fresh configuration.",
    ),
    SnapshotError: (
        "Run the earlier stages first, or pass `--stage all`.",
        "A snapshot edited by hand may no longer be valid JSON.",
    ),
    NavigationError: (
        "The CMS may be slow or unreachable. Try again in a few minutes.",
        "Raise `navigation_timeout` in the configuration file.",
        "Check that you can sign in with the configured credentials.",
    ),
    PageError: (
        "The page changed while it was being read or filled in.",
        "Run the same command again; finished records are kept.",
    ),
    BlankFormTimeoutError: (
        "The destination did not present an empty form in time.",
        "Raise `create_max_attempts` or `stable_timeout`.",
    ),
    CreationError: (
        "The destination rejected the record. Its message is shown above.",
        "Fix the record in the snapshot file and run the create stage again.",
    ),
    DownloadError: (
        "The source server did not return the file.",
        "Check `files_base_url` and your network connection.",
    ),
    TimeoutError: (
        "An operation timed out.",
        "Try fewer download `--workers`.",
    ),
}
FALLBACK_SUGGESTIONS = ("Run the command again with -v for debug logs.",)


def suggestions_for(error: BaseException) -> tuple[str, ...]:
    """Hints for the closest known class of ``error``."""
    for cls in type(error).__mro__:
        if cls in SUGGESTIONS:
            return SUGGESTIONS[cls]
    return FALLBACK_SUGGESTIONS


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Builds the panel shown when a command stops on an error."""
    headline = Text.assemble((f"{type(error).__name__}: ", "bold red"), str(error))

    content = Table.grid(padding=(1, 0))
    content.add_row(headline)
    content.add_row()
    content.add_row(Text("What to try", style="bold yellow"))
    content.add_row(Text("\n".join(f"• {hint}" for hint in suggestions_for(error))))
    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]Migration Stopped[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        if key in HIDDEN_KEYS and value:
            value = "********"
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: MigrationConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Source:", config.source_url)
    table.add_row("Destination:", config.destination_url or "[yellow]not set[/yellow]")
    table.add_row("Files Base URL:", config.files_base_url or "[dim]not set[/dim]")
    table.add_row(
        "Credentials:",
        "[green]✓ Present[/green]" if config.has_credentials() else "[yellow]✗ Missing[/yellow]",
    )
    table.add_row("Download Workers:", str(config.workers))
    table.add_row("Snapshots:", f"[dim]{config.snapshot_dir}[/dim]")
    table.add_row("Downloads:", f"[dim]{config.download_dir}[/dim]")
    table.add_row("Headless Browser:", "✓ Yes" if config.headless else "✗ No")
    table.add_row("Dry Run:", "✓ Enabled" if config.dry_run else "✗ Disabled")

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_status_table(category: str, stage: str | None, entities: Sequence[Entity]):
    """Shows how far each entity of a snapshot got, with a count per state."""
    console = Console()
    if stage is None:
        console.print(f"[yellow]No snapshots found for {category}.[/yellow]")
        return

    counts = Counter(entity.state for entity in entities)
    summary = "  ".join(
        f"[{STATE_STYLES[state]}]{state.value}: {counts[state]}[/]"
        for state in State
        if counts[state]
    )
    console.print(
        f"\n[bold]{category}[/bold] [dim](latest snapshot: {stage})[/dim]\n{summary or '[dim]empty[/dim]'}\n"
    )

    failed = [entity for entity in entities if entity.state is State.ERROR]
    if not failed:
        return

    table = Table(title="Failed Records", box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Record", style="cyan")
    table.add_column("Failed In")
    table.add_column("Message", style="red")
    for position, entity in enumerate(entities):
        if entity.state is not State.ERROR:
            continue
        table.add_row(
            str(position),
            truncate(entity.label),
            entity.error_state.value if entity.error_state else "?",
            truncate(entity.error_message, 80),
        )
    console.print(table)


def print_summary_panel(stats: MigrationStats, duration_s: float):
    """Displays the final summary of a migration run."""
    console = Console()

    stats_table = Table(show_header=False, box=None, padding=(0, 2))
    stats_table.add_column(style="bold cyan", justify="right", width=20)
    stats_table.add_column(style="white", justify="left")

    stats_table.add_row(
        "✓ Processed:", f"[bold green]{stats.entities_processed}[/bold green]"
    )
    if stats.entities_skipped > 0:
        stats_table.add_row("○ Skipped:", f"[yellow]{stats.entities_skipped}[/yellow]")
    if stats.entities_failed > 0:
        stats_table.add_row("✗ Failed:", f"[bold red]{stats.entities_failed}[/bold red]")
    if stats.records_rejected > 0:
        stats_table.add_row(
            "⚠ Rejected Records:", f"[yellow]{stats.records_rejected}[/yellow]"
        )

    if stats.files_total > 0:
        stats_table.add_row("", "")
        stats_table.add_row(
            "Files Downloaded:", f"[green]{stats.files_downloaded}[/green]"
        )
        file_skips = []
        if stats.files_skipped_exists > 0:
            file_skips.append(f"[yellow]{stats.files_skipped_exists} (exists)[/yellow]")
        if stats.files_unavailable > 0:
            file_skips.append(f"[yellow]{stats.files_unavailable} (gone)[/yellow]")
        if file_skips:
            stats_table.add_row("Files Skipped:", " + ".join(file_skips))
        if stats.files_failed > 0:
            stats_table.add_row("Files Failed:", f"[bold red]{stats.files_failed}[/bold red]")
        stats_table.add_row(
            "Total Size:", f"[cyan]{format_size(stats.bytes_downloaded)}[/cyan]"
        )
        avg_speed = stats.bytes_downloaded / duration_s if duration_s > 0 else 0
        stats_table.add_row(
            "Avg. Speed:", f"[magenta]{format_size(int(avg_speed))}/s[/magenta]"
        )

    stats_table.add_row("", "")
    stats_table.add_row("Time Elapsed:", f"[blue]{format_duration(duration_s)}[/blue]")

    if stats.dry_run:
        title = "🔍 [bold]Dry Run Summary[/bold]"
        border_color = "yellow"
    elif stats.entities_failed or stats.files_failed:
        title = "[bold]Migration Finished With Errors[/bold]"
        border_color = "red"
    else:
        title = "[bold]Migration Complete![/bold]"
        border_color = "green"

    console.print()
    console.print(
        Panel(
            stats_table,
            title=title,
            border_style=border_color,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
