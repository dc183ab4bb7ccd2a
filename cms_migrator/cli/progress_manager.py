"""
Manages a Rich Live display for the current stage: one progress bar plus running counters.
"""

import asyncio
import logging
from typing import Any

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

log = logging.getLogger("cms_migrator")

_FAILURE_OUTCOMES = {"failed", "error"}
_SKIP_OUTCOMES = {"skipped", "skipped_exists", "unavailable"}


class ProgressManager:
    """Shows progress for whichever stage is running and tallies its outcomes."""

    def __init__(self, console: Console, dry_run: bool = False, enabled: bool = True):
        self.console = console
        self.dry_run = dry_run
        self.enabled = enabled

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            MofNCompleteColumn(),
            "•",
            TimeElapsedColumn(),
            console=console,
            transient=False,
        )
        self._live: Live | None = None
        self._task_id: TaskID | None = None
        self._counts = {"completed": 0, "failed": 0, "skipped": 0}

    def log_message(self, message: str, level: str = "info"):
        """Logs through the live display so messages do not tear the progress bar."""
        getattr(log, level, log.info)(message)

    def start_task(self, description: str, total: int | None) -> None:
        self.finish_task()
        self._counts = {"completed": 0, "failed": 0, "skipped": 0}
        if self.enabled:
            self._task_id = self.progress.add_task(description, total=total)
            self._refresh()

    def advance(self, outcome: Any = None) -> None:
        """Advances the current task by one item and counts its outcome."""
        value = getattr(outcome, "value", outcome)
        if value in _FAILURE_OUTCOMES:
            self._counts["failed"] += 1
        elif value in _SKIP_OUTCOMES:
            self._counts["skipped"] += 1
        else:
            self._counts["completed"] += 1
        if self._task_id is not None:
            self.progress.advance(self._task_id)
            self._refresh()

    def finish_task(self) -> None:
        if self._task_id is not None:
            self.progress.stop_task(self._task_id)
            self._task_id = None
            self._refresh()

    def get_statistics(self) -> dict[str, int]:
        return self._counts.copy()

    def _render(self) -> Panel:
        counters = Table.grid(padding=(0, 2))
        counters.add_column(style="bold cyan", justify="right")
        counters.add_column(style="white")
        counters.add_column(style="bold cyan", justify="right")
        counters.add_column(style="white")
        counters.add_row(
            "Done:",
            f"[green]{self._counts['completed']}[/green]",
            "Failed:",
            f"[red]{self._counts['failed']}[/red]",
        )
        counters.add_row(
            "Skipped:",
            f"[yellow]{self._counts['skipped']}[/yellow]",
            "Mode:",
            "[magenta]dry run[/magenta]" if self.dry_run else "[green]live[/green]",
        )
        return Panel(
            Group(counters, self.progress),
            title="[bold]📦 Migration Progress[/bold]",
            border_style="blue",
        )

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._render())

    async def __aenter__(self):
        if not self.enabled:
            return self
        self._live = Live(
            self._render(),
            console=self.console,
            refresh_per_second=8,
            vertical_overflow="visible",
        )
        self._live.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._live:
            await asyncio.sleep(0.1)
            self._live.stop()
            self._live = None
