"""
Entry point for ``cms-migrator`` and ``python -m cms_migrator``.

Errors raised by a command end up here: known migration errors are shown
as a panel with suggestions, anything else as an unexpected error.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from cms_migrator.cli.app import app
from cms_migrator.cli.formatters import format_error_with_suggestions
from cms_migrator.exceptions import MigratorError

log = logging.getLogger("cms_migrator")

# Conventional exit status after SIGINT.
INTERRUPTED_EXIT_CODE = 130


def _force_utf8_console() -> None:
    # Windows consoles default to a legacy code page and choke on the status glyphs.
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass


def main() -> None:
    if os.name == "nt":
        _force_utf8_console()

    console = Console()
    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print(
            "\n[yellow]⚠️  Interrupted. Snapshots written so far are kept; "
            "run the same command again to resume.[/yellow]"
        )
        sys.exit(INTERRUPTED_EXIT_CODE)
    except MigratorError as e:
        console.print(f"\n{format_error_with_suggestions(e)}")
        sys.exit(1)
    except Exception as e:
        log.debug("Unhandled error:", exc_info=True)
        console.print(f"\n{format_error_with_suggestions(e, {'type': 'Unexpected'})}")
        sys.exit(1)


if __name__ == "__main__":
    main()
