"""Human readable table of lint results."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table
from rich.text import Text

from bundlelint.kernel.linting.models import Results

_LEVEL_STYLE = {"error": "red", "warning": "yellow", "note": "blue"}


def build_table(results: Results) -> Table | None:
    """Build a borderless table of the sorted entries, or None if there are none.

    Each row shows the basename and line of the entry's first location.
    """
    entries = results.sorted_entries()
    if not entries:
        return None

    table = Table(box=None, show_header=True, header_style="bold", pad_edge=False)
    table.add_column("Rule ID", style="cyan", no_wrap=True)
    table.add_column("Level", no_wrap=True)
    table.add_column("File", style="green", no_wrap=True)
    table.add_column("Line", justify="right", no_wrap=True)
    table.add_column("Message")

    for entry in entries:
        location = entry.location
        file = Path(location.file).name if location is not None else ""
        line = str(location.line) if location is not None else ""
        style = _LEVEL_STYLE.get(entry.level, "white")
        table.add_row(
            entry.rule_id,
            Text(entry.level, style=style),
            file,
            line,
            Text(entry.message),
        )
    return table


def render_table(results: Results, width: int = 200) -> str:
    """Render the results table as plain text; empty when there are no entries."""
    table = build_table(results)
    if table is None:
        return ""
    console = Console(width=width, no_color=True, highlight=False, force_terminal=False)
    with console.capture() as capture:
        console.print(table)
    return capture.get()
