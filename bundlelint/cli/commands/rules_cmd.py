"""Rule listing command for the bundlelint CLI."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from bundlelint.kernel.linting.registry import default_registry

console = Console()

_CLI_NAME = "rules"
_CLI_HELP = "List the available lint rules"
_CLI_TYPE = "command"
_CLI_FUNC = "rules"

_SEVERITY_STYLE = {"error": "red", "warning": "yellow", "note": "blue"}


def rules() -> None:
    """List every registered lint rule in dispatch order."""
    table = Table(title="Lint Rules", show_header=True, border_style="dim")
    table.add_column("Rule ID", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Severity")
    table.add_column("Description")

    for rule in default_registry().rules:
        style = _SEVERITY_STYLE.get(rule.severity, "white")
        table.add_row(
            rule.rule_id,
            str(rule.kind),
            f"[{style}]{rule.severity}[/{style}]",
            rule.description,
        )

    console.print(table)
