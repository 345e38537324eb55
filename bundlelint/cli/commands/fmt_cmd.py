"""Bundle formatting command for the bundlelint CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from bundlelint.compiler.bundle_formatter import format_file, walk_bundle_files
from bundlelint.kernel.exceptions import BundleFileError, BundleParseError

console = Console()

_CLI_NAME = "fmt"
_CLI_HELP = "Format policy bundle files in place"
_CLI_TYPE = "command"
_CLI_FUNC = "fmt"


def fmt(
    paths: Annotated[
        list[Path],
        typer.Argument(
            help="Bundle files or directories containing *.mql.yaml files",
            exists=True,
            readable=True,
        ),
    ],
    sort: Annotated[
        bool,
        typer.Option(
            "--sort",
            help="Sort queries, policies and variants by MRN or UID",
        ),
    ] = False,
) -> None:
    """Rewrite bundle files in canonical YAML form.

    Comments are not preserved.

    Examples
    --------
    bundlelint fmt my-policy.mql.yaml
    bundlelint fmt policies/ --sort
    """
    try:
        files = walk_bundle_files(paths)
    except BundleFileError as e:
        console.print(f"[red]File Error:[/red] {e}")
        raise typer.Exit(1) from e

    changed = 0
    for path in files:
        try:
            if format_file(path, sort=sort):
                changed += 1
                console.print(f"Formatted [bold]{path}[/bold]")
        except BundleParseError as e:
            console.print(f"[red]Cannot format {path}:[/red] {e}")
            raise typer.Exit(1) from e
        except BundleFileError as e:
            console.print(f"[red]File Error:[/red] {e}")
            raise typer.Exit(1) from e

    console.print(f"[green]{changed} of {len(files)} bundle file(s) reformatted[/green]")
