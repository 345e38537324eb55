"""Bundle linting command for the bundlelint CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from bundlelint.compiler.bundle_formatter import walk_bundle_files
from bundlelint.compiler.config_loader import ConfigLoader
from bundlelint.kernel.config.models import LintConfig
from bundlelint.kernel.exceptions import BundleFileError, ConfigurationError, ValidationError
from bundlelint.kernel.linting.linter import lint as lint_bundles
from bundlelint.kernel.linting.models import Results
from bundlelint.kernel.linting.report_sarif import render_sarif
from bundlelint.kernel.linting.report_table import render_table
from bundlelint.kernel.logging import configure_logging, get_logger

console = Console()
logger = get_logger(__name__)

_CLI_NAME = "lint"
_CLI_HELP = "Lint policy bundle files"
_CLI_TYPE = "command"
_CLI_FUNC = "lint"


def lint(
    ctx: typer.Context,
    paths: Annotated[
        list[Path],
        typer.Argument(
            help="Bundle files or directories containing *.mql.yaml files",
            exists=True,
            readable=True,
        ),
    ],
    sarif: Annotated[
        bool,
        typer.Option(
            "--sarif/--cli",
            help="Report as SARIF v2.1.0 instead of a table",
        ),
    ] = False,
    root_dir: Annotated[
        Path | None,
        typer.Option(
            "--root-dir",
            help="Directory SARIF artifact URIs are relative to (defaults to the first path's directory)",
        ),
    ] = None,
    output_file: Annotated[
        Path | None,
        typer.Option(
            "--output-file",
            "-o",
            help="Write the report to a file instead of stdout",
        ),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Configuration file (YAML or TOML)",
        ),
    ] = None,
) -> None:
    """Lint policy bundle files for structural and semantic issues.

    Checks include UID format and uniqueness, required fields and tags,
    query assignment, variant rules, migration plans, and whether the
    bundle compiles.

    Examples
    --------
    bundlelint lint my-policy.mql.yaml
    bundlelint lint policies/ --sarif --output-file report.sarif
    bundlelint lint policies/ --config bundlelint.yaml
    """
    try:
        config = ConfigLoader().load(config_file)
    except (ConfigurationError, ValidationError) as e:
        console.print(f"[red]Configuration Error:[/red] {e}")
        raise typer.Exit(1) from e

    if not (ctx.obj or {}).get("log_level"):
        _apply_logging_config(config)

    try:
        files = walk_bundle_files(paths)
    except BundleFileError as e:
        console.print(f"[red]File Error:[/red] {e}")
        raise typer.Exit(1) from e
    if not files:
        console.print("[red]No bundle files found.[/red]")
        raise typer.Exit(1)
    logger.info("Found {count} bundle files", count=len(files))

    try:
        results = lint_bundles(files, config=config)
    except BundleFileError as e:
        console.print(f"[red]File Error:[/red] {e}")
        raise typer.Exit(1) from e

    if sarif:
        base = root_dir if root_dir is not None else _default_root(paths[0])
        report = render_sarif(results, root_dir=base)
    else:
        report = render_table(results)

    if output_file is not None:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(report, encoding="utf-8")
        console.print(f"Report written to [bold]{output_file}[/bold]")
    elif sarif:
        typer.echo(report)
    else:
        _print_text(report, results, len(files))

    if results.has_error:
        raise typer.Exit(1)


def _default_root(path: Path) -> Path:
    return path if path.is_dir() else path.parent


def _apply_logging_config(config: LintConfig) -> None:
    log = config.logging
    configure_logging(
        level=log.level,
        format=log.format,
        output_file=log.output_file,
        use_color=log.use_color,
        include_timestamp=log.include_timestamp,
    )


def _print_text(report: str, results: Results, file_count: int) -> None:
    """Print the table followed by a summary line."""
    if not report:
        console.print(f"[green]No issues found[/green] in {file_count} bundle file(s)")
        return

    console.print(report, markup=False, highlight=False, soft_wrap=True, end="")
    console.print()
    console.print(
        f"[red]{len(results.errors)} error(s)[/red]  "
        f"[yellow]{len(results.warnings)} warning(s)[/yellow]"
    )
