"""bundlelint CLI - Main entrypoint."""

from __future__ import annotations

import typer
from rich.console import Console

from bundlelint import __version__
from bundlelint.cli.commands import fmt_cmd, lint_cmd, rules_cmd
from bundlelint.kernel.logging import configure_logging

app = typer.Typer(
    name="bundlelint",
    help="bundlelint - Lint and format policy bundle files.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

console = Console()

for _module in (lint_cmd, fmt_cmd, rules_cmd):
    app.command(name=_module._CLI_NAME, help=_module._CLI_HELP)(
        getattr(_module, _module._CLI_FUNC)
    )

_LOG_LEVELS = {"debug", "info", "warning", "error", "critical"}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold blue]bundlelint[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Only log errors"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable debug logging"),
    log_level: str | None = typer.Option(
        None, "--log-level", help="Log level: debug|info|warning|error|critical"
    ),
    log_format: str = typer.Option(
        "structured", "--log-format", help="Log format: console|json|structured|rich"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """bundlelint - Lint and format policy bundle files.

    Global flags are parsed here and stored on `ctx.obj` for subcommands.
    Logging flags take precedence over the logging section of the
    configuration file.
    """
    if ctx.obj is None:
        ctx.obj = {}

    effective_level = log_level
    if quiet:
        effective_level = "error"
    elif verbose:
        effective_level = "debug"

    if effective_level is not None and effective_level.lower() not in _LOG_LEVELS:
        console.print(
            f"[red]Invalid log level '{effective_level}'.[/red] "
            f"Choose from: {', '.join(sorted(_LOG_LEVELS))}"
        )
        raise typer.Exit(1)

    ctx.obj.update({"quiet": quiet, "verbose": verbose, "log_level": effective_level})

    if effective_level is not None:
        configure_logging(level=effective_level.upper(), format=log_format)  # type: ignore[arg-type]


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
