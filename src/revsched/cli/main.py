"""
revsched CLI - Main entry point.

Normalizes extracted billing schedules, reconciles extraction runs
and matches items to integration codes from the terminal.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.traceback import install as install_rich_traceback

from revsched import __app_name__, __version__
from revsched.core.config.loader import ConfigError, load_app_config
from revsched.core.logging import setup_logging

# Load environment variables from .env (if present)
load_dotenv()

install_rich_traceback(show_locals=False, width=120)

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name=__app_name__,
    help="Billing schedule normalization and reconciliation",
    rich_markup_mode="rich",
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold cyan]{__app_name__}[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to app.yaml (default: configs/app.yaml)",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Override the configured log level",
    ),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """revsched - Billing schedule normalization engine."""
    try:
        app_config = load_app_config(config)
    except ConfigError as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)

    setup_logging(
        level=log_level or app_config.logging.level,
        log_file=app_config.logging.file,
        json_format=app_config.logging.json_format,
        rich_console=app_config.logging.rich_console,
    )
    ctx.obj = app_config


# =============================================================================
# Register command modules
# =============================================================================

from .commands import agreement, match, normalize  # noqa: E402

app.command("normalize")(normalize.normalize_command)
app.command("validate")(normalize.validate_command)
app.command("match")(match.match_command)
app.command("agreement")(agreement.agreement_command)


# =============================================================================
# Entry Point
# =============================================================================


def run() -> None:
    """Run the CLI application."""
    app()


if __name__ == "__main__":
    run()
