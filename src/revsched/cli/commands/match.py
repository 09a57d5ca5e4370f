"""
Integration code matching command.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from revsched.core.config.loader import ConfigError, load_integration_mapping
from revsched.core.integration.matching import match_integration_item

console = Console()
err_console = Console(stderr=True)

CONFIDENCE_STYLES = {"high": "green", "medium": "yellow", "low": "red", "none": "dim"}


def match_command(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Item name to match"),
    mapping: Path = typer.Option(
        ...,
        "--mapping",
        "-m",
        help="Integration mapping file (YAML/JSON)",
    ),
    format: str = typer.Option(
        "text",
        "--format",
        "-f",
        help="Output format (text, json)",
    ),
) -> None:
    """Match an item name against an integration mapping.

    Examples:
        revsched match "Platform Support Plan" --mapping items.yaml
    """
    try:
        pairs = load_integration_mapping(mapping)
    except ConfigError as e:
        err_console.print(f"[red]Invalid mapping:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)

    matching = ctx.obj.matching if ctx.obj is not None else None
    result = match_integration_item(name, pairs, matching)

    if format == "json":
        console.print_json(data=result.to_dict())
        return

    style = CONFIDENCE_STYLES[result.confidence.value]
    if result.integration_item is None:
        console.print(f"[{style}]No match[/{style}] for {name!r} (score {result.score:g})")
        return

    console.print(f"[bold]{result.integration_item}[/bold] ← {result.matched_name}")
    console.print(f"Confidence: [{style}]{result.confidence.value}[/{style}] (score {result.score:g})")
