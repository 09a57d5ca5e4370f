"""
Schedule normalization commands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.table import Table

from revsched.core.config.loader import (
    ConfigError,
    load_candidates_file,
    load_guidance,
    load_integration_mapping,
    validate_guidance_file,
)
from revsched.core.orchestrator.runner import PayloadError, PipelineResult, process_extraction

console = Console()
err_console = Console(stderr=True)

OUTPUT_FORMATS = ("table", "json", "garage")


def read_payload(path: Path) -> str:
    """Read a payload file or exit with status 1."""
    try:
        return load_candidates_file(path)
    except ConfigError as e:
        err_console.print(f"[red]Cannot read payload:[/red] {e}")
        raise typer.Exit(1)


def _format_price(value: Any) -> str:
    if value is None:
        return "[red]missing[/red]"
    return f"{value:,.2f}"


def print_schedules(result: PipelineResult) -> None:
    table = Table(title="Normalized Schedules", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Item", style="cyan", max_width=40)
    table.add_column("Billing Type")
    table.add_column("Price", justify="right")
    table.add_column("Frequency")
    table.add_column("Periods", justify="right")
    table.add_column("Start")
    if result.agreement is not None:
        table.add_column("Confidence", justify="right")
    table.add_column("Issues", justify="right")

    for i, s in enumerate(result.schedules):
        row = [
            str(i),
            s.item_name or "[dim]-[/dim]",
            s.billing_type.value,
            _format_price(s.total_price),
            f"{s.frequency_every} × {s.frequency_unit.value}" if not s.is_one_time else "one-time",
            str(s.periods),
            s.start_date or "[red]-[/red]",
        ]
        if result.agreement is not None:
            conf = s.agreement.confidence if s.agreement else 0.0
            style = "red" if s.agreement and s.agreement.flag_for_review else "green"
            row.append(f"[{style}]{conf:.2f}[/{style}]")
        row.append(str(len(s.issues)))
        table.add_row(*row)

    console.print(table)

    for i, s in enumerate(result.schedules):
        for issue in s.issues:
            console.print(f"[yellow]#{i}[/yellow] {issue}")

    if result.agreement is not None:
        summary = result.agreement
        console.print(
            f"\n[bold]Agreement:[/bold] avg {summary.avg_confidence or 0:.2f}, "
            f"min {summary.min_confidence or 0:.2f}, "
            f"{summary.flagged} flagged, {summary.unmatched_in_run2} unmatched in run 2"
        )

    if result.rerun.rerun:
        console.print("\n[yellow]Rerun advised:[/yellow]")
        for hint in result.rerun.hints:
            console.print(f"  - {hint}")


def normalize_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Extraction payload (JSON)"),
    second: Optional[Path] = typer.Option(
        None,
        "--second",
        "-s",
        help="Second independent extraction run for agreement scoring",
    ),
    guidance: Optional[Path] = typer.Option(
        None,
        "--guidance",
        "-g",
        help="Merchant guidance file (YAML/JSON)",
    ),
    mapping: Optional[Path] = typer.Option(
        None,
        "--mapping",
        "-m",
        help="Integration mapping file (YAML/JSON)",
    ),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json, garage)",
    ),
) -> None:
    """Normalize an extraction payload.

    Examples:
        revsched normalize contract.json
        revsched normalize run1.json --second run2.json --format json
        revsched normalize run1.json --mapping items.yaml --format garage
    """
    if format not in OUTPUT_FORMATS:
        err_console.print(f"[red]Unknown format:[/red] {format} (use {', '.join(OUTPUT_FORMATS)})")
        raise typer.Exit(1)

    run1 = read_payload(file)
    run2 = read_payload(second) if second else None

    try:
        merchant = load_guidance(guidance) if guidance else None
        pairs = load_integration_mapping(mapping) if mapping else []
    except ConfigError as e:
        err_console.print(f"[red]Invalid configuration:[/red] {e}")
        if e.details:
            err_console.print(f"[dim]{e.details}[/dim]")
        raise typer.Exit(1)

    try:
        result = process_extraction(
            run1,
            run2,
            guidance=merchant,
            pairs=pairs,
            config=ctx.obj,
            contract_id=file.stem,
        )
    except PayloadError as e:
        err_console.print(f"[red]Invalid payload:[/red] {e}")
        raise typer.Exit(1)

    if format == "json":
        console.print_json(data=result.to_dict())
    elif format == "garage":
        console.print_json(data=result.garage)
    else:
        print_schedules(result)


def validate_command(
    guidance_file: Path = typer.Argument(..., help="Merchant guidance file to validate"),
) -> None:
    """Validate a merchant guidance file."""
    errors = validate_guidance_file(guidance_file)
    if errors:
        err_console.print(f"[red]Guidance file has {len(errors)} error(s):[/red]")
        for error in errors:
            err_console.print(f"  - {error}")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] {guidance_file} is valid")

    merchant = load_guidance(guidance_file)
    hints = merchant.field_specific.non_empty()
    if hints:
        console.print(f"  Field hints: {', '.join(sorted(hints))}")
    if merchant.default_overrides:
        console.print(f"  Default overrides: {', '.join(sorted(merchant.default_overrides))}")
    if merchant.excluded_fields:
        console.print(f"  Excluded fields: {', '.join(merchant.excluded_fields)}")
