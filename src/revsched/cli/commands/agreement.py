"""
Two-run agreement command.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from revsched.core.normalize.canonical import ScheduleNormalizer
from revsched.core.orchestrator.runner import PayloadError, parse_extraction_payload
from revsched.core.reconcile.agreement import compute_agreement

from .normalize import read_payload

console = Console()
err_console = Console(stderr=True)


def agreement_command(
    ctx: typer.Context,
    run1: Path = typer.Argument(..., help="First extraction payload"),
    run2: Path = typer.Argument(..., help="Second extraction payload"),
    format: str = typer.Option(
        "table",
        "--format",
        "-f",
        help="Output format (table, json)",
    ),
) -> None:
    """Score agreement between two extraction runs.

    Examples:
        revsched agreement run1.json run2.json
    """
    try:
        first = parse_extraction_payload(read_payload(run1))
        second = parse_extraction_payload(read_payload(run2))
    except PayloadError as e:
        err_console.print(f"[red]Invalid payload:[/red] {e}")
        raise typer.Exit(1)

    config = ctx.obj
    normalizer = ScheduleNormalizer(config.normalize if config else None)
    left = [normalizer.normalize(c) for c in first.schedules]
    right = [normalizer.normalize(c) for c in second.schedules]
    report = compute_agreement(left, right, config.reconcile if config else None)

    if format == "json":
        console.print_json(data=report.to_dict())
        return

    table = Table(title="Run Agreement", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Item", style="cyan", max_width=40)
    table.add_column("Match", justify="right")
    table.add_column("Similarity", justify="right")
    table.add_column("Confidence", justify="right")
    table.add_column("Review")

    for i, (schedule, item) in enumerate(zip(left, report.items)):
        table.add_row(
            str(i),
            schedule.item_name or "-",
            "unmatched" if item.matched_index is None else str(item.matched_index),
            f"{item.similarity:.2f}",
            f"{item.confidence:.2f}",
            "[red]yes[/red]" if item.flag_for_review else "[green]no[/green]",
        )

    console.print(table)

    summary = report.summary
    if summary.avg_confidence is None:
        console.print("[dim]No schedules in run 1.[/dim]")
        return
    console.print(
        f"Average confidence {summary.avg_confidence:.2f}, minimum {summary.min_confidence:.2f}; "
        f"{summary.flagged} flagged, {summary.unmatched_in_run2} unmatched in run 2"
    )
