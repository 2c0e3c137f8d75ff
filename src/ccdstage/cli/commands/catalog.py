"""Inspection command: keys."""

from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ccdstage.cli.plugin_system import cli_command
from ccdstage.core.catalog import ExperimentType
from ccdstage.core.errors import InvalidExperimentTypeError

console = Console()


@cli_command(
    name="keys",
    group="inspection",
    description="Show the header keywords staged for each experiment type",
    aliases=["catalog"],
)
def keys_command(
    experiment_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Only show this experiment type (xrr, xrs, other)"
    ),
):
    """Show the header keywords staged for each experiment type."""
    if experiment_type is None:
        types = list(ExperimentType)
    else:
        try:
            types = [ExperimentType.from_str(experiment_type)]
        except InvalidExperimentTypeError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(e.message())}")
            raise typer.Exit(1)

    table = Table(title="Header catalog", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Type", style="magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Keyword", style="yellow")
    table.add_column("Unit")
    table.add_column("Column", style="white")

    for exp in types:
        keys = exp.keys()
        if not keys:
            table.add_row(exp.value, "-", "[dim]all numeric cards[/dim]", "", "")
            continue
        for i, field in enumerate(keys, 1):
            table.add_row(exp.value if i == 1 else "", str(i), escape(field.key),
                          escape(field.unit or "-"), escape(field.name))

    console.print(table)
