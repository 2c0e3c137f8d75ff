"""Inspection command: inspect."""

from pathlib import Path
from typing import List, Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ccdstage.cli.plugin_system import cli_command
from ccdstage.core.errors import IngestionError

console = Console()


@cli_command(
    name="inspect",
    group="inspection",
    description="Show header values, HDUs and image shape of one FITS file",
)
def inspect_command(
    file: Path = typer.Argument(
        ...,
        help="FITS file to inspect"
    ),
    fields: Optional[List[str]] = typer.Option(
        None,
        "--field",
        "-f",
        help="Header keyword to show (repeatable); default: every numeric card"
    ),
):
    """
    Stage a single file and print what the loader would produce for it.

    Examples:

        ccdstage inspect data/ZnPc/ZnPc81041-00007.fits
        ccdstage inspect frame.fits -f "Sample Theta" -f "Beamline Energy"
    """
    from ccdstage.core.fits_io import list_hdus
    from ccdstage.core.record_builder import build
    from ccdstage.core.derived import q_value

    try:
        record = build(file, fields or ())
        hdus = list_hdus(file)
    except IngestionError as e:
        console.print(Panel.fit(
            f"[bold red]✗ Cannot stage file[/bold red]\n{e.kind}: {escape(e.message())}",
            border_style="red"
        ))
        raise typer.Exit(1)

    console.print()
    console.print(Panel.fit(f"[bold cyan]{escape(record.frame.file_name)}[/bold cyan]", border_style="cyan"))

    ident = Table(title="File", show_header=False, box=box.SIMPLE)
    ident.add_column("Field", style="cyan", width=16)
    ident.add_column("Value", style="white")
    ident.add_row("Path", escape(record.path))
    ident.add_row("Sample", escape(record.frame.sample_name or "-"))
    ident.add_row("Tag", escape(record.frame.tag or "-"))
    ident.add_row("Scan ID", "-" if record.frame.scan_id is None else str(record.frame.scan_id))
    ident.add_row("Frame", "-" if record.frame.frame_number is None else str(record.frame.frame_number))
    ident.add_row("Image", f"{record.image.rows} x {record.image.cols}")
    console.print(ident)

    hdu_table = Table(title="HDUs", box=box.ROUNDED, header_style="bold cyan")
    hdu_table.add_column("#", justify="right")
    hdu_table.add_column("Name", style="yellow")
    hdu_table.add_column("Shape")
    hdu_table.add_column("Dtype", style="dim")
    for index, name, shape, dtype in hdus:
        hdu_table.add_row(str(index), escape(name), "x".join(map(str, shape)) if shape else "-", dtype or "-")
    console.print(hdu_table)

    values = Table(title="Header values", box=box.ROUNDED, header_style="bold cyan")
    values.add_column("Column", style="yellow")
    values.add_column("Value", justify="right")
    for name, value in record.values.items():
        values.add_row(escape(name), f"{value:.6g}")
    console.print(values)

    theta = next((v for k, v in record.values.items() if k.upper().startswith("SAMPLE THETA")), None)
    energy = next((v for k, v in record.values.items() if k.upper().startswith("BEAMLINE ENERGY")), None)
    if theta is not None and energy and "Q [A^-1]" not in record.values:
        console.print(f"[dim]Q = {q_value(theta, energy):.6g} A^-1[/dim]")
    console.print()
