"""Staging command: load."""

import time
from pathlib import Path
from typing import List, Optional

import typer
from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from ccdstage.cli.plugin_system import cli_command
from ccdstage.core.errors import AllFilesFailedError, IngestionError
from ccdstage.core.record_builder import RAW_COLUMN, RAW_SHAPE_COLUMN

console = Console()


def failures_table(failures: List[IngestionError], limit: Optional[int] = None) -> Table:
    """Rich table of per-file failures (kind, file, error)."""
    table = Table(title="Failures", box=box.ROUNDED, show_header=True, header_style="bold red")
    table.add_column("Kind", style="yellow")
    table.add_column("File", style="cyan")
    table.add_column("Error", style="white")
    shown = failures if limit is None else failures[:limit]
    for err in shown:
        table.add_row(err.kind, escape(Path(err.path).name), escape(err.message()))
    if limit is not None and len(failures) > limit:
        table.add_row("…", f"{len(failures) - limit} more", "")
    return table


@cli_command(
    name="load",
    group="staging",
    description="Stage a directory of FITS frames into one table",
    priority=10,
)
def load_command(
    directory: Optional[Path] = typer.Argument(
        None,
        help="Directory containing .fits frames (default: from config)"
    ),
    pattern: Optional[str] = typer.Option(
        None,
        "--pattern",
        "-p",
        help="Shell glob matched against file names, e.g. 'ZnPc81041-*'"
    ),
    experiment_type: Optional[str] = typer.Option(
        None,
        "--type",
        "-t",
        help="Experiment type: xrr, xrs or other (default: from config)"
    ),
    fields: Optional[List[str]] = typer.Option(
        None,
        "--field",
        "-f",
        help="Header keyword to stage (repeatable); overrides --type"
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-w",
        help="Number of parallel workers (default: from config)"
    ),
    use_threads: bool = typer.Option(
        False,
        "--threads",
        help="Use a thread pool instead of worker processes"
    ),
    show_failures: bool = typer.Option(
        False,
        "--show-failures",
        help="List every file that could not be staged"
    ),
):
    """
    Stage every .fits frame of a directory into one DataFrame.

    Each file becomes one row with the selected header values, the flattened
    image, its shape and the identifiers parsed from the file name. Files
    that cannot be read are skipped and reported.

    Examples:

        # All frames of an XRR scan directory
        ccdstage load data/ZnPc

        # Only one scan, 8 workers
        ccdstage load data/ZnPc --pattern 'ZnPc81041-*' -w 8

        # Explicit header keywords
        ccdstage load data/ZnPc -f "Beamline Energy" -f "Ring Current"
    """
    from ccdstage.cli.main import get_config
    from ccdstage.core.loader import run_loader
    from ccdstage.models.parameters import LoaderParameters

    config = get_config()
    directory = directory if directory is not None else config.data_dir

    console.print()
    console.print(Panel.fit(
        "[bold cyan]FITS Loader[/bold cyan]\n"
        "FITS → Header + Image → DataFrame",
        border_style="cyan"
    ))
    console.print()

    try:
        params = LoaderParameters(
            data_dir=directory,
            pattern=pattern,
            experiment_type=experiment_type or config.experiment_type,
            fields=fields or None,
            workers=workers if workers is not None else config.parallel_workers,
            polars_threads=config.polars_threads,
            use_threads=use_threads,
        )
    except ValidationError as e:
        console.print(Panel.fit(
            f"[bold red]✗ Invalid parameters[/bold red]\n{escape(str(e))}",
            border_style="red"
        ))
        raise typer.Exit(1)

    config_table = Table(title="Configuration", show_header=False, box=box.SIMPLE)
    config_table.add_column("Parameter", style="cyan", width=20)
    config_table.add_column("Value", style="white")
    config_table.add_row("Directory", escape(str(params.data_dir)))
    config_table.add_row("Pattern", escape(params.pattern or "*.fits"))
    config_table.add_row("Experiment Type", params.experiment_type.value)
    if params.fields:
        config_table.add_row("Fields", escape(", ".join(params.fields)))
    config_table.add_row("Workers", f"{params.workers} ({'threads' if use_threads else 'processes'})")
    console.print(config_table)
    console.print()

    start_time = time.time()
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("[cyan]{task.fields[status]}"),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Staging files", total=None, status="")

            def update_progress(current, total, path, status_str):
                progress.update(task, completed=current, total=total,
                                status=escape(f"{Path(path).name} ({status_str})"))

            result = run_loader(params, progress_callback=update_progress)
    except AllFilesFailedError as e:
        console.print(Panel.fit(
            f"[bold red]✗ Staging Failed[/bold red]\n{escape(e.message())}",
            border_style="red"
        ))
        console.print(failures_table(e.failures, limit=None if show_failures else 10))
        raise typer.Exit(1)
    except IngestionError as e:
        console.print(Panel.fit(
            f"[bold red]✗ Staging Failed[/bold red]\n{e.kind}: {escape(e.message())}",
            border_style="red"
        ))
        raise typer.Exit(1)

    elapsed = time.time() - start_time
    table = result.table
    value_columns = [c for c in table.columns
                     if table.schema[c].is_numeric() and c not in ("scan_id", "frame_number")]

    summary = (
        f"[bold green]✓ Staging Complete[/bold green]\n\n"
        f"Time: {elapsed:.1f}s\n"
        f"Rows: {result.n_ok:,}\n"
        f"Columns: {table.width}\n"
        f"Failures: {result.n_failed:,}"
    )
    if value_columns:
        summary += "\n\n[cyan]Header columns:[/cyan]\n" + "\n".join(f"  • {escape(c)}" for c in value_columns)
    if RAW_SHAPE_COLUMN in table.columns and table.height:
        shapes = sorted({tuple(s) for s in table[RAW_SHAPE_COLUMN].to_list() if s is not None})
        summary += f"\n\n[dim]{RAW_COLUMN} shapes: {', '.join('x'.join(map(str, s)) for s in shapes[:5])}[/dim]"
    console.print(Panel.fit(summary, border_style="green"))
    console.print()

    if result.failures:
        if show_failures:
            console.print(failures_table(result.failures))
        else:
            console.print(f"[yellow]{result.n_failed} file(s) skipped.[/yellow] "
                          "[dim]Use --show-failures for details.[/dim]")
        console.print()
