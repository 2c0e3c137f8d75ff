"""Configuration commands: config-show, config-init."""

from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from ccdstage.cli.config import CONFIG_FILENAME, CLIConfig
from ccdstage.cli.plugin_system import cli_command

console = Console()


@cli_command(
    name="config-show",
    group="configuration",
    description="Show the effective configuration and the files it came from",
)
def show_config_command():
    """
    Print the configuration every command runs with.

    The values already include environment variables, config files and the
    global --config / --verbose / --log-dir options.
    """
    from ccdstage.cli.main import get_config

    config = get_config()

    table = Table(title="Effective configuration", box=box.ROUNDED, header_style="bold cyan")
    table.add_column("Setting", style="bold", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_column("Note", style="dim")

    for field_name, field_info in CLIConfig.model_fields.items():
        value = getattr(config, field_name)
        note = ""
        if field_name == "data_dir":
            note = "" if value.is_dir() else "missing"
        elif field_name == "log_dir":
            note = "" if value.is_dir() else "created on first log"
        table.add_row(field_name, escape(str(getattr(value, "value", value))), note or field_info.description or "")
    console.print(table)

    console.print("\n[bold]Config files:[/bold]")
    for label, path in (("user", Path.home() / CONFIG_FILENAME), ("project", Path.cwd() / CONFIG_FILENAME)):
        mark = "[green]found[/green]" if path.exists() else "[dim]not found[/dim]"
        console.print(f"  {label:8} {escape(str(path))} ({mark})")
    console.print()


@cli_command(
    name="config-init",
    group="configuration",
    description="Write a config file with the default settings",
)
def init_config_command(
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help=f"Target file (default: ~/{CONFIG_FILENAME})"
    ),
    force: bool = typer.Option(
        False,
        "--force",
        help="Overwrite an existing file"
    ),
):
    """
    Write a JSON config file that can be edited by hand.

    Examples:
        ccdstage config-init
        ccdstage config-init -o ./.ccdstage_config.json --force
    """
    output = Path(output) if output is not None else Path.home() / CONFIG_FILENAME
    if output.exists() and not force:
        console.print(f"[yellow]Config file already exists: {escape(str(output))}[/yellow]")
        console.print("[dim]Use --force to overwrite[/dim]")
        raise typer.Exit(1)

    try:
        CLIConfig().save(output)
    except OSError as e:
        console.print(f"[red]Error saving config: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]✓ Config written[/bold green]\n{escape(str(output))}\n\n"
        "[dim]Edit data_dir, experiment_type or parallel_workers, then run config-show.[/dim]",
        border_style="green"
    ))
