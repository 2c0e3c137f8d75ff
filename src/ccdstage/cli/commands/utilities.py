"""Utility commands: list-plugins."""

from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ccdstage.cli.plugin_system import CommandMetadata, cli_command, get_command_groups, list_available_commands

console = Console()


def _group_table(group: str, commands: list, show_aliases: bool) -> Table:
    table = Table(title=group, title_style="bold magenta", box=box.SIMPLE_HEAD, header_style="bold cyan")
    table.add_column("Command", style="yellow", no_wrap=True)
    table.add_column("Priority", justify="right", style="dim")
    table.add_column("Description", style="white")
    if show_aliases:
        table.add_column("Aliases", style="dim")

    cmd: CommandMetadata
    for cmd in sorted(commands, key=lambda c: (-c.priority, c.name)):
        row = [cmd.name, str(cmd.priority), escape(cmd.description or "-")]
        if show_aliases:
            row.append(", ".join(cmd.aliases) or "-")
        table.add_row(*row)
    return table


@cli_command(
    name="list-plugins",
    group="utilities",
    description="List registered commands by group",
    aliases=["plugins"]
)
def list_plugins_command(
    group: Optional[str] = typer.Option(
        None,
        "--group",
        "-g",
        help="Only show one group (staging, inspection, configuration, utilities)"
    ),
    show_aliases: bool = typer.Option(
        False,
        "--show-aliases",
        "-a",
        help="Add an aliases column"
    ),
):
    """
    Show every registered command, one table per group.

    Examples:
        ccdstage list-plugins
        ccdstage plugins -g inspection -a
    """
    groups = get_command_groups()
    if group is not None and group not in groups:
        console.print(f"[yellow]Unknown group '{escape(group)}'.[/yellow] "
                      f"[dim]Groups: {', '.join(groups) or 'none'}[/dim]")
        raise typer.Exit(1)

    total = 0
    console.print()
    for name in ([group] if group else groups):
        commands = list_available_commands(name)
        total += len(commands)
        console.print(_group_table(name, commands, show_aliases))

    console.print(f"[cyan]{total} command(s)[/cyan] in {1 if group else len(groups)} group(s)")
    console.print()
