#!/usr/bin/env python3
"""
Main CLI application entry point with plugin system.

Commands are auto-discovered from ``ccdstage.cli.commands`` using the
@cli_command decorator. No manual registration required.
"""

import typer
from pathlib import Path
from typing import Optional

from ccdstage.cli.plugin_system import discover_commands
from ccdstage.cli.config import CLIConfig, load_config_with_precedence
from ccdstage.logging_config import setup_logging


# Global configuration singleton
_config: Optional[CLIConfig] = None


def get_config() -> CLIConfig:
    """
    Get or create global config instance.

    Returns the cached config if available, otherwise loads it with
    ``load_config_with_precedence``.
    """
    global _config
    if _config is None:
        _config = load_config_with_precedence()
    return _config


def set_config(config: Optional[CLIConfig]) -> None:
    """
    Set global config instance.

    Useful for testing and command-line overrides. ``None`` resets it.
    """
    global _config
    _config = config


app = typer.Typer(
    name="ccdstage",
    help="Stage CCD FITS frames (XRR / XRS) into a single polars DataFrame",
    add_completion=False
)


@app.callback()
def global_options(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Echo log messages to the terminal"
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Use specific config file"
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Override directory for log files"
    ),
):
    """
    Global options applied to all commands.

    These options override configuration from files and environment variables.
    """
    try:
        config = load_config_with_precedence(config_file=config_file)
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    overrides = {}
    if verbose:
        overrides["verbose"] = verbose
    if log_dir is not None:
        overrides["log_dir"] = log_dir
    if overrides:
        config = config.merge_with(**overrides)

    set_config(config)
    setup_logging(config.log_dir, verbose=config.verbose)


discover_commands(app)


def main():
    """Main entry point for the CLI application."""
    app()


if __name__ == "__main__":
    main()
