"""
CLI Plugin System - Auto-discovery and registration of commands.

Command modules live in the ``ccdstage.cli.commands`` package and register
themselves with the ``@cli_command`` decorator on import.
"""

from __future__ import annotations

import importlib
import logging
import pkgutil
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

import typer

logger = logging.getLogger(__name__)

COMMANDS_PACKAGE = "ccdstage.cli.commands"


@dataclass
class CommandMetadata:
    """Metadata for a CLI command plugin."""

    name: str
    """Command name (kebab-case, e.g., 'list-plugins')"""

    function: Callable
    """The actual command function"""

    group: str = "general"
    """Command group for organization (e.g., 'staging', 'inspection')"""

    description: str = ""
    """Short description for the command"""

    aliases: List[str] = field(default_factory=list)
    """Alternative names for the command"""

    priority: int = 0
    """Registration priority (higher = earlier)"""


# Global registry of discovered commands
_COMMAND_REGISTRY: Dict[str, CommandMetadata] = {}


def cli_command(
    name: str,
    group: str = "general",
    description: str = "",
    aliases: Optional[List[str]] = None,
    priority: int = 0,
):
    """
    Decorator to register a function as a CLI command plugin.

    Parameters
    ----------
    name : str
        Command name (kebab-case)
    group : str
        Command group for organization
    description : str
        Short description (overrides docstring first line)
    aliases : list[str], optional
        Alternative command names
    priority : int
        Registration priority (higher = registered earlier)

    Examples
    --------
    >>> @cli_command(name="keys", group="inspection")
    ... def keys_command(experiment_type: str = "xrr"):
    ...     '''Show the header keywords of an experiment type'''
    """
    def decorator(func: Callable) -> Callable:
        if not description and func.__doc__:
            desc = func.__doc__.strip().split('\n')[0]
        else:
            desc = description

        _COMMAND_REGISTRY[name] = CommandMetadata(
            name=name,
            function=func,
            group=group,
            description=desc,
            aliases=aliases or [],
            priority=priority,
        )
        # Return original function (decorator doesn't wrap)
        return func

    return decorator


def import_command_modules(package: str = COMMANDS_PACKAGE) -> List[str]:
    """
    Import every module of a commands package.

    A module that fails to import is logged and skipped so one broken
    plugin does not take the whole CLI down.

    Returns
    -------
    list[str]
        Names of the modules that were imported
    """
    pkg = importlib.import_module(package)
    loaded = []
    for info in pkgutil.iter_modules(pkg.__path__):
        module_name = f"{package}.{info.name}"
        try:
            importlib.import_module(module_name)
        except ImportError as e:
            logger.warning(f"Failed to load plugin {module_name}: {e}")
            continue
        loaded.append(module_name)
        logger.debug(f"Loaded plugin module: {module_name}")
    return loaded


def discover_commands(
    app: typer.Typer,
    package: str = COMMANDS_PACKAGE,
    disabled: Iterable[str] = (),
) -> int:
    """
    Auto-discover and register all command plugins.

    Parameters
    ----------
    app : typer.Typer
        The Typer application to register commands with
    package : str
        Dotted name of the package holding command modules
    disabled : iterable of str
        Command names to leave unregistered

    Returns
    -------
    int
        Number of commands registered

    Notes
    -----
    Commands are registered in priority order (highest first), then
    alphabetically by name.
    """
    import_command_modules(package)
    disabled = set(disabled)

    registered = 0
    for metadata in sorted(_COMMAND_REGISTRY.values(), key=lambda c: (-c.priority, c.name)):
        if metadata.name in disabled:
            logger.debug(f"Skipped (disabled): {metadata.name}")
            continue
        app.command(name=metadata.name, help=metadata.function.__doc__)(metadata.function)
        registered += 1
        for alias in metadata.aliases:
            app.command(name=alias, hidden=True)(metadata.function)
    return registered


def list_available_commands(group: Optional[str] = None) -> List[CommandMetadata]:
    """All registered command plugins, optionally filtered by group."""
    commands = list(_COMMAND_REGISTRY.values())
    if group:
        commands = [c for c in commands if c.group == group]
    return sorted(commands, key=lambda c: c.name)


def get_command_groups() -> List[str]:
    """Get list of all command groups."""
    return sorted(set(c.group for c in _COMMAND_REGISTRY.values()))


def clear_registry() -> None:
    """Clear the command registry (useful for testing)."""
    _COMMAND_REGISTRY.clear()
