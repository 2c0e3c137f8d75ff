"""CLI command plugins. Every module here is imported by discover_commands."""
