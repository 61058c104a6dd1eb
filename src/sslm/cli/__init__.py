"""Command-line interface for sslm.

This module provides the main CLI entry point and assembles all commands.

Commands:
- merge analyze / merge run: Consolidate several libraries
- import analyze / import run: Copy a source into a library
- space: Check free space in a destination
- validate: Check a destination against a plan
"""

from __future__ import annotations

import click

from sslm.cli.common import setup_logging
from sslm.cli.importing import import_
from sslm.cli.merge import merge
from sslm.cli.space import space
from sslm.cli.validate import validate


@click.group()
@click.version_option(package_name="sslm")
def cli() -> None:
    """sslm - Import and merge astrophotography libraries."""


# Transfer commands
cli.add_command(merge)
cli.add_command(import_)

# Checks
cli.add_command(space)
cli.add_command(validate)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    "cli",
    "main",
    "setup_logging",
]
