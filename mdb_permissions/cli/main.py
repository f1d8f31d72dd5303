"""
CLI entry point.

This module is part of MDB_PERMISSIONS.
"""

import click

from .. import __version__
from .commands import explain, validate


@click.group()
@click.version_option(__version__, prog_name="mdb-permissions")
def cli() -> None:
    """Inspect and validate permission policy documents."""


cli.add_command(validate)
cli.add_command(explain)


if __name__ == "__main__":
    cli()
