"""
Validate command for CLI.

Validates a policy document against the schema.

This module is part of MDB_PERMISSIONS.
"""

import sys
from pathlib import Path

import click

from ...core.policy import validate_policy
from ...exceptions import PolicyValidationError
from ..utils import load_policy_file


@click.command()
@click.argument("policy_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show detailed validation errors",
)
def validate(policy_file: Path, verbose: bool) -> None:
    """
    Validate a policy document against the schema.

    POLICY_FILE: Path to the policy JSON file to validate

    Examples:
        mdb-permissions validate policy.json
        mdb-permissions validate path/to/policy.json --verbose
    """
    policy = load_policy_file(policy_file)

    try:
        validate_policy(policy)
    except PolicyValidationError as e:
        click.echo(click.style(f"❌ Policy '{policy_file}' is invalid!", fg="red"))
        click.echo(click.style(f"Error: {e.message}", fg="red"))
        if e.error_paths and verbose:
            click.echo("\nError paths:")
            for path in e.error_paths:
                click.echo(f"  - {path}")
        sys.exit(1)

    click.echo(click.style(f"✅ Policy '{policy_file}' is valid!", fg="green"))
    sys.exit(0)
