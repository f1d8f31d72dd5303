"""
Explain command for CLI.

Prints the criteria every permission of a policy document composes to.

This module is part of MDB_PERMISSIONS.
"""

from pathlib import Path

import click

from ...constants import DEFAULT_ID_FIELD
from ...core.policy import explain_policy
from ...exceptions import InvalidInputError, PolicyValidationError
from ..utils import format_json, load_policy_file


@click.command()
@click.argument("policy_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--id-field",
    default=DEFAULT_ID_FIELD,
    show_default=True,
    help="Object field compared by object filters",
)
def explain(policy_file: Path, id_field: str) -> None:
    """
    Show the composed criteria of each grant in a policy document.

    POLICY_FILE: Path to the policy JSON file

    Examples:
        mdb-permissions explain policy.json
        mdb-permissions explain policy.json --id-field _id
    """
    policy = load_policy_file(policy_file)

    try:
        explained = explain_policy(policy, id_field=id_field)
    except (PolicyValidationError, InvalidInputError) as e:
        raise click.ClickException(str(e)) from e

    click.echo(format_json(explained))
