"""
Utility functions for CLI commands.

This module is part of MDB_PERMISSIONS.
"""

import json
from pathlib import Path
from typing import Any

import click


def load_policy_file(file_path: Path) -> dict[str, Any]:
    """
    Load a policy JSON file.

    Args:
        file_path: Path to the policy document

    Returns:
        Policy dictionary

    Raises:
        click.ClickException: If the file doesn't exist or is invalid JSON
    """
    if not file_path.exists():
        raise click.ClickException(f"Policy file not found: {file_path}")

    try:
        with open(file_path, encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise click.ClickException(f"Invalid JSON in policy file: {e}") from e


def format_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)
