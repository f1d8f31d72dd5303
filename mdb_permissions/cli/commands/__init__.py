"""CLI commands."""

from .explain import explain
from .validate import validate

__all__ = ["explain", "validate"]
