"""
Logging utilities for MDB_PERMISSIONS.

Log records emitted while an authorization decision is being made carry the
user, model and action of that decision.
"""

import contextvars
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any

_decision_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "decision_context", default=None
)


def set_decision_context(
    user_id: str | None = None,
    model: str | None = None,
    action: str | None = None,
    **kwargs: Any,
) -> contextvars.Token:
    """
    Set decision context for logging.

    Args:
        user_id: Id of the user the decision is made for
        model: Model name
        action: CRUD action
        **kwargs: Additional context (object_count, etc.)

    Returns:
        Token restoring the previous context when passed to ``reset_decision_context``
    """
    return _decision_context.set({"user_id": user_id, "model": model, "action": action, **kwargs})


def reset_decision_context(token: contextvars.Token) -> None:
    _decision_context.reset(token)


def clear_decision_context() -> None:
    """Clear decision context."""
    _decision_context.set(None)


@contextmanager
def decision_context(**context: Any) -> Iterator[None]:
    """
    Attach decision context to log records for the duration of a block.

    The previous context is restored on exit, also when the block raises.

    Usage:
        with decision_context(user_id=user_id, model="article", action="read"):
            ...
    """
    token = set_decision_context(**context)
    try:
        yield
    finally:
        reset_decision_context(token)


def get_logging_context() -> dict[str, Any]:
    """Timestamp plus the non-empty fields of the current decision context."""
    context: dict[str, Any] = {"timestamp": datetime.now().isoformat()}
    current = _decision_context.get()
    if current:
        context.update({k: v for k, v in current.items() if v is not None})
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """
    Logger adapter that automatically adds the decision context to log records.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = get_logging_context()
        context.update(kwargs.get("extra") or {})
        kwargs["extra"] = context
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    """
    Get a contextual logger.

    Args:
        name: Logger name (typically __name__)
    """
    return ContextualLoggerAdapter(logging.getLogger(name), {})
