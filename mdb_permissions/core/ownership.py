"""
Ownership predicates.

This module is part of MDB_PERMISSIONS.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from ..constants import DEFAULT_OWNER_FIELD


def get_user_id(user: Any) -> Any:
    """
    Return the id of a user given as an entity or as a mapping.

    Mappings may carry the id under ``id`` or ``_id``; an ObjectId ``_id`` is
    returned as its string form, matching how stored ids are referenced.
    """
    if user is None:
        return None
    if isinstance(user, Mapping):
        if user.get("id") is not None:
            return user["id"]
        raw_id = user.get("_id")
        return str(raw_id) if raw_id is not None else None
    return getattr(user, "id", None)


def is_foreign_object(user: Any, obj: Mapping[str, Any], owner_field: str = DEFAULT_OWNER_FIELD) -> bool:
    """Return whether the object is NOT owned by the user."""
    return obj.get(owner_field) != get_user_id(user)


def has_foreign_objects(
    objects: Mapping[str, Any] | Iterable[Mapping[str, Any]],
    user: Any,
    owner_field: str = DEFAULT_OWNER_FIELD,
) -> bool:
    """
    Given an object, or a list of objects, return True if any of them is not
    owned by the user.
    """
    if isinstance(objects, Mapping):
        return is_foreign_object(user, objects, owner_field)
    return any(is_foreign_object(user, obj, owner_field) for obj in objects)
