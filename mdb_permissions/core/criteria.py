"""
Criteria composition.

Turns one permission's grant data (attribute criteria and explicit object
filters) into the list of ``CriteriaItem`` the authorizer evaluates. Items
in the returned list are alternatives: an object passes the permission if it
satisfies any one of them.

This module is part of MDB_PERMISSIONS.
"""

from typing import Any

from ..constants import DEFAULT_ID_FIELD
from .types import CriteriaItem, Permission


def _any_of(wheres: list[dict[str, Any]]) -> dict[str, Any]:
    """A single where-clause as is, several under ``$or``."""
    if len(wheres) > 1:
        return {"$or": wheres}
    return wheres[0]


def compose_criteria(permission: Permission, id_field: str = DEFAULT_ID_FIELD) -> list[CriteriaItem]:
    """
    Generate the final criteria for a permission.

    Combination rules:
      - attribute criteria only: one item per criteria entry, each carrying
        its blacklist, flagged ``owner`` for owner grants;
      - object filters only: one ``{id_field: object_id}`` item per filter;
      - both: a single item matching ``$and`` of (any attribute criteria) and
        (any object filter). Blacklists and the owner flag are not carried
        onto this combined item;
      - neither: a single always-matching item.

    Args:
        permission: Populated permission
        id_field: Object field that object filters compare against

    Returns:
        Non-empty list of criteria items
    """
    perm_criteria = [
        CriteriaItem(
            where=dict(entry.where or {}),
            blacklist=frozenset(entry.blacklist),
            owner=permission.is_owner,
        )
        for entry in permission.criteria
    ]

    object_criteria = [
        CriteriaItem(where={id_field: object_filter.object_id})
        for object_filter in permission.object_filters
    ]

    if perm_criteria and object_criteria:
        # Both must hold: a content match and an explicit id match.
        return [
            CriteriaItem(
                where={
                    "$and": [
                        _any_of([c.where for c in perm_criteria]),
                        _any_of([c.where for c in object_criteria]),
                    ]
                }
            )
        ]
    if perm_criteria:
        return perm_criteria
    if object_criteria:
        return object_criteria

    # A permission without criteria passes for every object (admin-like grants).
    return [CriteriaItem(where={})]
