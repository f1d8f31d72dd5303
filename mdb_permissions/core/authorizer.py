"""
Batch authorization.

Decides whether every object in a batch satisfies at least one criteria item
composed from the applicable permissions. Pure: no I/O, no shared state.

This module is part of MDB_PERMISSIONS.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..constants import DEFAULT_ID_FIELD, DEFAULT_OWNER_FIELD
from .criteria import compose_criteria
from .matcher import FilterMatcher, get_default_matcher
from .ownership import is_foreign_object
from .types import CriteriaItem, Permission

logger = logging.getLogger(__name__)


def requested_attribute_names(attributes: Mapping[str, Any] | Iterable[str] | None) -> frozenset[str]:
    """
    Normalize requested attributes to a set of names.

    A request body (mapping) contributes its keys; any other iterable is taken
    as attribute names.
    """
    if not attributes:
        return frozenset()
    if isinstance(attributes, Mapping):
        return frozenset(attributes.keys())
    if isinstance(attributes, str):
        return frozenset([attributes])
    return frozenset(attributes)


def has_unpermitted_attributes(
    attributes: Mapping[str, Any] | Iterable[str] | None,
    blacklist: Iterable[str] | None,
) -> bool:
    """Return True if any requested attribute is on the blacklist."""
    names = requested_attribute_names(attributes)
    if not names or not blacklist:
        return False
    return not names.isdisjoint(blacklist)


def collect_criteria(
    permissions: Iterable[Permission | None], id_field: str = DEFAULT_ID_FIELD
) -> list[CriteriaItem]:
    """Compose and concatenate the criteria of every permission, skipping None."""
    criteria: list[CriteriaItem] = []
    for permission in permissions:
        if permission is None:
            continue
        criteria.extend(compose_criteria(permission, id_field=id_field))
    return criteria


def criteria_passes(
    item: CriteriaItem,
    obj: Mapping[str, Any],
    attribute_names: frozenset[str],
    user: Any,
    matcher: FilterMatcher,
    owner_field: str = DEFAULT_OWNER_FIELD,
) -> bool:
    """Check a single object against a single criteria item."""
    if len(matcher.match([obj], item.where)) != 1:
        return False
    if has_unpermitted_attributes(attribute_names, item.blacklist):
        return False
    # Owner-based items only pass for the user's own objects; role-based
    # items in the same list are unaffected.
    if item.owner and is_foreign_object(user, obj, owner_field):
        return False
    return True


def has_passing_criteria(
    objects: Mapping[str, Any] | Sequence[Mapping[str, Any]] | None,
    permissions: Sequence[Permission | None] | None,
    attributes: Mapping[str, Any] | Iterable[str] | None = None,
    user: Any = None,
    matcher: FilterMatcher | None = None,
    id_field: str = DEFAULT_ID_FIELD,
    owner_field: str = DEFAULT_OWNER_FIELD,
) -> bool:
    """
    Given a list of objects, determine if they all satisfy at least one
    permission's where-clause/attribute blacklist/ownership combination.

    Args:
        objects: The query result, or for a create the body of the object to
            be created. A single mapping is treated as a batch of one.
        permissions: Permissions relevant to this request
        attributes: Request body (its keys) or attribute names being written
        user: Requesting user, needed when owner grants are involved
        matcher: Where-clause evaluator (defaults to MongoFilterMatcher)
        id_field: Object field compared by object filters
        owner_field: Object field compared by owner grants

    Returns:
        True if every object has at least one passing criteria item, or if
        there is nothing to check; otherwise False.
    """
    if not permissions or not objects:
        return True

    if isinstance(objects, Mapping):
        objects = [objects]

    criteria = collect_criteria(permissions, id_field=id_field)
    if not criteria:
        return True

    matcher = matcher or get_default_matcher()
    attribute_names = requested_attribute_names(attributes)

    for index, obj in enumerate(objects):
        if not any(
            criteria_passes(item, obj, attribute_names, user, matcher, owner_field)
            for item in criteria
        ):
            logger.debug(
                f"Object #{index} (id={obj.get(id_field)!r}) satisfies none of "
                f"{len(criteria)} criteria item(s)"
            )
            return False
    return True
