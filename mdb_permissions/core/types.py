"""
Type definitions for MDB_PERMISSIONS.

Two families of types live here:

- Stored records (``ModelRecord``, ``Role``, ``User``, ``PermissionRecord``,
  ``CriteriaRecord``, ``ObjectFilterRecord``), persisted through repositories.
- Decision-time types (``Permission``, relation variants, ``CriteriaEntry``,
  ``ObjectFilter``, ``CriteriaItem``, ``DecisionContext``), consumed by the
  criteria composer and the authorizer.

This module is part of MDB_PERMISSIONS.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Union

from ..constants import RELATION_OWNER, RELATION_ROLE, RELATION_USER, RELATIONS
from ..exceptions import InvalidInputError
from ..repositories.base import Entity

# ============================================================================
# Stored records
# ============================================================================


@dataclass
class ModelRecord(Entity):
    """A resource type that permissions can be granted on."""

    name: str = ""
    ownership_policy: bool = False


@dataclass
class Role(Entity):
    """A named group of users."""

    name: str = ""
    users: list[str] = field(default_factory=list)


@dataclass
class User(Entity):
    """A user that can be granted permissions and own objects."""

    username: str = ""
    email: str | None = None


@dataclass
class PermissionRecord(Entity):
    """
    Persisted form of a grant.

    ``relation`` is one of "role", "user" or "owner"; exactly one of ``role``
    and ``user`` holds the grantee id.
    """

    model: str = ""
    action: str = ""
    relation: str = RELATION_ROLE
    role: str | None = None
    user: str | None = None


@dataclass
class CriteriaRecord(Entity):
    """An attribute restriction attached to a permission."""

    permission: str = ""
    where: dict[str, Any] = field(default_factory=dict)
    blacklist: list[str] = field(default_factory=list)


@dataclass
class ObjectFilterRecord(Entity):
    """An explicit object allow-list entry attached to a permission."""

    permission: str = ""
    object_id: Any = None


# ============================================================================
# Relation variants
# ============================================================================


@dataclass(frozen=True)
class RoleRelation:
    """Grant applies to every member of a role."""

    role_id: str


@dataclass(frozen=True)
class UserRelation:
    """Grant applies to a single user."""

    user_id: str


@dataclass(frozen=True)
class OwnerRelation:
    """Grant applies to its grantee, and only for objects the requester owns."""

    grantee: Union[RoleRelation, UserRelation]


Relation = Union[RoleRelation, UserRelation, OwnerRelation]


def relation_name(relation: Relation) -> str:
    """Return the stored relation name for a relation variant."""
    if isinstance(relation, OwnerRelation):
        return RELATION_OWNER
    if isinstance(relation, UserRelation):
        return RELATION_USER
    if isinstance(relation, RoleRelation):
        return RELATION_ROLE
    raise TypeError(f"Unknown relation type: {type(relation).__name__}")


def relation_fields(relation: Relation) -> dict[str, Any]:
    """
    Flatten a relation variant into the ``relation``/``role``/``user`` fields
    of a permission record.
    """
    grantee = relation.grantee if isinstance(relation, OwnerRelation) else relation
    return {
        "relation": relation_name(relation),
        "role": grantee.role_id if isinstance(grantee, RoleRelation) else None,
        "user": grantee.user_id if isinstance(grantee, UserRelation) else None,
    }


def relation_from_fields(relation: str, role: str | None, user: str | None) -> Relation:
    """
    Build a relation variant from stored fields.

    Raises:
        InvalidInputError: If the relation name is unknown, or the fields do
            not name exactly one grantee
    """
    if relation not in RELATIONS:
        raise InvalidInputError(
            f"Unknown relation '{relation}', expected one of {', '.join(RELATIONS)}",
            context={"relation": relation},
        )
    if bool(role) == bool(user):
        raise InvalidInputError(
            "Exactly one of role or user must be set on a permission",
            context={"relation": relation, "role": role, "user": user},
        )

    grantee: Union[RoleRelation, UserRelation]
    grantee = RoleRelation(role) if role else UserRelation(user)

    if relation == RELATION_OWNER:
        return OwnerRelation(grantee)
    if relation == RELATION_USER and not isinstance(grantee, UserRelation):
        raise InvalidInputError(
            "A 'user' relation requires a user grantee", context={"role": role}
        )
    if relation == RELATION_ROLE and not isinstance(grantee, RoleRelation):
        raise InvalidInputError(
            "A 'role' relation requires a role grantee", context={"user": user}
        )
    return grantee


# ============================================================================
# Decision-time types
# ============================================================================


@dataclass(frozen=True)
class CriteriaEntry:
    """A where-clause plus the attributes the grant forbids touching."""

    where: dict[str, Any] = field(default_factory=dict)
    blacklist: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "blacklist", frozenset(self.blacklist or ()))


@dataclass(frozen=True)
class ObjectFilter:
    """Explicit allow-list entry naming one object id."""

    object_id: Any


@dataclass
class Permission:
    """
    A populated grant as consumed by the engine.

    A permission without criteria and without object filters authorizes its
    action unconditionally for every object.
    """

    model: str
    action: str
    relation: Relation
    criteria: list[CriteriaEntry] = field(default_factory=list)
    object_filters: list[ObjectFilter] = field(default_factory=list)
    id: str | None = None

    @property
    def is_owner(self) -> bool:
        """Whether the grant only covers objects owned by the requester."""
        return isinstance(self.relation, OwnerRelation)

    @property
    def is_unconditional(self) -> bool:
        return not self.criteria and not self.object_filters

    @classmethod
    def from_record(
        cls,
        record: PermissionRecord,
        criteria: Iterable[CriteriaRecord] = (),
        object_filters: Iterable[ObjectFilterRecord] = (),
    ) -> "Permission":
        """Build a permission from its stored record and populated relations."""
        return cls(
            id=record.id,
            model=record.model,
            action=record.action,
            relation=relation_from_fields(record.relation, record.role, record.user),
            criteria=[CriteriaEntry(c.where or {}, frozenset(c.blacklist or ())) for c in criteria],
            object_filters=[ObjectFilter(f.object_id) for f in object_filters],
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Permission":
        """
        Build a permission from a plain mapping, as found in policy documents.

        Accepts ``objectFilters`` or ``object_filters`` entries shaped as
        ``{"object_id": ...}`` / ``{"objectId": ...}``.
        """
        filters = data.get("object_filters", data.get("objectFilters")) or []
        return cls(
            id=data.get("id"),
            model=data.get("model", ""),
            action=data.get("action", ""),
            relation=relation_from_fields(
                data.get("relation", RELATION_ROLE), data.get("role"), data.get("user")
            ),
            criteria=[
                CriteriaEntry(c.get("where") or {}, frozenset(c.get("blacklist") or ()))
                for c in data.get("criteria") or []
            ],
            object_filters=[
                ObjectFilter(f.get("object_id", f.get("objectId"))) for f in filters
            ],
        )


@dataclass(frozen=True)
class CriteriaItem:
    """
    Normalized restriction evaluated against one object.

    ``owner`` requires the object's owner to be the requesting user, in
    addition to matching ``where``.
    """

    where: dict[str, Any] = field(default_factory=dict)
    blacklist: frozenset[str] = frozenset()
    owner: bool = False


@dataclass
class DecisionContext:
    """Everything one authorization call looks at."""

    user: Any
    action: str
    model: str
    objects: list[Mapping[str, Any]] = field(default_factory=list)
    requested_attributes: frozenset[str] = frozenset()
    permissions: list[Permission] = field(default_factory=list)
