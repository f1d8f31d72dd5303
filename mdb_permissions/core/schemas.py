"""
Request schemas for the administrative interface.

Requests name roles, users and models; the administration layer resolves the
names to ids before writing anything.

This module is part of MDB_PERMISSIONS.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

ActionName = Literal["create", "read", "update", "delete"]
RelationName = Literal["role", "user", "owner"]


class CriteriaSpec(BaseModel):
    """Attribute criteria: a MongoDB where-clause plus an attribute blacklist."""

    model_config = ConfigDict(extra="forbid")

    where: dict[str, Any] = Field(default_factory=dict, description="MongoDB query document")
    blacklist: list[str] = Field(default_factory=list, description="Attributes the grant forbids")


class ObjectFilterSpec(BaseModel):
    """Explicit allow-list entry for one object id."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    object_id: Any = Field(..., alias="objectId", description="Id of the allowed object")


class RolePermissionSpec(BaseModel):
    """A permission created together with its role."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    model: str = Field(..., min_length=1, description="Model name")
    action: ActionName = Field(..., description="CRUD action")
    relation: Literal["role", "owner"] = Field("role", description="Relation kind")
    criteria: list[CriteriaSpec] = Field(default_factory=list)
    object_filters: list[ObjectFilterSpec] = Field(default_factory=list, alias="objectFilters")


class GrantRequest(RolePermissionSpec):
    """
    Grant a permission to a role or to a user.

    Exactly one of ``role`` and ``user`` must be given. ``relation`` defaults
    to "user" when a user is named and to "role" otherwise.
    """

    relation: RelationName | None = Field(None, description="Relation kind")
    role: str | None = Field(None, description="Role name")
    user: str | None = Field(None, description="Username")

    @model_validator(mode="after")
    def check_grantee(self) -> "GrantRequest":
        if not self.role and not self.user:
            raise ValueError("no role or user specified")
        if self.role and self.user:
            raise ValueError("specify either a role or a user, not both")
        if self.relation is None:
            self.relation = "user" if self.user else "role"
        if self.relation == "user" and not self.user:
            raise ValueError("a 'user' relation requires a user")
        if self.relation == "role" and not self.role:
            raise ValueError("a 'role' relation requires a role")
        return self


class RevokeRequest(BaseModel):
    """
    Revoke the permissions of a role or a user on (model, action, relation).

    ``relation`` defaults the same way as on GrantRequest.
    """

    model_config = ConfigDict(extra="forbid")

    model: str = Field(..., min_length=1)
    action: ActionName
    relation: RelationName | None = None
    role: str | None = None
    user: str | None = None

    @model_validator(mode="after")
    def check_grantee(self) -> "RevokeRequest":
        if not self.role and not self.user:
            raise ValueError("You must provide either a user or role to revoke the permission from")
        if self.role and self.user:
            raise ValueError("specify either a role or a user, not both")
        if self.relation is None:
            self.relation = "user" if self.user else "role"
        return self


class RoleRequest(BaseModel):
    """Create a role, optionally with permissions and members."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    permissions: list[RolePermissionSpec] = Field(default_factory=list)
    users: list[str] = Field(default_factory=list, description="Usernames of members")
