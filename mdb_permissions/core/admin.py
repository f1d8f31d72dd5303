"""
Permission administration.

Create roles, grant and revoke permissions, and manage role membership. Every
operation resolves names to ids first and only then writes, so input and
lookup errors leave the store untouched.

This module is part of MDB_PERMISSIONS.
"""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from ..exceptions import InvalidInputError, NotFoundError
from ..observability import timed_operation
from .schemas import GrantRequest, RevokeRequest, RolePermissionSpec, RoleRequest
from .store import PermissionStore
from .types import (
    CriteriaRecord,
    ObjectFilterRecord,
    PermissionRecord,
    Role,
    User,
    relation_fields,
    relation_from_fields,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


def parse_request(request_class: type[R], data: R | Mapping[str, Any]) -> R:
    """Validate a request, turning pydantic errors into InvalidInputError."""
    if isinstance(data, request_class):
        return data
    try:
        return request_class.model_validate(data)
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'request'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidInputError(
            f"Invalid {request_class.__name__}: {messages}",
            context={"errors": len(e.errors())},
        ) from e


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _permission_record(
    model_id: str, action: str, relation: str, role: str | None = None, user: str | None = None
) -> PermissionRecord:
    return PermissionRecord(
        model=model_id, action=action, **relation_fields(relation_from_fields(relation, role, user))
    )


class PermissionAdmin:
    """
    Administrative operations over a PermissionStore.

    Usage:
        admin = PermissionAdmin(store)
        await admin.create_role({"name": "editor", "users": ["alice"]})
        await admin.grant({"role": "editor", "model": "article", "action": "update"})
        await admin.revoke({"role": "editor", "model": "article", "action": "update"})
    """

    def __init__(self, store: PermissionStore):
        self._store = store

    @property
    def store(self) -> PermissionStore:
        return self._store

    async def _persist_permission(
        self, record: PermissionRecord, spec: RolePermissionSpec
    ) -> PermissionRecord:
        """Insert a permission record followed by its criteria and object filters."""
        await self._store.permissions.add(record)
        if spec.criteria:
            await self._store.criteria.add_many(
                [
                    CriteriaRecord(
                        permission=record.id, where=dict(c.where), blacklist=list(c.blacklist)
                    )
                    for c in spec.criteria
                ]
            )
        if spec.object_filters:
            await self._store.object_filters.add_many(
                [
                    ObjectFilterRecord(permission=record.id, object_id=f.object_id)
                    for f in spec.object_filters
                ]
            )
        return record

    @timed_operation("admin.create_role")
    async def create_role(self, request: RoleRequest | Mapping[str, Any]) -> Role:
        """
        Create a new role with optional permissions and members.

        Args:
            request: RoleRequest or equivalent mapping. ``permissions`` name
                their model; ``users`` lists usernames.

        Returns:
            The created role

        Raises:
            InvalidInputError: If the request is invalid or the role exists
            NotFoundError: If a permission's model does not resolve
        """
        request = parse_request(RoleRequest, request)

        if await self._store.roles.find_one({"name": request.name}) is not None:
            raise InvalidInputError(
                f"Role '{request.name}' already exists", context={"role": request.name}
            )

        models = await asyncio.gather(
            *(self._store.get_model(spec.model) for spec in request.permissions)
        )
        users = await self._store.find_users(request.users) if request.users else []

        role = Role(name=request.name, users=[user.id for user in users])
        await self._store.roles.add(role)

        for spec, model in zip(request.permissions, models):
            record = _permission_record(model.id, spec.action, spec.relation, role=role.id)
            await self._persist_permission(record, spec)

        logger.info(
            f"Created role '{role.name}' with {len(request.permissions)} permission(s) "
            f"and {len(role.users)} user(s)"
        )
        return role

    async def resolve_grant(self, request: GrantRequest) -> PermissionRecord:
        """Look up the role or user and the model of a grant, without writing."""
        role, user, model = await asyncio.gather(
            self._store.get_role(request.role) if request.role else asyncio.sleep(0),
            self._store.get_user(request.user) if request.user else asyncio.sleep(0),
            self._store.get_model(request.model),
        )
        if isinstance(role, Role) and role.id:
            return _permission_record(model.id, request.action, request.relation, role=role.id)
        if isinstance(user, User) and user.id:
            return _permission_record(model.id, request.action, request.relation, user=user.id)
        raise InvalidInputError("no role or user specified", context={"model": request.model})

    @timed_operation("admin.grant")
    async def grant(
        self, grants: GrantRequest | Mapping[str, Any] | list[GrantRequest | Mapping[str, Any]]
    ) -> list[PermissionRecord]:
        """
        Grant one or more permissions.

        All grants are validated and resolved before any of them is written.

        Args:
            grants: A GrantRequest/mapping or a list of them

        Returns:
            The created permission records

        Raises:
            InvalidInputError: If a grant names neither (or both) a role and a user
            NotFoundError: If a role, user or model does not resolve
        """
        requests = [parse_request(GrantRequest, g) for g in _as_list(grants)]
        records = await asyncio.gather(*(self.resolve_grant(r) for r in requests))

        for record, request in zip(records, requests):
            await self._persist_permission(record, request)
            logger.info(
                f"Granted {request.action} on '{request.model}' to "
                f"{'role ' + request.role if request.role else 'user ' + str(request.user)} "
                f"(relation={request.relation})"
            )
        return list(records)

    @timed_operation("admin.revoke")
    async def revoke(self, request: RevokeRequest | Mapping[str, Any]) -> int:
        """
        Revoke permissions from a role or a user.

        Criteria and object filters of the removed permissions are removed too.

        Returns:
            Number of permissions removed

        Raises:
            InvalidInputError: If neither a role nor a user is given
            NotFoundError: If the role, user or model does not resolve
        """
        request = parse_request(RevokeRequest, request)

        grantee, model = await asyncio.gather(
            self._store.get_role(request.role) if request.role else self._store.get_user(request.user),
            self._store.get_model(request.model),
        )

        query: dict[str, Any] = {
            "model": model.id,
            "action": request.action,
            "relation": request.relation,
        }
        if request.role:
            query["role"] = grantee.id
        else:
            query["user"] = grantee.id

        doomed = await self._store.permissions.find(query)
        if not doomed:
            return 0

        ids = [record.id for record in doomed]
        deleted = await self._store.permissions.delete_ids(ids)
        await asyncio.gather(
            self._store.criteria.delete_many({"permission": {"$in": ids}}),
            self._store.object_filters.delete_many({"permission": {"$in": ids}}),
        )

        logger.info(
            f"Revoked {deleted} permission(s): {request.action} on '{request.model}' from "
            f"{'role ' + request.role if request.role else 'user ' + str(request.user)}"
        )
        return deleted

    def _check_usernames(self, usernames: str | list[str] | None) -> list[str]:
        if not usernames:
            raise InvalidInputError("One or more usernames must be provided")
        return _as_list(usernames)

    async def _reload_role(self, role: Role, updated: bool) -> Role:
        current = await self._store.roles.get(role.id) if updated else None
        if current is None:
            raise NotFoundError(f"Role '{role.name}' not found", entity="role", name=role.name)
        return current

    @timed_operation("admin.add_users_to_role")
    async def add_users_to_role(self, usernames: str | list[str], role_name: str) -> Role:
        """
        Add one or more users to a role.

        Membership is updated in place on the stored role, so concurrent
        membership changes are not lost.

        Raises:
            InvalidInputError: If no usernames are given
            NotFoundError: If the role does not resolve
        """
        usernames = self._check_usernames(usernames)
        role = await self._store.get_role(role_name)
        users = await self._store.find_users(usernames)

        updated = await self._store.roles.add_to_set(role.id, "users", [user.id for user in users])
        role = await self._reload_role(role, updated)
        logger.info(f"Added {len(users)} user(s) to role '{role_name}'")
        return role

    @timed_operation("admin.remove_users_from_role")
    async def remove_users_from_role(self, usernames: str | list[str], role_name: str) -> Role:
        """
        Remove one or more users from a role.

        Raises:
            InvalidInputError: If no usernames are given
            NotFoundError: If the role does not resolve
        """
        usernames = self._check_usernames(usernames)
        role = await self._store.get_role(role_name)
        users = await self._store.find_users(usernames)

        updated = await self._store.roles.pull_all(role.id, "users", [user.id for user in users])
        role = await self._reload_role(role, updated)
        logger.info(f"Removed {len(users)} user(s) from role '{role_name}'")
        return role
