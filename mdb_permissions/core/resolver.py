"""
Grant resolution.

Finds the permissions that apply to a (user, action, model) triple, either
through role membership or through a direct user grant.

This module is part of MDB_PERMISSIONS.
"""

import logging
from typing import Any

from ..constants import ACTIONS, METHOD_ACTIONS
from ..exceptions import InvalidInputError
from ..observability import timed_operation
from .ownership import get_user_id
from .store import PermissionStore
from .types import ModelRecord, Permission

logger = logging.getLogger(__name__)


def get_method(method: str) -> str | None:
    """Given an HTTP method, return the CRUD action it maps to."""
    return METHOD_ACTIONS.get((method or "").upper())


class GrantResolver:
    """
    Resolves applicable permissions from a PermissionStore.

    Storage errors propagate unchanged.
    """

    def __init__(self, store: PermissionStore):
        self._store = store

    async def _resolve_model(self, model: str | ModelRecord) -> ModelRecord:
        if isinstance(model, ModelRecord):
            return model
        return await self._store.get_model(model)

    @timed_operation("resolver.resolve")
    async def resolve(self, user: Any, action: str, model: str | ModelRecord) -> list[Permission]:
        """
        Query permissions that grant an action on a model to a user, directly
        or through one of the user's roles.

        Args:
            user: User entity or mapping with an id
            action: CRUD action
            model: Model name or record

        Returns:
            Populated permissions (possibly empty)

        Raises:
            InvalidInputError: If the action is not a CRUD action
            NotFoundError: If the model name does not resolve
        """
        if action not in ACTIONS:
            raise InvalidInputError(f"Unknown action '{action}'", context={"action": action})

        model_record = await self._resolve_model(model)
        user_id = get_user_id(user)

        roles = await self._store.roles_for_user(user_id) if user_id is not None else []
        role_ids = [role.id for role in roles]

        grantees: list[dict[str, Any]] = [{"role": {"$in": role_ids}}]
        if user_id is not None:
            grantees.append({"user": user_id})

        query = {"model": model_record.id, "action": action, "$or": grantees}
        permissions = await self._store.find_permissions(query)

        logger.debug(
            f"Resolved {len(permissions)} permission(s) for user={user_id} "
            f"action={action} model={model_record.name} via {len(role_ids)} role(s)"
        )
        return permissions

    async def find_model_permissions(
        self, user: Any, method: str, model: str | ModelRecord
    ) -> list[Permission]:
        """
        Query permissions for the action an HTTP method maps to.

        Raises:
            InvalidInputError: If the method maps to no action
        """
        action = get_method(method)
        if action is None:
            raise InvalidInputError(f"Unsupported HTTP method '{method}'", context={"method": method})
        return await self.resolve(user, action, model)
