"""
Direct-grant checking.

A narrower decision path that only consults permissions granted directly to
the user (``relation == "user"``). Role-derived grants are not considered.

This module is part of MDB_PERMISSIONS.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..config import PermissionsConfig
from ..constants import RELATION_USER
from ..observability import decision_context, get_logger, timed_operation
from .authorizer import has_passing_criteria
from .matcher import FilterMatcher, get_default_matcher
from .ownership import get_user_id
from .store import PermissionStore
from .types import Permission

logger = get_logger(__name__)


class DirectGrantChecker:
    """
    Checks whether a user, independently of their roles, may perform an
    action on one or more objects.
    """

    def __init__(
        self,
        store: PermissionStore,
        config: PermissionsConfig | None = None,
        matcher: FilterMatcher | None = None,
    ):
        self._store = store
        self._config = config or PermissionsConfig()
        self._matcher = matcher or get_default_matcher()

    async def user_permissions(self, user_id: Any, action: str, model: str) -> list[Permission]:
        """
        Fetch the user's direct grants for an action on a model.

        Raises:
            NotFoundError: If the model name does not resolve
        """
        model_record = await self._store.get_model(model)
        if user_id is None:
            return []
        return await self._store.find_permissions(
            {
                "model": model_record.id,
                "action": action,
                "relation": RELATION_USER,
                "user": user_id,
            }
        )

    def _is_allowed_single(
        self,
        obj: Mapping[str, Any],
        permissions: list[Permission],
        attributes: Mapping[str, Any] | Iterable[str] | None,
        user: Any,
    ) -> bool:
        if not permissions:
            return False
        return has_passing_criteria(
            [obj],
            permissions,
            attributes,
            user,
            matcher=self._matcher,
            id_field=self._config.id_field,
            owner_field=self._config.owner_field,
        )

    @timed_operation("checker.is_allowed", decision=True)
    async def is_allowed(
        self,
        objects: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        user: Any,
        action: str,
        model: str,
        attributes: Mapping[str, Any] | Iterable[str] | None = None,
    ) -> bool:
        """
        Check if the user (outside of any role) is granted to perform the
        action on the given objects.

        The user's direct grants are read once and every object is checked
        against that same snapshot; all objects must pass.

        Args:
            objects: A single object or a list of objects
            user: User entity or mapping with an id
            action: CRUD action
            model: Model name
            attributes: Request body or attribute names being written

        Returns:
            True if every object passes, False otherwise (including when the
            user holds no direct grant)

        Raises:
            NotFoundError: If the model name does not resolve
        """
        user_id = get_user_id(user)
        batch = [objects] if isinstance(objects, Mapping) else list(objects)

        with decision_context(user_id=user_id, model=model, action=action, object_count=len(batch)):
            permissions = await self.user_permissions(user_id, action, model)
            allowed = all(
                self._is_allowed_single(obj, permissions, attributes, user) for obj in batch
            )

            if not allowed:
                logger.info(
                    f"Direct grant denied: user={user_id} action={action} model={model} "
                    f"({len(permissions)} direct grant(s))"
                )
        return allowed
