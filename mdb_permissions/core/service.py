"""
Permission Service

Single entry point wiring the resolver, the batch authorizer, the direct-grant
checker and the administration layer to one store and one configuration.

This module is part of MDB_PERMISSIONS.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config import PermissionsConfig
from ..observability import decision_context, get_logger, timed_operation
from .admin import PermissionAdmin
from .authorizer import has_passing_criteria, requested_attribute_names
from .checker import DirectGrantChecker
from .matcher import FilterMatcher, get_default_matcher
from .ownership import get_user_id, has_foreign_objects
from .resolver import GrantResolver, get_method
from .store import PermissionStore
from .types import DecisionContext, ModelRecord, Permission

logger = get_logger(__name__)


def get_error_message(user: Any, method: str, model: ModelRecord | str) -> str:
    """Build the message shown when a user is not permitted an action."""
    if isinstance(user, Mapping):
        name = user.get("email") or user.get("username")
    else:
        name = getattr(user, "email", None) or getattr(user, "username", None)
    model_name = model.name if isinstance(model, ModelRecord) else model
    return " ".join(["User", str(name), "is not permitted to", str(method), str(model_name)])


def has_ownership_policy(model: ModelRecord) -> bool:
    """Return True if objects of this model carry an owner reference."""
    return bool(getattr(model, "ownership_policy", False))


class PermissionService:
    """
    Facade over the permission engine.

    Usage:
        service = PermissionService.from_database(client["app"])

        if not await service.authorize(docs, user, "PUT", "article", body):
            raise HTTPException(403, service.get_error_message(user, "PUT", "article"))
    """

    def __init__(
        self,
        store: PermissionStore,
        config: PermissionsConfig | None = None,
        matcher: FilterMatcher | None = None,
    ):
        self.store = store
        self.config = config or PermissionsConfig()
        self.config.validate()
        self.matcher = matcher or get_default_matcher()
        self.resolver = GrantResolver(store)
        self.checker = DirectGrantChecker(store, self.config, self.matcher)
        self.admin = PermissionAdmin(store)

    @classmethod
    def from_database(
        cls,
        db: AsyncIOMotorDatabase,
        config: PermissionsConfig | None = None,
        matcher: FilterMatcher | None = None,
    ) -> "PermissionService":
        """Build a service over the permission collections of a motor database."""
        config = config or PermissionsConfig()
        return cls(PermissionStore.from_database(db, config), config, matcher)

    get_method = staticmethod(get_method)
    get_error_message = staticmethod(get_error_message)
    has_ownership_policy = staticmethod(has_ownership_policy)

    def has_foreign_objects(self, objects: Any, user: Any) -> bool:
        """True if any of the objects is not owned by the user."""
        return has_foreign_objects(objects, user, owner_field=self.config.owner_field)

    async def find_model_permissions(
        self, user: Any, method: str, model: str | ModelRecord
    ) -> list[Permission]:
        """Permissions granting the action of an HTTP method on a model to a user."""
        return await self.resolver.find_model_permissions(user, method, model)

    def has_passing_criteria(
        self,
        objects: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        permissions: Sequence[Permission | None],
        attributes: Mapping[str, Any] | Iterable[str] | None = None,
        user: Any = None,
    ) -> bool:
        """Batch-authorize objects with this service's matcher and field names."""
        return has_passing_criteria(
            objects,
            permissions,
            attributes,
            user,
            matcher=self.matcher,
            id_field=self.config.id_field,
            owner_field=self.config.owner_field,
        )

    @timed_operation("service.authorize", decision=True)
    async def authorize(
        self,
        objects: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        user: Any,
        method: str,
        model: str | ModelRecord,
        attributes: Mapping[str, Any] | Iterable[str] | None = None,
    ) -> bool:
        """
        Resolve the user's permissions for an HTTP method on a model and check
        the objects against them.

        A user holding no applicable permission at all is denied.

        Raises:
            InvalidInputError: If the method maps to no action
            NotFoundError: If the model name does not resolve
        """
        context = DecisionContext(
            user=user,
            action=get_method(method),
            model=model.name if isinstance(model, ModelRecord) else model,
            objects=[objects] if isinstance(objects, Mapping) else list(objects),
            requested_attributes=requested_attribute_names(attributes),
        )

        with decision_context(
            user_id=get_user_id(user),
            model=context.model,
            action=context.action,
            object_count=len(context.objects),
        ):
            context.permissions = await self.find_model_permissions(user, method, model)

            if not context.permissions:
                logger.info(get_error_message(user, method, context.model) + " (no permissions)")
                return False

            allowed = self.has_passing_criteria(
                context.objects, context.permissions, context.requested_attributes, user
            )
            if not allowed:
                logger.info(get_error_message(user, method, context.model))
            else:
                logger.debug(
                    f"Authorized {context.action} on {len(context.objects)} object(s) "
                    f"with {len(context.permissions)} permission(s)"
                )
            return allowed

    async def is_allowed_to_perform_action(
        self,
        objects: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        user: Any,
        action: str,
        model: str,
        attributes: Mapping[str, Any] | Iterable[str] | None = None,
    ) -> bool:
        """Check the user's direct grants only (role grants are ignored)."""
        return await self.checker.is_allowed(objects, user, action, model, attributes)
