"""
Permission Store

Groups the repositories the permission engine reads and writes. A store is
passed explicitly to the resolver, checker and administration layer; there
is no process-wide registry.

This module is part of MDB_PERMISSIONS.
"""

import asyncio
import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase

from ..config import PermissionsConfig
from ..constants import (
    CRITERIA_COLLECTION,
    MODELS_COLLECTION,
    OBJECT_FILTERS_COLLECTION,
    PERMISSIONS_COLLECTION,
    ROLES_COLLECTION,
    USERS_COLLECTION,
)
from ..exceptions import NotFoundError
from ..repositories import InMemoryRepository, MongoRepository, Repository
from .types import (
    CriteriaRecord,
    ModelRecord,
    ObjectFilterRecord,
    Permission,
    PermissionRecord,
    Role,
    User,
)

logger = logging.getLogger(__name__)


class PermissionStore:
    """
    Repositories for models, roles, users, permissions and their criteria.

    Usage:
        store = PermissionStore.from_database(client["app"])
        model = await store.get_model("article")
        permissions = await store.populate(await store.permissions.find({...}))

        # Tests and offline tooling
        store = PermissionStore.in_memory()
    """

    def __init__(
        self,
        models: Repository[ModelRecord],
        roles: Repository[Role],
        users: Repository[User],
        permissions: Repository[PermissionRecord],
        criteria: Repository[CriteriaRecord],
        object_filters: Repository[ObjectFilterRecord],
    ):
        self.models = models
        self.roles = roles
        self.users = users
        self.permissions = permissions
        self.criteria = criteria
        self.object_filters = object_filters

    @classmethod
    def from_database(
        cls, db: AsyncIOMotorDatabase, config: PermissionsConfig | None = None
    ) -> "PermissionStore":
        """
        Build a store backed by MongoDB collections of a motor database.

        Args:
            db: Motor database
            config: Optional configuration (collection prefix)
        """
        config = config or PermissionsConfig()

        def repo(name: str, entity_class: type) -> MongoRepository:
            return MongoRepository(db[config.collection_name(name)], entity_class)

        return cls(
            models=repo(MODELS_COLLECTION, ModelRecord),
            roles=repo(ROLES_COLLECTION, Role),
            users=repo(USERS_COLLECTION, User),
            permissions=repo(PERMISSIONS_COLLECTION, PermissionRecord),
            criteria=repo(CRITERIA_COLLECTION, CriteriaRecord),
            object_filters=repo(OBJECT_FILTERS_COLLECTION, ObjectFilterRecord),
        )

    @classmethod
    def in_memory(cls) -> "PermissionStore":
        """Build a store holding everything in process memory."""
        return cls(
            models=InMemoryRepository(ModelRecord),
            roles=InMemoryRepository(Role),
            users=InMemoryRepository(User),
            permissions=InMemoryRepository(PermissionRecord),
            criteria=InMemoryRepository(CriteriaRecord),
            object_filters=InMemoryRepository(ObjectFilterRecord),
        )

    # ------------------------------------------------------------------
    # Name lookups
    # ------------------------------------------------------------------

    async def get_model(self, name: str) -> ModelRecord:
        """
        Resolve a model by name.

        Raises:
            NotFoundError: If no model has this name
        """
        model = await self.models.find_one({"name": name})
        if model is None:
            raise NotFoundError(f"Model '{name}' not found", entity="model", name=name)
        return model

    async def get_role(self, name: str) -> Role:
        """
        Resolve a role by name.

        Raises:
            NotFoundError: If no role has this name
        """
        role = await self.roles.find_one({"name": name})
        if role is None:
            raise NotFoundError(f"Role '{name}' not found", entity="role", name=name)
        return role

    async def get_user(self, username: str) -> User:
        """
        Resolve a user by username.

        Raises:
            NotFoundError: If no user has this username
        """
        user = await self.users.find_one({"username": username})
        if user is None:
            raise NotFoundError(f"User '{username}' not found", entity="user", name=username)
        return user

    async def find_users(self, usernames: list[str]) -> list[User]:
        """Return the users whose username is in the list (missing ones are skipped)."""
        return await self.users.find({"username": {"$in": list(usernames)}})

    async def roles_for_user(self, user_id: Any) -> list[Role]:
        """Return every role the user is a member of."""
        return await self.roles.find({"users": user_id})

    # ------------------------------------------------------------------
    # Permission population
    # ------------------------------------------------------------------

    async def populate(self, records: list[PermissionRecord]) -> list[Permission]:
        """
        Attach criteria and object filters to permission records.

        Runs one query per related collection for the whole batch.
        """
        if not records:
            return []

        ids = [record.id for record in records]
        criteria, object_filters = await asyncio.gather(
            self.criteria.find({"permission": {"$in": ids}}),
            self.object_filters.find({"permission": {"$in": ids}}),
        )

        criteria_by_permission: dict[str, list[CriteriaRecord]] = {}
        for item in criteria:
            criteria_by_permission.setdefault(item.permission, []).append(item)

        filters_by_permission: dict[str, list[ObjectFilterRecord]] = {}
        for item in object_filters:
            filters_by_permission.setdefault(item.permission, []).append(item)

        return [
            Permission.from_record(
                record,
                criteria=criteria_by_permission.get(record.id, []),
                object_filters=filters_by_permission.get(record.id, []),
            )
            for record in records
        ]

    async def find_permissions(self, query: dict[str, Any]) -> list[Permission]:
        """Find permission records matching a query and populate them."""
        records = await self.permissions.find(query)
        logger.debug(f"Found {len(records)} permission record(s) for {query}")
        return await self.populate(records)
