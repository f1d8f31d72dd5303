"""
Pytest configuration and shared fixtures for MDB_PERMISSIONS tests.

This module provides:
- In-memory store, admin and service fixtures
- Mock motor collection fixtures
- Test data factories
"""

from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from motor.motor_asyncio import AsyncIOMotorCollection

from mdb_permissions.config import PermissionsConfig
from mdb_permissions.core.admin import PermissionAdmin
from mdb_permissions.core.service import PermissionService
from mdb_permissions.core.store import PermissionStore
from mdb_permissions.core.types import (
    CriteriaEntry,
    ObjectFilter,
    OwnerRelation,
    Permission,
    RoleRelation,
    UserRelation,
)
from mdb_permissions.observability import clear_decision_context, get_metrics_collector

# ============================================================================
# ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def reset_observability():
    """Start every test with empty metrics and no decision context."""
    get_metrics_collector().reset()
    clear_decision_context()
    yield
    get_metrics_collector().reset()
    clear_decision_context()


# ============================================================================
# STORE FIXTURES
# ============================================================================


@pytest.fixture
def permissions_config() -> PermissionsConfig:
    """Configuration with explicit field names (independent of the environment)."""
    return PermissionsConfig(
        mongo_uri="mongodb://localhost:27017",
        db_name="test_db",
        id_field="id",
        owner_field="owner",
        collection_prefix="",
    )


@pytest.fixture
def store() -> PermissionStore:
    """Create an empty in-memory permission store."""
    return PermissionStore.in_memory()


@pytest.fixture
def admin(store: PermissionStore) -> PermissionAdmin:
    """Administration layer over the in-memory store."""
    return PermissionAdmin(store)


@pytest.fixture
def service(store: PermissionStore, permissions_config: PermissionsConfig) -> PermissionService:
    """Permission service over the in-memory store."""
    return PermissionService(store, permissions_config)


@pytest.fixture
def mock_motor_collection() -> MagicMock:
    """Create a mock motor collection."""
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = "roles"
    collection.find_one = AsyncMock(return_value=None)
    cursor = MagicMock()
    cursor.skip = MagicMock(return_value=cursor)
    cursor.limit = MagicMock(return_value=cursor)
    cursor.sort = MagicMock(return_value=cursor)
    cursor.to_list = AsyncMock(return_value=[])
    collection.find = MagicMock(return_value=cursor)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id="test_id"))
    collection.insert_many = AsyncMock(return_value=MagicMock(inserted_ids=["id1", "id2"]))
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=2))
    collection.count_documents = AsyncMock(return_value=0)
    return collection


# ============================================================================
# TEST DATA FACTORIES
# ============================================================================


def _permission(
    relation: Any = None,
    criteria: List[Dict[str, Any]] | None = None,
    object_filters: List[Any] | None = None,
    model: str = "article",
    action: str = "read",
) -> Permission:
    return Permission(
        model=model,
        action=action,
        relation=relation or RoleRelation("r1"),
        criteria=[
            CriteriaEntry(c.get("where", {}), frozenset(c.get("blacklist", ())))
            for c in criteria or []
        ],
        object_filters=[ObjectFilter(object_id) for object_id in object_filters or []],
    )


@pytest.fixture
def make_permission():
    """
    Factory for decision-time permissions.

    Usage:
        make_permission(criteria=[{"where": {"status": "open"}}], object_filters=[7])
    """
    return _permission


@pytest.fixture
def role_relation() -> RoleRelation:
    return RoleRelation("r1")


@pytest.fixture
def user_relation() -> UserRelation:
    return UserRelation("u1")


@pytest.fixture
def owner_relation() -> OwnerRelation:
    return OwnerRelation(RoleRelation("r1"))


@pytest.fixture
def sample_policy() -> Dict[str, Any]:
    """
    Policy document seeding two users, an editor role and a direct grant.

    In-memory ids are assigned in insertion order per collection, so alice is
    user "1" and bob is user "2".
    """
    return {
        "models": [
            {"name": "article", "ownership_policy": True},
            {"name": "comment"},
        ],
        "users": [
            {"username": "alice", "email": "alice@example.com"},
            {"username": "bob", "email": "bob@example.com"},
        ],
        "roles": [
            {
                "name": "editor",
                "users": ["alice"],
                "permissions": [
                    {
                        "model": "article",
                        "action": "update",
                        "criteria": [{"where": {"status": "draft"}, "blacklist": ["author"]}],
                    },
                    {"model": "article", "action": "read"},
                    {
                        "model": "comment",
                        "action": "delete",
                        "relation": "owner",
                        "criteria": [{"where": {}}],
                    },
                ],
            }
        ],
        "grants": [
            {
                "user": "bob",
                "model": "article",
                "action": "delete",
                "objectFilters": [{"objectId": 42}],
            }
        ],
    }


@pytest.fixture
def invalid_policy() -> Dict[str, Any]:
    """Policy document with a grant naming both a role and a user."""
    return {
        "grants": [
            {"role": "editor", "user": "alice", "model": "article", "action": "read"},
        ]
    }
