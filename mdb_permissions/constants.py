"""
Constants for MDB_PERMISSIONS.

This module contains all shared constants used across the codebase to avoid
magic strings and improve maintainability.
"""

from typing import Final

# ============================================================================
# ACTION CONSTANTS
# ============================================================================

ACTION_CREATE: Final[str] = "create"
ACTION_READ: Final[str] = "read"
ACTION_UPDATE: Final[str] = "update"
ACTION_DELETE: Final[str] = "delete"

ACTIONS: Final[tuple[str, ...]] = (
    ACTION_CREATE,
    ACTION_READ,
    ACTION_UPDATE,
    ACTION_DELETE,
)
"""CRUD actions a permission can grant."""

METHOD_ACTIONS: Final[dict[str, str]] = {
    "POST": ACTION_CREATE,
    "GET": ACTION_READ,
    "PUT": ACTION_UPDATE,
    "PATCH": ACTION_UPDATE,
    "DELETE": ACTION_DELETE,
}
"""HTTP method to CRUD action mapping."""

# ============================================================================
# RELATION CONSTANTS
# ============================================================================

RELATION_ROLE: Final[str] = "role"
RELATION_USER: Final[str] = "user"
RELATION_OWNER: Final[str] = "owner"

RELATIONS: Final[tuple[str, ...]] = (
    RELATION_ROLE,
    RELATION_USER,
    RELATION_OWNER,
)
"""Relation kinds stored on permission records."""

# ============================================================================
# STORAGE CONSTANTS
# ============================================================================

MODELS_COLLECTION: Final[str] = "models"
ROLES_COLLECTION: Final[str] = "roles"
USERS_COLLECTION: Final[str] = "users"
PERMISSIONS_COLLECTION: Final[str] = "permissions"
CRITERIA_COLLECTION: Final[str] = "criteria"
OBJECT_FILTERS_COLLECTION: Final[str] = "object_filters"

DEFAULT_ID_FIELD: Final[str] = "id"
"""Field holding a domain object's identifier (used by object filters)."""

DEFAULT_OWNER_FIELD: Final[str] = "owner"
"""Field holding the id of the user that owns a domain object."""

# ============================================================================
# METRICS CONSTANTS
# ============================================================================

MAX_METRICS: Final[int] = 10000
"""Maximum number of metric keys kept before LRU eviction."""
