"""
MDB_PERMISSIONS - CRUD permission engine for MongoDB-backed applications

Decides whether a user may create, read, update or delete objects by
composing role, user and ownership grants into MongoDB where-clauses and
testing every object against them.
"""

from .config import PermissionsConfig
from .core import (
    DirectGrantChecker,
    GrantResolver,
    Permission,
    PermissionAdmin,
    PermissionService,
    PermissionStore,
    compose_criteria,
    has_foreign_objects,
    has_passing_criteria,
)
from .exceptions import (
    ConfigurationError,
    InvalidInputError,
    NotFoundError,
    PermissionsError,
    PolicyValidationError,
)

__version__ = "0.1.0"

__all__ = [
    # Service
    "PermissionService",
    "PermissionStore",
    "PermissionsConfig",
    # Engine
    "compose_criteria",
    "has_passing_criteria",
    "has_foreign_objects",
    "GrantResolver",
    "DirectGrantChecker",
    "PermissionAdmin",
    "Permission",
    # Errors
    "PermissionsError",
    "InvalidInputError",
    "NotFoundError",
    "ConfigurationError",
    "PolicyValidationError",
]
