"""
Core permission engine.

Criteria composition, batch authorization, grant resolution, direct-grant
checking, ownership predicates and administration.
"""

from .admin import PermissionAdmin
from .authorizer import collect_criteria, has_passing_criteria, has_unpermitted_attributes
from .checker import DirectGrantChecker
from .criteria import compose_criteria
from .matcher import FilterMatcher, MongoFilterMatcher, get_default_matcher
from .ownership import get_user_id, has_foreign_objects, is_foreign_object
from .policy import explain_policy, seed_policies, validate_policy
from .resolver import GrantResolver, get_method
from .schemas import GrantRequest, RevokeRequest, RoleRequest
from .service import PermissionService, get_error_message, has_ownership_policy
from .store import PermissionStore
from .types import (
    CriteriaEntry,
    CriteriaItem,
    CriteriaRecord,
    DecisionContext,
    ModelRecord,
    ObjectFilter,
    ObjectFilterRecord,
    OwnerRelation,
    Permission,
    PermissionRecord,
    Role,
    RoleRelation,
    User,
    UserRelation,
)

__all__ = [
    # Engine
    "compose_criteria",
    "collect_criteria",
    "has_passing_criteria",
    "has_unpermitted_attributes",
    "is_foreign_object",
    "has_foreign_objects",
    "get_user_id",
    "FilterMatcher",
    "MongoFilterMatcher",
    "get_default_matcher",
    # Resolution and checking
    "GrantResolver",
    "DirectGrantChecker",
    "get_method",
    # Administration
    "PermissionAdmin",
    "GrantRequest",
    "RevokeRequest",
    "RoleRequest",
    "validate_policy",
    "seed_policies",
    "explain_policy",
    # Service
    "PermissionService",
    "PermissionStore",
    "get_error_message",
    "has_ownership_policy",
    # Types
    "ModelRecord",
    "Role",
    "User",
    "PermissionRecord",
    "CriteriaRecord",
    "ObjectFilterRecord",
    "Permission",
    "CriteriaEntry",
    "ObjectFilter",
    "CriteriaItem",
    "RoleRelation",
    "UserRelation",
    "OwnerRelation",
    "DecisionContext",
]
