"""
MDB Permissions Repository Pattern

Provides the abstract repository interface plus MongoDB and in-memory
implementations used by the permission store.

Usage:
    from mdb_permissions.repositories import MongoRepository

    roles = MongoRepository(db["roles"], Role)
    role = await roles.find_one({"name": "admin"})
"""

from .base import Entity, InMemoryRepository, Repository
from .mongo import MongoRepository

__all__ = [
    "Repository",
    "Entity",
    "InMemoryRepository",
    "MongoRepository",
]
