"""
Abstract Repository Pattern

Defines the repository interface the permission engine reads and writes
through, so the engine works against MongoDB or an in-memory store alike.
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from bson import ObjectId
from mongomock.filtering import filter_applies


@dataclass
class Entity:
    """
    Base class for stored records.

    All entities have an ID and timestamps. The ``id`` attribute maps to the
    ``_id`` field of the stored document.

    Example:
        @dataclass
        class Role(Entity):
            name: str = ""
            users: list[str] = field(default_factory=list)
    """

    id: str | None = None
    created_at: datetime | None = field(default=None)
    updated_at: datetime | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert entity to dictionary for storage."""
        data = {}
        for key, value in self.__dict__.items():
            if value is None:
                continue
            if key == "id":
                data["_id"] = ObjectId(value) if ObjectId.is_valid(value) else value
            else:
                data[key] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "Entity | None":
        """Create entity from dictionary (e.g., from database)."""
        if data is None:
            return None

        data = dict(data)
        if "_id" in data:
            data["id"] = str(data.pop("_id"))

        field_names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in field_names})


T = TypeVar("T", bound=Entity)


class Repository(ABC, Generic[T]):
    """
    Abstract repository interface for data access.

    Filters are MongoDB-style query documents for every implementation.

    Example:
        class RoleRepository(Repository[Role]):
            async def find_by_name(self, name: str) -> Role | None:
                return await self.find_one({"name": name})
    """

    @abstractmethod
    async def get(self, id: str) -> T | None:
        """
        Get a single entity by ID.

        Args:
            id: Entity ID

        Returns:
            Entity if found, None otherwise
        """

    @abstractmethod
    async def find(
        self,
        filter: dict[str, Any] | None = None,
        skip: int = 0,
        limit: int = 0,
        sort: list[tuple] | None = None,
    ) -> list[T]:
        """
        Find entities matching a filter.

        Args:
            filter: MongoDB-style filter dictionary
            skip: Number of documents to skip
            limit: Maximum documents to return (0 means no limit)
            sort: List of (field, direction) tuples

        Returns:
            List of matching entities
        """

    @abstractmethod
    async def find_one(self, filter: dict[str, Any]) -> T | None:
        """
        Find a single entity matching a filter.

        Args:
            filter: MongoDB-style filter dictionary

        Returns:
            First matching entity or None
        """

    @abstractmethod
    async def add(self, entity: T) -> str:
        """
        Add a new entity.

        Args:
            entity: Entity to add

        Returns:
            ID of the created entity
        """

    @abstractmethod
    async def add_many(self, entities: list[T]) -> list[str]:
        """
        Add multiple entities.

        Args:
            entities: List of entities to add

        Returns:
            List of created entity IDs
        """

    @abstractmethod
    async def update_fields(self, id: str, fields: dict[str, Any]) -> bool:
        """
        Update specific fields of an entity.

        Args:
            id: Entity ID
            fields: Dictionary of fields to update

        Returns:
            True if entity was updated, False if not found
        """

    @abstractmethod
    async def add_to_set(self, id: str, field_name: str, values: list[Any]) -> bool:
        """
        Append values missing from a list field in one atomic update.

        Returns:
            True if the entity exists, False otherwise
        """

    @abstractmethod
    async def pull_all(self, id: str, field_name: str, values: list[Any]) -> bool:
        """
        Remove every occurrence of the values from a list field in one atomic update.

        Returns:
            True if the entity exists, False otherwise
        """

    @abstractmethod
    async def delete_many(self, filter: dict[str, Any]) -> int:
        """
        Delete every entity matching a filter.

        Args:
            filter: MongoDB-style filter dictionary

        Returns:
            Number of deleted entities
        """

    @abstractmethod
    async def delete_ids(self, ids: list[str]) -> int:
        """Delete the entities with the given IDs and return how many were removed."""

    @abstractmethod
    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """
        Count entities matching a filter.

        Args:
            filter: MongoDB-style filter dictionary

        Returns:
            Count of matching entities
        """


class InMemoryRepository(Repository[T]):
    """
    In-memory repository implementation for tests and offline tooling.

    Documents are stored as dictionaries and filtered with the same MongoDB
    query semantics the engine uses for where-clauses.
    """

    def __init__(self, entity_class: type):
        self._entity_class = entity_class
        self._storage: dict[str, dict[str, Any]] = {}
        self._counter = 0

    async def get(self, id: str) -> T | None:
        data = self._storage.get(id)
        if data is None:
            return None
        return self._entity_class.from_dict(data)

    async def find(
        self,
        filter: dict[str, Any] | None = None,
        skip: int = 0,
        limit: int = 0,
        sort: list[tuple] | None = None,
    ) -> list[T]:
        docs = [data for data in self._storage.values() if filter_applies(filter or {}, data)]

        for key, direction in reversed(sort or []):
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)

        docs = docs[skip:]
        if limit > 0:
            docs = docs[:limit]
        return [self._entity_class.from_dict(data) for data in docs]

    async def find_one(self, filter: dict[str, Any]) -> T | None:
        results = await self.find(filter, limit=1)
        return results[0] if results else None

    async def add(self, entity: T) -> str:
        self._counter += 1
        id = str(self._counter)
        entity.id = id
        entity.created_at = datetime.utcnow()
        self._storage[id] = entity.to_dict()
        return id

    async def add_many(self, entities: list[T]) -> list[str]:
        return [await self.add(e) for e in entities]

    async def update_fields(self, id: str, fields: dict[str, Any]) -> bool:
        if id not in self._storage:
            return False
        self._storage[id].update(fields)
        self._storage[id]["updated_at"] = datetime.utcnow()
        return True

    async def add_to_set(self, id: str, field_name: str, values: list[Any]) -> bool:
        if id not in self._storage:
            return False
        current = list(self._storage[id].get(field_name) or [])
        current.extend(v for v in dict.fromkeys(values) if v not in current)
        self._storage[id][field_name] = current
        self._storage[id]["updated_at"] = datetime.utcnow()
        return True

    async def pull_all(self, id: str, field_name: str, values: list[Any]) -> bool:
        if id not in self._storage:
            return False
        current = self._storage[id].get(field_name, [])
        self._storage[id][field_name] = [v for v in current if v not in values]
        self._storage[id]["updated_at"] = datetime.utcnow()
        return True

    async def delete_many(self, filter: dict[str, Any]) -> int:
        doomed = [id for id, data in self._storage.items() if filter_applies(filter, data)]
        for id in doomed:
            del self._storage[id]
        return len(doomed)

    async def delete_ids(self, ids: list[str]) -> int:
        doomed = [id for id in dict.fromkeys(ids) if id in self._storage]
        for id in doomed:
            del self._storage[id]
        return len(doomed)

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        return len(await self.find(filter))

    def clear(self) -> None:
        """Clear all entities (useful for test setup)."""
        self._storage.clear()
        self._counter = 0
