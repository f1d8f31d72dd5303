"""
MongoDB Repository Implementation

Implements the Repository interface on top of a motor collection.
"""

import logging
from datetime import datetime
from typing import Any, Generic, TypeVar

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection

from .base import Entity, Repository

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Entity)


def _to_object_id(id: str) -> Any:
    """Convert a string id to ObjectId when it is one, else keep it as is."""
    return ObjectId(id) if ObjectId.is_valid(id) else id


class MongoRepository(Repository[T], Generic[T]):
    """
    MongoDB implementation of the Repository interface.

    Example:
        roles = MongoRepository(db["roles"], Role)

        admins = await roles.find_one({"name": "admin"})
        role_id = await roles.add(Role(name="editor"))
    """

    def __init__(self, collection: AsyncIOMotorCollection, entity_class: type[T]):
        """
        Initialize the MongoDB repository.

        Args:
            collection: Motor collection backing this repository
            entity_class: Entity subclass for this repository
        """
        self._collection = collection
        self._entity_class = entity_class

    @property
    def collection(self) -> AsyncIOMotorCollection:
        """The underlying motor collection."""
        return self._collection

    def _to_entity(self, doc: dict[str, Any] | None) -> T | None:
        """Convert a MongoDB document to an entity."""
        if doc is None:
            return None
        return self._entity_class.from_dict(doc)

    def _to_document(self, entity: T) -> dict[str, Any]:
        """Convert an entity to a MongoDB document without its id."""
        doc = entity.to_dict()
        doc.pop("_id", None)
        return doc

    async def get(self, id: str) -> T | None:
        """Get entity by ID."""
        doc = await self._collection.find_one({"_id": _to_object_id(id)})
        return self._to_entity(doc)

    async def find(
        self,
        filter: dict[str, Any] | None = None,
        skip: int = 0,
        limit: int = 0,
        sort: list[tuple] | None = None,
    ) -> list[T]:
        """Find entities matching a filter."""
        cursor = self._collection.find(filter or {})

        if skip > 0:
            cursor = cursor.skip(skip)
        if limit > 0:
            cursor = cursor.limit(limit)
        if sort:
            cursor = cursor.sort(sort)

        docs = await cursor.to_list(length=limit or None)
        return [self._to_entity(doc) for doc in docs]

    async def find_one(self, filter: dict[str, Any]) -> T | None:
        """Find a single entity matching a filter."""
        doc = await self._collection.find_one(filter)
        return self._to_entity(doc)

    async def add(self, entity: T) -> str:
        """Add a new entity and return its ID."""
        entity.created_at = datetime.utcnow()
        result = await self._collection.insert_one(self._to_document(entity))
        entity.id = str(result.inserted_id)

        logger.debug(f"Added {self._entity_class.__name__} with id={entity.id}")
        return entity.id

    async def add_many(self, entities: list[T]) -> list[str]:
        """Add multiple entities and return their IDs."""
        if not entities:
            return []

        now = datetime.utcnow()
        docs = []
        for entity in entities:
            entity.created_at = now
            docs.append(self._to_document(entity))

        result = await self._collection.insert_many(docs)
        ids = [str(id) for id in result.inserted_ids]

        for entity, id in zip(entities, ids):
            entity.id = id

        logger.debug(f"Added {len(ids)} {self._entity_class.__name__} entities")
        return ids

    async def update_fields(self, id: str, fields: dict[str, Any]) -> bool:
        """Update specific fields of an entity."""
        fields = {**fields, "updated_at": datetime.utcnow()}
        result = await self._collection.update_one({"_id": _to_object_id(id)}, {"$set": fields})
        return result.matched_count > 0

    async def add_to_set(self, id: str, field_name: str, values: list[Any]) -> bool:
        """Append missing values to a list field with ``$addToSet``."""
        result = await self._collection.update_one(
            {"_id": _to_object_id(id)},
            {
                "$addToSet": {field_name: {"$each": list(values)}},
                "$set": {"updated_at": datetime.utcnow()},
            },
        )
        return result.matched_count > 0

    async def pull_all(self, id: str, field_name: str, values: list[Any]) -> bool:
        """Remove values from a list field with ``$pullAll``."""
        result = await self._collection.update_one(
            {"_id": _to_object_id(id)},
            {
                "$pullAll": {field_name: list(values)},
                "$set": {"updated_at": datetime.utcnow()},
            },
        )
        return result.matched_count > 0

    async def delete_many(self, filter: dict[str, Any]) -> int:
        """Delete every document matching a filter."""
        result = await self._collection.delete_many(filter)
        return result.deleted_count

    async def delete_ids(self, ids: list[str]) -> int:
        """Delete the documents with the given IDs."""
        if not ids:
            return 0
        result = await self._collection.delete_many(
            {"_id": {"$in": [_to_object_id(id) for id in ids]}}
        )
        return result.deleted_count

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """Count entities matching a filter."""
        return await self._collection.count_documents(filter or {})
