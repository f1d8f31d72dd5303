"""
Filter matching for where-clauses.

Where-clauses are MongoDB query documents. Evaluating them is delegated to
an existing query evaluator; the permission engine only consumes the
``match`` contract below.

This module is part of MDB_PERMISSIONS.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from mongomock.filtering import filter_applies


class FilterMatcher(Protocol):
    """
    Contract for evaluating a where-clause against candidate objects.
    """

    def match(
        self, objects: Sequence[Mapping[str, Any]], where: Mapping[str, Any]
    ) -> list[Mapping[str, Any]]:
        """Return the objects that satisfy ``where``, in input order."""
        ...


class MongoFilterMatcher:
    """
    FilterMatcher backed by mongomock's implementation of MongoDB query
    semantics (equality, ``$and``/``$or``, ``$in``, comparison operators,
    dotted paths).

    An empty where-clause matches every object.
    """

    def match(
        self, objects: Sequence[Mapping[str, Any]], where: Mapping[str, Any]
    ) -> list[Mapping[str, Any]]:
        where = dict(where or {})
        return [obj for obj in objects if filter_applies(where, obj)]


_default_matcher = MongoFilterMatcher()


def get_default_matcher() -> FilterMatcher:
    """Return the shared MongoFilterMatcher instance."""
    return _default_matcher
