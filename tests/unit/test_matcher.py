"""
Unit tests for where-clause matching.
"""

from mdb_permissions.core.matcher import FilterMatcher, MongoFilterMatcher, get_default_matcher


class TestMongoFilterMatcher:
    """Test MongoDB query semantics used by where-clauses."""

    def setup_method(self):
        self.matcher = MongoFilterMatcher()
        self.objects = [
            {"id": 1, "status": "open", "score": 5, "tags": ["a", "b"], "meta": {"team": "A"}},
            {"id": 2, "status": "closed", "score": 9, "tags": ["c"], "meta": {"team": "B"}},
        ]

    def ids(self, where):
        return [obj["id"] for obj in self.matcher.match(self.objects, where)]

    def test_empty_where_matches_all(self):
        assert self.ids({}) == [1, 2]
        assert self.ids(None) == [1, 2]

    def test_equality(self):
        assert self.ids({"status": "open"}) == [1]

    def test_comparison_operators(self):
        assert self.ids({"score": {"$gt": 6}}) == [2]
        assert self.ids({"id": {"$in": [2, 3]}}) == [2]

    def test_logical_operators(self):
        assert self.ids({"$or": [{"status": "open"}, {"score": 9}]}) == [1, 2]
        assert self.ids({"$and": [{"status": "open"}, {"id": 2}]}) == []

    def test_array_membership(self):
        assert self.ids({"tags": "c"}) == [2]

    def test_dotted_path(self):
        assert self.ids({"meta.team": "A"}) == [1]

    def test_preserves_input_order(self):
        assert self.ids({"score": {"$gte": 0}}) == [1, 2]


class TestDefaultMatcher:
    def test_default_matcher_is_shared(self):
        assert get_default_matcher() is get_default_matcher()

    def test_custom_matcher_satisfies_protocol(self):
        class FirstOnly:
            def match(self, objects, where):
                return list(objects[:1])

        matcher: FilterMatcher = FirstOnly()
        assert matcher.match([{"a": 1}, {"a": 2}], {}) == [{"a": 1}]
