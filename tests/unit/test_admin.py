"""
Unit tests for permission administration.

Tests role creation, grants, revocation and role membership against an
in-memory store.
"""

from unittest.mock import AsyncMock

import pytest

from mdb_permissions.core.admin import PermissionAdmin, parse_request
from mdb_permissions.core.schemas import GrantRequest, RevokeRequest
from mdb_permissions.core.types import ModelRecord, User
from mdb_permissions.exceptions import InvalidInputError, NotFoundError


async def _seed_basics(admin: PermissionAdmin) -> None:
    await admin.store.models.add_many([ModelRecord(name="article"), ModelRecord(name="comment")])
    await admin.store.users.add_many(
        [
            User(username="alice", email="alice@example.com"),
            User(username="bob", email="bob@example.com"),
        ]
    )


class TestParseRequest:
    """Test request validation."""

    def test_grant_requires_role_or_user(self):
        with pytest.raises(InvalidInputError, match="no role or user specified"):
            parse_request(GrantRequest, {"model": "article", "action": "read"})

    def test_grant_rejects_both_role_and_user(self):
        with pytest.raises(InvalidInputError, match="not both"):
            parse_request(GrantRequest, {"model": "article", "action": "read", "role": "a", "user": "b"})

    def test_grant_relation_defaults(self):
        by_user = parse_request(GrantRequest, {"model": "article", "action": "read", "user": "bob"})
        by_role = parse_request(GrantRequest, {"model": "article", "action": "read", "role": "editor"})

        assert by_user.relation == "user"
        assert by_role.relation == "role"

    def test_grant_relation_must_match_grantee(self):
        with pytest.raises(InvalidInputError):
            parse_request(
                GrantRequest, {"model": "article", "action": "read", "role": "editor", "relation": "user"}
            )

    def test_owner_relation_with_role(self):
        request = parse_request(
            GrantRequest, {"model": "article", "action": "read", "role": "editor", "relation": "owner"}
        )

        assert request.relation == "owner"

    def test_invalid_action(self):
        with pytest.raises(InvalidInputError, match="action"):
            parse_request(GrantRequest, {"model": "article", "action": "publish", "role": "editor"})

    def test_object_filter_aliases(self):
        request = parse_request(
            GrantRequest,
            {"model": "article", "action": "read", "user": "bob", "objectFilters": [{"objectId": 7}]},
        )

        assert request.object_filters[0].object_id == 7

    def test_revoke_requires_role_or_user(self):
        with pytest.raises(InvalidInputError, match="either a user or role"):
            parse_request(RevokeRequest, {"model": "article", "action": "read"})

    def test_instance_passes_through(self):
        request = GrantRequest(model="article", action="read", role="editor")

        assert parse_request(GrantRequest, request) is request


class TestCreateRole:
    """Test PermissionAdmin.create_role."""

    @pytest.mark.asyncio
    async def test_create_role_with_permissions_and_users(self, admin):
        await _seed_basics(admin)

        role = await admin.create_role(
            {
                "name": "editor",
                "users": ["alice", "bob"],
                "permissions": [
                    {"model": "article", "action": "update", "criteria": [{"where": {"status": "draft"}}]},
                    {"model": "comment", "action": "delete", "relation": "owner"},
                ],
            }
        )

        alice = await admin.store.get_user("alice")
        bob = await admin.store.get_user("bob")
        assert role.users == [alice.id, bob.id]

        records = await admin.store.permissions.find({"role": role.id})
        assert sorted((r.action, r.relation) for r in records) == [("delete", "owner"), ("update", "role")]
        assert await admin.store.criteria.count() == 1

    @pytest.mark.asyncio
    async def test_duplicate_role(self, admin):
        await admin.create_role({"name": "editor"})

        with pytest.raises(InvalidInputError, match="already exists"):
            await admin.create_role({"name": "editor"})

    @pytest.mark.asyncio
    async def test_unknown_model_writes_nothing(self, admin):
        with pytest.raises(NotFoundError):
            await admin.create_role(
                {"name": "editor", "permissions": [{"model": "missing", "action": "read"}]}
            )

        assert await admin.store.roles.count() == 0
        assert await admin.store.permissions.count() == 0

    @pytest.mark.asyncio
    async def test_unknown_usernames_are_skipped(self, admin):
        await _seed_basics(admin)

        role = await admin.create_role({"name": "editor", "users": ["alice", "nobody"]})

        assert len(role.users) == 1


class TestGrant:
    """Test PermissionAdmin.grant."""

    @pytest.mark.asyncio
    async def test_grant_to_role(self, admin):
        await _seed_basics(admin)
        role = await admin.create_role({"name": "editor"})

        records = await admin.grant({"role": "editor", "model": "article", "action": "read"})

        assert len(records) == 1
        assert records[0].role == role.id
        assert records[0].relation == "role"
        assert records[0].user is None

    @pytest.mark.asyncio
    async def test_grant_to_user_with_object_filters(self, admin):
        await _seed_basics(admin)
        bob = await admin.store.get_user("bob")

        (record,) = await admin.grant(
            {"user": "bob", "model": "article", "action": "delete", "objectFilters": [{"objectId": 42}]}
        )

        assert record.user == bob.id
        assert record.relation == "user"
        filters = await admin.store.object_filters.find({"permission": record.id})
        assert [f.object_id for f in filters] == [42]

    @pytest.mark.asyncio
    async def test_owner_grant_to_user_record_fields(self, admin):
        await _seed_basics(admin)
        bob = await admin.store.get_user("bob")

        (record,) = await admin.grant(
            {"user": "bob", "model": "article", "action": "update", "relation": "owner"}
        )

        stored = await admin.store.permissions.get(record.id)
        assert (stored.relation, stored.role, stored.user) == ("owner", None, bob.id)

    @pytest.mark.asyncio
    async def test_grant_many(self, admin):
        await _seed_basics(admin)
        await admin.create_role({"name": "editor"})

        records = await admin.grant(
            [
                {"role": "editor", "model": "article", "action": "read"},
                {"user": "alice", "model": "comment", "action": "create"},
            ]
        )

        assert len(records) == 2
        assert await admin.store.permissions.count() == 2

    @pytest.mark.asyncio
    async def test_grant_without_grantee(self, admin):
        await _seed_basics(admin)

        with pytest.raises(InvalidInputError, match="no role or user specified"):
            await admin.grant({"model": "article", "action": "read"})

        assert await admin.store.permissions.count() == 0

    @pytest.mark.asyncio
    async def test_unresolved_grant_writes_nothing(self, admin):
        """One bad grant in a batch leaves the store untouched."""
        await _seed_basics(admin)

        with pytest.raises(NotFoundError):
            await admin.grant(
                [
                    {"user": "alice", "model": "article", "action": "read"},
                    {"user": "nobody", "model": "article", "action": "read"},
                ]
            )

        assert await admin.store.permissions.count() == 0


class TestRevoke:
    """Test PermissionAdmin.revoke."""

    @pytest.mark.asyncio
    async def test_revoke_removes_permission_and_children(self, admin):
        await _seed_basics(admin)
        await admin.create_role(
            {
                "name": "editor",
                "permissions": [
                    {"model": "article", "action": "update", "criteria": [{"where": {"status": "draft"}}]},
                    {"model": "article", "action": "read"},
                ],
            }
        )

        removed = await admin.revoke({"role": "editor", "model": "article", "action": "update"})

        assert removed == 1
        assert await admin.store.permissions.count() == 1
        assert await admin.store.criteria.count() == 0

    @pytest.mark.asyncio
    async def test_revoke_from_user(self, admin):
        await _seed_basics(admin)
        await admin.grant(
            {"user": "bob", "model": "article", "action": "delete", "objectFilters": [{"objectId": 1}]}
        )

        removed = await admin.revoke(
            {"user": "bob", "model": "article", "action": "delete", "relation": "user"}
        )

        assert removed == 1
        assert await admin.store.object_filters.count() == 0

    @pytest.mark.asyncio
    async def test_revoke_relation_defaults_to_grantee_kind(self, admin):
        await _seed_basics(admin)
        await admin.grant({"user": "alice", "model": "comment", "action": "create"})

        assert await admin.revoke({"user": "alice", "model": "comment", "action": "create"}) == 1

    @pytest.mark.asyncio
    async def test_revoke_keeps_permission_granted_meanwhile(self, admin):
        await _seed_basics(admin)
        await admin.grant({"user": "bob", "model": "article", "action": "read"})
        find = admin.store.permissions.find

        async def find_then_grant(query):
            found = await find(query)
            await admin.grant(
                {
                    "user": "bob",
                    "model": "article",
                    "action": "read",
                    "criteria": [{"where": {"status": "open"}}],
                }
            )
            return found

        admin.store.permissions.find = find_then_grant

        assert await admin.revoke({"user": "bob", "model": "article", "action": "read"}) == 1

        admin.store.permissions.find = find
        (remaining,) = await admin.store.find_permissions({})
        assert [c.where for c in remaining.criteria] == [{"status": "open"}]

    @pytest.mark.asyncio
    async def test_revoke_nothing_matching(self, admin):
        await _seed_basics(admin)
        await admin.create_role({"name": "editor"})

        assert await admin.revoke({"role": "editor", "model": "article", "action": "read"}) == 0

    @pytest.mark.asyncio
    async def test_revoke_without_grantee(self, admin):
        with pytest.raises(InvalidInputError, match="either a user or role"):
            await admin.revoke({"model": "article", "action": "read"})

    @pytest.mark.asyncio
    async def test_revoke_unknown_role(self, admin):
        await _seed_basics(admin)

        with pytest.raises(NotFoundError):
            await admin.revoke({"role": "ghost", "model": "article", "action": "read"})


class TestRoleMembership:
    """Test adding and removing users from roles."""

    @pytest.mark.asyncio
    async def test_add_users_to_role(self, admin):
        await _seed_basics(admin)
        await admin.create_role({"name": "editor", "users": ["alice"]})

        role = await admin.add_users_to_role(["alice", "bob"], "editor")

        stored = await admin.store.get_role("editor")
        assert len(role.users) == 2
        assert stored.users == role.users

    @pytest.mark.asyncio
    async def test_add_single_username(self, admin):
        await _seed_basics(admin)
        await admin.create_role({"name": "editor"})

        role = await admin.add_users_to_role("bob", "editor")

        bob = await admin.store.get_user("bob")
        assert role.users == [bob.id]

    @pytest.mark.asyncio
    async def test_remove_users_from_role(self, admin):
        await _seed_basics(admin)
        await admin.create_role({"name": "editor", "users": ["alice", "bob"]})

        role = await admin.remove_users_from_role(["alice"], "editor")

        bob = await admin.store.get_user("bob")
        assert role.users == [bob.id]
        assert (await admin.store.get_role("editor")).users == [bob.id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("usernames", [None, [], ""])
    async def test_usernames_required(self, admin, usernames):
        with pytest.raises(InvalidInputError, match="One or more usernames must be provided"):
            await admin.add_users_to_role(usernames, "editor")

        with pytest.raises(InvalidInputError, match="One or more usernames must be provided"):
            await admin.remove_users_from_role(usernames, "editor")

    @pytest.mark.asyncio
    async def test_unknown_role(self, admin):
        with pytest.raises(NotFoundError):
            await admin.add_users_to_role(["alice"], "ghost")

    @pytest.mark.asyncio
    async def test_add_does_not_drop_members_added_meanwhile(self, admin):
        await _seed_basics(admin)
        await admin.store.users.add(User(username="carol"))
        await admin.create_role({"name": "editor", "users": ["alice"]})
        stale = await admin.store.get_role("editor")
        await admin.add_users_to_role("bob", "editor")
        admin.store.get_role = AsyncMock(return_value=stale)

        role = await admin.add_users_to_role("carol", "editor")

        users = await admin.store.find_users(["alice", "bob", "carol"])
        assert role.users == [user.id for user in users]

    @pytest.mark.asyncio
    async def test_remove_does_not_restore_members_removed_meanwhile(self, admin):
        await _seed_basics(admin)
        await admin.create_role({"name": "editor", "users": ["alice", "bob"]})
        stale = await admin.store.get_role("editor")
        await admin.remove_users_from_role("alice", "editor")
        admin.store.get_role = AsyncMock(return_value=stale)

        role = await admin.remove_users_from_role("bob", "editor")

        assert role.users == []
