"""Tests for effective role and permission resolution."""

import pytest
from unittest.mock import AsyncMock

from backoffice.models import SystemRole
from backoffice.repositories import SqlMenuRepository, SqlPermissionRepository, SqlRoleRepository
from backoffice.services.menu_tree import menu_tree_builder
from backoffice.services.permission_resolver import PermissionResolver


async def _role_id(session, system_role):
    return (await SqlRoleRepository(session).get_by_system_role(system_role)).id


async def _permission_ids(session, *keys):
    return [p.id for p in await SqlPermissionRepository(session).get_by_keys(keys)]


class TestEffectivePermissions:
    """Union of grants over a user's active roles."""

    @pytest.mark.asyncio
    async def test_user_without_roles_has_nothing(self, seeded, make_user, resolver):
        user = await make_user()

        assert await resolver.get_user_roles(user.id) == set()
        assert await resolver.get_user_permissions(user.id) == []
        assert await resolver.get_user_permission_keys(user.id) == frozenset()

    @pytest.mark.asyncio
    async def test_content_manager_scenario(self, seeded, make_user, resolver, administrator):
        role_id = await _role_id(seeded, SystemRole.content_manager)
        await administrator.update_role_permissions(
            role_id, await _permission_ids(seeded, "content.view", "content.create"),
        )
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.content_manager, "admin@example.com")

        assert await resolver.get_user_roles(user.id) == {SystemRole.content_manager}
        assert await resolver.has_permission(user.id, "content.view") is True
        assert await resolver.has_permission(user.id, "content.create") is True
        assert await resolver.has_permission(user.id, "content.delete") is False
        assert await resolver.has_permission(user.id, "content.nonexistent") is False

    @pytest.mark.asyncio
    async def test_two_roles_union_without_duplicates(self, seeded, make_user, resolver, administrator):
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.finance, None)
        await administrator.assign_role_to_user(user.id, SystemRole.accounts, None)

        permissions = await resolver.get_user_permissions(user.id)
        ids = [p.id for p in permissions]

        assert len(ids) == len(set(ids))
        assert {p.permission_key for p in permissions} == {
            "dashboard.view", "users.view", "financials.view", "financials.manage", "reports.view",
        }

    @pytest.mark.asyncio
    async def test_no_inheritance_between_roles(self, seeded, make_user, resolver, administrator):
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.admin, None)

        # Admin does not pick up grants that only SuperAdmin or Finance hold.
        assert await resolver.has_permission(user.id, "system.manage") is False
        assert await resolver.has_permission(user.id, "financials.manage") is False
        assert await resolver.has_permission(user.id, "roles.create") is True

    @pytest.mark.asyncio
    async def test_accepts_permission_entity(self, seeded, make_user, resolver, administrator):
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.user, None)
        permission = await SqlPermissionRepository(seeded).get_by_key("public.learning")

        assert await resolver.has_permission(user.id, permission) is True


class TestLifecycle:
    """Deactivations and revocations take effect on the next query."""

    @pytest.mark.asyncio
    async def test_role_deactivation_affects_only_its_holders(
        self, seeded, make_user, resolver, administrator
    ):
        editor = await make_user("editor@example.com")
        learner = await make_user("learner@example.com")
        await administrator.assign_role_to_user(editor.id, SystemRole.content_manager, None)
        await administrator.assign_role_to_user(learner.id, SystemRole.user, None)
        learner_keys = await resolver.get_user_permission_keys(learner.id)

        await administrator.deactivate_role(await _role_id(seeded, SystemRole.content_manager))

        assert await resolver.get_user_roles(editor.id) == set()
        assert await resolver.get_user_permission_keys(editor.id) == frozenset()
        assert await resolver.get_user_permission_keys(learner.id) == learner_keys

    @pytest.mark.asyncio
    async def test_removed_role_no_longer_counts(self, seeded, make_user, resolver, administrator):
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.finance, None)
        await administrator.assign_role_to_user(user.id, SystemRole.user, None)

        assert await administrator.remove_role_from_user(user.id, SystemRole.finance) is True

        assert await resolver.get_user_roles(user.id) == {SystemRole.user}
        assert await resolver.has_permission(user.id, "financials.view") is False

    @pytest.mark.asyncio
    async def test_inactive_permission_is_not_granted(self, seeded, make_user, resolver, administrator):
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.user, None)
        permissions = SqlPermissionRepository(seeded)
        permission = await permissions.get_by_key("public.learning")
        permission.is_active = False
        await permissions.update(permission)

        assert "public.learning" not in await resolver.get_user_permission_keys(user.id)
        assert await resolver.has_permission(user.id, permission) is False

    @pytest.mark.asyncio
    async def test_revoked_edge_is_not_granted(self, seeded, make_user, resolver, administrator):
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.user, None)
        role_id = await _role_id(seeded, SystemRole.user)

        await administrator.update_role_permissions(role_id, await _permission_ids(seeded, "dashboard.view"))

        assert await resolver.get_user_permission_keys(user.id) == frozenset({"dashboard.view"})


class TestFailClosed:
    """Store failures degrade to empty answers instead of raising."""

    @pytest.fixture
    def broken_resolver(self, broken_repository):
        return PermissionResolver(broken_repository(), broken_repository())

    @pytest.mark.asyncio
    async def test_roles_empty_on_store_error(self, broken_resolver):
        assert await broken_resolver.get_user_roles(1) == set()

    @pytest.mark.asyncio
    async def test_permissions_empty_on_store_error(self, broken_resolver):
        assert await broken_resolver.get_user_permissions(1) == []

    @pytest.mark.asyncio
    async def test_has_permission_denies_on_store_error(self, broken_resolver):
        assert await broken_resolver.has_permission(1, "users.view") is False

    @pytest.mark.asyncio
    async def test_has_permission_denies_when_grants_unavailable(self, broken_repository):
        permissions = broken_repository()
        permissions.get_by_key = AsyncMock(return_value=AsyncMock(id=7))
        resolver = PermissionResolver(broken_repository(), permissions)

        assert await resolver.has_permission(1, "users.view") is False


async def _visible_menus(session, resolver, user_id):
    tree = menu_tree_builder.build_tree(
        await SqlMenuRepository(session).list_all(), await SqlPermissionRepository(session).list_all(),
    )
    keys = await resolver.get_user_permission_keys(user_id)
    return [node.name for root in menu_tree_builder.filter_by_permissions(tree, keys) for node in root.walk()]


class TestMenuVisibility:
    """Removing an assignment hides that role's menus for that user only."""

    @pytest.mark.asyncio
    async def test_removed_role_menus_disappear(self, seeded, make_user, resolver, administrator):
        accountant = await make_user("accountant@example.com")
        learner = await make_user("learner@example.com")
        await administrator.assign_role_to_user(accountant.id, SystemRole.finance, None)
        await administrator.assign_role_to_user(accountant.id, SystemRole.user, None)
        await administrator.assign_role_to_user(learner.id, SystemRole.user, None)
        before = await _visible_menus(seeded, resolver, accountant.id)
        learner_before = await _visible_menus(seeded, resolver, learner.id)
        assert "financial-management" in before

        assert await administrator.remove_role_from_user(accountant.id, SystemRole.finance) is True

        after = await _visible_menus(seeded, resolver, accountant.id)
        assert "financial-management" not in after
        assert "user-management" not in after
        assert ["public-dashboard", "public-vocabulary", "public-learning"] == [
            name for name in after if name.startswith("public-")
        ]
        assert after == learner_before
        assert await _visible_menus(seeded, resolver, learner.id) == learner_before
