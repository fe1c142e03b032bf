"""Tests for role creation, permission sets, and assignment lifecycle."""

import pytest
from unittest.mock import AsyncMock

from backoffice.core.exceptions import PersistenceError
from backoffice.models import SystemRole
from backoffice.repositories import (
    SqlPermissionRepository, SqlRolePermissionRepository, SqlRoleRepository, SqlUserRoleRepository,
)
from backoffice.services.role_admin import RoleAdministrator


class TestCreateRole:

    @pytest.mark.asyncio
    async def test_create_role_grants_each_permission(self, session, catalog, administrator):
        permissions = await SqlPermissionRepository(session).get_by_keys(["content.view", "content.edit"])

        created = await administrator.create_role(
            "ContentManager", SystemRole.content_manager, permissions, created_by="seed",
        )

        assert created is True
        role = await SqlRoleRepository(session).get_by_system_role(SystemRole.content_manager)
        edges = await SqlRolePermissionRepository(session).list_for_role(role.id)
        assert sorted(e.permission_id for e in edges) == sorted(p.id for p in permissions)
        assert all(e.is_granted and e.granted_by == "seed" for e in edges)

    @pytest.mark.asyncio
    async def test_create_role_twice_returns_false(self, session, catalog, administrator):
        assert await administrator.create_role("Finance", SystemRole.finance, []) is True
        assert await administrator.create_role("Finance again", SystemRole.finance, []) is False

        roles = await SqlRoleRepository(session).list_all(include_inactive=True)
        assert [r.name for r in roles] == ["Finance"]

    @pytest.mark.asyncio
    async def test_duplicate_permission_refs_create_one_edge(self, session, catalog, administrator):
        permission = await SqlPermissionRepository(session).get_by_key("dashboard.view")

        await administrator.create_role("User", SystemRole.user, [permission, permission.id])

        role = await SqlRoleRepository(session).get_by_system_role(SystemRole.user)
        assert len(await SqlRolePermissionRepository(session).list_for_role(role.id)) == 1

    @pytest.mark.asyncio
    async def test_lost_creation_race_keeps_session_usable(self, session, catalog, administrator):
        assert await administrator.create_role("Finance", SystemRole.finance, []) is True
        roles = SqlRoleRepository(session)
        roles.get_by_system_role = AsyncMock(return_value=None)
        racing = RoleAdministrator(
            roles, SqlRolePermissionRepository(session), SqlUserRoleRepository(session),
            SqlPermissionRepository(session),
        )

        assert await racing.create_role("Finance again", SystemRole.finance, []) is False

        remaining = await SqlRoleRepository(session).list_all(include_inactive=True)
        assert [r.name for r in remaining] == ["Finance"]
        assert await administrator.create_role("Accounts", SystemRole.accounts, []) is True


class TestAssignment:

    @pytest.mark.asyncio
    async def test_double_assign_leaves_one_active_row(self, seeded, make_user, administrator):
        user = await make_user()

        first = await administrator.assign_role_to_user(user.id, SystemRole.admin, "root@example.com")
        second = await administrator.assign_role_to_user(user.id, SystemRole.admin, "root@example.com")

        assert first is True and second is True
        rows = await SqlUserRoleRepository(seeded).list_for_user(user.id, active_only=False)
        assert len(rows) == 1
        assert rows[0].is_active is True

    @pytest.mark.asyncio
    async def test_reassign_reactivates_same_row(self, seeded, make_user, administrator):
        user = await make_user()
        await administrator.assign_role_to_user(user.id, SystemRole.finance, "first@example.com")
        row_id = (await SqlUserRoleRepository(seeded).list_for_user(user.id))[0].id

        await administrator.remove_role_from_user(user.id, SystemRole.finance)
        assert await SqlUserRoleRepository(seeded).list_for_user(user.id) == []

        assert await administrator.assign_role_to_user(user.id, SystemRole.finance, "second@example.com")
        rows = await SqlUserRoleRepository(seeded).list_for_user(user.id, active_only=False)
        assert [(r.id, r.is_active, r.assigned_by) for r in rows] == [(row_id, True, "second@example.com")]

    @pytest.mark.asyncio
    async def test_user_may_hold_several_roles(self, seeded, make_user, administrator):
        user = await make_user()
        for role in (SystemRole.finance, SystemRole.accounts, SystemRole.user):
            assert await administrator.assign_role_to_user(user.id, role, None)

        assert len(await SqlUserRoleRepository(seeded).list_for_user(user.id)) == 3

    @pytest.mark.asyncio
    async def test_assign_missing_role_returns_false(self, session, catalog, make_user, administrator):
        user = await make_user()

        assert await administrator.assign_role_to_user(user.id, SystemRole.admin, None) is False

    @pytest.mark.asyncio
    async def test_assign_inactive_role_returns_false(self, seeded, make_user, administrator):
        user = await make_user()
        role = await SqlRoleRepository(seeded).get_by_system_role(SystemRole.accounts)
        await administrator.deactivate_role(role.id)

        assert await administrator.assign_role_to_user(user.id, SystemRole.accounts, None) is False

    @pytest.mark.asyncio
    async def test_remove_role_not_held_returns_false(self, seeded, make_user, administrator):
        user = await make_user()

        assert await administrator.remove_role_from_user(user.id, SystemRole.admin) is False


class TestRolePermissions:

    @pytest.mark.asyncio
    async def test_replace_flips_edges_instead_of_deleting(self, seeded, administrator):
        role = await SqlRoleRepository(seeded).get_by_system_role(SystemRole.accounts)
        edges = SqlRolePermissionRepository(seeded)
        before = await edges.list_for_role(role.id, granted_only=False)
        dashboard = await SqlPermissionRepository(seeded).get_by_key("dashboard.view")

        assert await administrator.update_role_permissions(role.id, [dashboard.id], granted_by="root") is True

        after = await edges.list_for_role(role.id, granted_only=False)
        assert len(after) == len(before)
        assert [e.permission_id for e in after if e.is_granted] == [dashboard.id]
        assert [p.permission_key for p in await administrator.get_role_permissions(role.id)] == ["dashboard.view"]

    @pytest.mark.asyncio
    async def test_regrant_refreshes_grant_metadata(self, seeded, administrator):
        role = await SqlRoleRepository(seeded).get_by_system_role(SystemRole.accounts)
        permissions = SqlPermissionRepository(seeded)
        dashboard = await permissions.get_by_key("dashboard.view")
        users = await permissions.get_by_key("users.view")

        await administrator.update_role_permissions(role.id, [dashboard.id], granted_by="first")
        await administrator.update_role_permissions(role.id, [dashboard.id, users.id], granted_by="second")

        edges = {e.permission_id: e for e in await SqlRolePermissionRepository(seeded).list_for_role(role.id)}
        assert set(edges) == {dashboard.id, users.id}
        assert edges[users.id].granted_by == "second"
        assert edges[dashboard.id].granted_by == "seed"

    @pytest.mark.asyncio
    async def test_replace_adds_new_edges(self, seeded, administrator):
        role = await SqlRoleRepository(seeded).get_by_system_role(SystemRole.user)
        system_manage = await SqlPermissionRepository(seeded).get_by_key("system.manage")
        current = [p.id for p in await administrator.get_role_permissions(role.id)]

        await administrator.update_role_permissions(role.id, current + [system_manage.id])

        keys = {p.permission_key for p in await administrator.get_role_permissions(role.id)}
        assert "system.manage" in keys

    @pytest.mark.asyncio
    async def test_update_unknown_role_returns_false(self, seeded, administrator):
        assert await administrator.update_role_permissions(9999, []) is False

    @pytest.mark.asyncio
    async def test_role_permissions_loaded_by_id(self, seeded):
        role = await SqlRoleRepository(seeded).get_by_system_role(SystemRole.accounts)
        permissions = SqlPermissionRepository(seeded)
        permissions.list_all = AsyncMock(side_effect=AssertionError("catalog should not be scanned"))
        administrator = RoleAdministrator(
            SqlRoleRepository(seeded), SqlRolePermissionRepository(seeded),
            SqlUserRoleRepository(seeded), permissions,
        )

        keys = [p.permission_key for p in await administrator.get_role_permissions(role.id)]

        assert keys == ["dashboard.view", "financials.view", "users.view"]
        assert await administrator.get_role_permissions(9999) == []

    @pytest.mark.asyncio
    async def test_deactivate_and_reactivate(self, seeded, administrator):
        role = await SqlRoleRepository(seeded).get_by_system_role(SystemRole.finance)

        assert await administrator.deactivate_role(role.id) is True
        assert role.is_active is False
        assert await administrator.reactivate_role(role.id) is True
        assert role.is_active is True
        assert await administrator.deactivate_role(9999) is False


class TestStoreFailures:
    """Administrative writes surface store failures."""

    @pytest.fixture
    def broken_administrator(self, broken_repository):
        return RoleAdministrator(
            roles=broken_repository(),
            role_permissions=broken_repository(),
            user_roles=broken_repository(),
            permissions=broken_repository(),
        )

    @pytest.mark.asyncio
    async def test_assign_raises_persistence_error(self, broken_administrator):
        with pytest.raises(PersistenceError):
            await broken_administrator.assign_role_to_user(1, SystemRole.user, None)

    @pytest.mark.asyncio
    async def test_create_raises_persistence_error(self, broken_administrator):
        with pytest.raises(PersistenceError):
            await broken_administrator.create_role("Admin", SystemRole.admin, [])

    @pytest.mark.asyncio
    async def test_activation_failure_raises_persistence_error(self, broken_repository, store_error):
        roles = AsyncMock()
        roles.get_by_system_role = AsyncMock(return_value=AsyncMock(id=3, is_active=True))
        user_roles = broken_repository()
        administrator = RoleAdministrator(roles, broken_repository(), user_roles, broken_repository())

        with pytest.raises(PersistenceError) as exc_info:
            await administrator.assign_role_to_user(1, SystemRole.user, None)

        assert exc_info.value.__cause__ is store_error
        user_roles.activate.assert_awaited_once_with(1, 3, None)
