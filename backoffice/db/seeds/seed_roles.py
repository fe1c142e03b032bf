"""Seed default roles and their permission grants into the database."""

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models import SystemRole
from backoffice.repositories import (
    SqlPermissionRepository, SqlRolePermissionRepository, SqlRoleRepository, SqlUserRoleRepository,
)
from backoffice.services.role_admin import RoleAdministrator

ROLES = [
    (SystemRole.super_admin, "SuperAdmin", "Full system access with all permissions"),
    (SystemRole.admin, "Admin", "Administrative access with most permissions"),
    (SystemRole.finance, "Finance", "Financial data access and management"),
    (SystemRole.accounts, "Accounts", "Account management and billing"),
    (SystemRole.content_manager, "ContentManager", "Content creation and management"),
    (SystemRole.user, "User", "Standard user with basic permissions"),
]

# Explicit grant lists; roles do not inherit from each other.
# None means every permission in the catalog.
ROLE_PERMISSIONS = {
    SystemRole.super_admin: None,
    SystemRole.admin: [
        "dashboard.view", "users.view", "users.create", "users.edit", "users.delete",
        "roles.view", "roles.create", "roles.edit", "permissions.view",
        "content.view", "content.create", "content.edit", "content.delete",
        "system.view", "reports.view",
    ],
    SystemRole.finance: [
        "dashboard.view", "users.view", "financials.view", "financials.manage", "reports.view",
    ],
    SystemRole.accounts: ["dashboard.view", "users.view", "financials.view"],
    SystemRole.content_manager: [
        "dashboard.view", "users.view", "content.view", "content.create", "content.edit", "content.delete",
    ],
    SystemRole.user: ["dashboard.view", "public.dashboard", "public.vocabulary", "public.learning"],
}


def role_administrator(db: AsyncSession) -> RoleAdministrator:
    return RoleAdministrator(
        roles=SqlRoleRepository(db),
        role_permissions=SqlRolePermissionRepository(db),
        user_roles=SqlUserRoleRepository(db),
        permissions=SqlPermissionRepository(db),
    )


async def seed_roles(db: AsyncSession) -> None:
    """Insert default roles if they don't already exist.

    Grants are only written for newly created roles, so edits made
    through the admin API survive a re-seed.
    """
    administrator = role_administrator(db)
    catalog = await SqlPermissionRepository(db).list_all()
    by_key = {p.permission_key: p for p in catalog}

    created = 0
    for system_role, name, description in ROLES:
        keys = ROLE_PERMISSIONS[system_role]
        permissions = catalog if keys is None else [by_key[k] for k in keys if k in by_key]
        if await administrator.create_role(
            name, system_role, permissions, created_by="seed", description=description,
        ):
            created += 1

    print(f"✅ Seeded {created} roles ({len(ROLES) - created} already present)")
