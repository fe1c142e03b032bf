"""Seed the navigation menus and the permission catalog."""

from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models import Menu, MenuType, Permission, PermissionType
from backoffice.repositories import SqlMenuRepository, SqlPermissionRepository

ADMIN_MENUS = [
    {"name": "dashboard", "display_name": "Dashboard", "icon": "pi pi-home", "route": "/admin/dashboard", "sort_order": 10},
    {"name": "user-management", "display_name": "User Management", "icon": "pi pi-users", "route": "", "sort_order": 20},
    {"name": "role-management", "display_name": "Role Management", "icon": "pi pi-key", "route": "", "sort_order": 30},
    {"name": "permission-management", "display_name": "Permissions", "icon": "pi pi-shield", "route": "", "sort_order": 40},
    {"name": "content-management", "display_name": "Content", "icon": "pi pi-file-edit", "route": "", "sort_order": 50},
    {"name": "financial-management", "display_name": "Financials", "icon": "pi pi-dollar", "route": "", "sort_order": 60},
    {"name": "system-management", "display_name": "System", "icon": "pi pi-cog", "route": "", "sort_order": 70},
]

ADMIN_SUBMENUS = [
    {"name": "users-list", "display_name": "All Users", "icon": "pi pi-list", "route": "/admin/users", "parent": "user-management", "sort_order": 10},
    {"name": "users-create", "display_name": "Add User", "icon": "pi pi-plus", "route": "/admin/users/create", "parent": "user-management", "sort_order": 20},
    {"name": "users-roles", "display_name": "User Roles", "icon": "pi pi-key", "route": "/admin/users/roles", "parent": "user-management", "sort_order": 30},
    {"name": "roles-list", "display_name": "All Roles", "icon": "pi pi-list", "route": "/admin/roles", "parent": "role-management", "sort_order": 10},
    {"name": "roles-create", "display_name": "Create Role", "icon": "pi pi-plus", "route": "/admin/roles/create", "parent": "role-management", "sort_order": 20},
    {"name": "permissions-list", "display_name": "All Permissions", "icon": "pi pi-list", "route": "/admin/permissions", "parent": "permission-management", "sort_order": 10},
    {"name": "permissions-create", "display_name": "Create Permission", "icon": "pi pi-plus", "route": "/admin/permissions/create", "parent": "permission-management", "sort_order": 20},
    {"name": "content-vocabulary", "display_name": "Vocabulary", "icon": "pi pi-book", "route": "/admin/content/vocabulary", "parent": "content-management", "sort_order": 10},
    {"name": "content-categories", "display_name": "Categories", "icon": "pi pi-tags", "route": "/admin/content/categories", "parent": "content-management", "sort_order": 20},
    {"name": "financials-overview", "display_name": "Overview", "icon": "pi pi-chart-bar", "route": "/admin/financials", "parent": "financial-management", "sort_order": 10},
    {"name": "financials-subscriptions", "display_name": "Subscriptions", "icon": "pi pi-credit-card", "route": "/admin/financials/subscriptions", "parent": "financial-management", "sort_order": 20},
    {"name": "financials-reports", "display_name": "Reports", "icon": "pi pi-chart-line", "route": "/admin/financials/reports", "parent": "financial-management", "sort_order": 30},
    {"name": "system-settings", "display_name": "Settings", "icon": "pi pi-sliders-h", "route": "/admin/system/settings", "parent": "system-management", "sort_order": 10},
    {"name": "system-logs", "display_name": "Logs", "icon": "pi pi-file", "route": "/admin/system/logs", "parent": "system-management", "sort_order": 20},
    {"name": "system-analytics", "display_name": "Analytics", "icon": "pi pi-chart-pie", "route": "/admin/system/analytics", "parent": "system-management", "sort_order": 30},
]

PUBLIC_MENUS = [
    {"name": "public-dashboard", "display_name": "Dashboard", "icon": "pi pi-home", "route": "/public/dashboard", "sort_order": 10},
    {"name": "public-vocabulary", "display_name": "Vocabulary", "icon": "pi pi-book", "route": "/public/vocabulary", "sort_order": 20},
    {"name": "public-learning", "display_name": "Learning", "icon": "pi pi-lightbulb", "route": "/public/learning", "sort_order": 30},
]

# (menu name, type, key, display name)
PERMISSIONS = [
    ("dashboard", PermissionType.view, "dashboard.view", "View Dashboard"),
    ("user-management", PermissionType.view, "users.view", "View Users"),
    ("user-management", PermissionType.create, "users.create", "Create Users"),
    ("user-management", PermissionType.edit, "users.edit", "Edit Users"),
    ("user-management", PermissionType.delete, "users.delete", "Delete Users"),
    ("user-management", PermissionType.admin, "users.manage", "Manage Users"),
    ("role-management", PermissionType.view, "roles.view", "View Roles"),
    ("role-management", PermissionType.create, "roles.create", "Create Roles"),
    ("role-management", PermissionType.edit, "roles.edit", "Edit Roles"),
    ("role-management", PermissionType.delete, "roles.delete", "Delete Roles"),
    ("role-management", PermissionType.admin, "roles.manage", "Manage Roles"),
    ("permission-management", PermissionType.view, "permissions.view", "View Permissions"),
    ("permission-management", PermissionType.create, "permissions.create", "Create Permissions"),
    ("permission-management", PermissionType.edit, "permissions.edit", "Edit Permissions"),
    ("permission-management", PermissionType.delete, "permissions.delete", "Delete Permissions"),
    ("permission-management", PermissionType.admin, "permissions.manage", "Manage Permissions"),
    ("content-management", PermissionType.view, "content.view", "View Content"),
    ("content-management", PermissionType.create, "content.create", "Create Content"),
    ("content-management", PermissionType.edit, "content.edit", "Edit Content"),
    ("content-management", PermissionType.delete, "content.delete", "Delete Content"),
    ("content-management", PermissionType.admin, "content.manage", "Manage Content"),
    ("financial-management", PermissionType.view, "financials.view", "View Financials"),
    ("financial-management", PermissionType.admin, "financials.manage", "Manage Financials"),
    ("financial-management", PermissionType.view, "reports.view", "View Reports"),
    ("system-management", PermissionType.view, "system.view", "View System"),
    ("system-management", PermissionType.admin, "system.manage", "Manage System"),
    ("system-management", PermissionType.execute, "system.logs", "View Logs"),
    ("system-management", PermissionType.view, "analytics.view", "View Analytics"),
    ("public-dashboard", PermissionType.view, "public.dashboard", "View Public Dashboard"),
    ("public-vocabulary", PermissionType.view, "public.vocabulary", "View Vocabulary"),
    ("public-learning", PermissionType.view, "public.learning", "Access Learning"),
]


async def seed_menus(db: AsyncSession) -> Dict[str, Menu]:
    """Insert the admin and public navigation if missing; returns menus by name."""
    repo = SqlMenuRepository(db)
    by_name: Dict[str, Menu] = {}
    created = 0

    async def ensure(data: dict, menu_type: MenuType, parent: Menu = None) -> None:
        nonlocal created
        existing = await repo.get_by_name(data["name"])
        if existing is None:
            existing = await repo.add(Menu(
                name=data["name"],
                display_name=data["display_name"],
                icon=data["icon"],
                route=data["route"],
                sort_order=data["sort_order"],
                menu_type=menu_type,
                parent_menu_id=parent.id if parent else None,
                is_active=True,
            ))
            created += 1
        by_name[existing.name] = existing

    for data in ADMIN_MENUS:
        await ensure(data, MenuType.admin)
    for data in ADMIN_SUBMENUS:
        await ensure(data, MenuType.admin, parent=by_name[data["parent"]])
    for data in PUBLIC_MENUS:
        await ensure(data, MenuType.public)

    print(f"✅ Seeded menus ({created} new, {len(by_name)} total)")
    return by_name


async def seed_permissions(db: AsyncSession, menus: Dict[str, Menu]) -> None:
    """Insert the system permission catalog if missing."""
    repo = SqlPermissionRepository(db)
    created = 0

    for menu_name, permission_type, key, display_name in PERMISSIONS:
        if await repo.get_by_key(key) is not None:
            continue
        await repo.add(Permission(
            menu_id=menus[menu_name].id,
            permission_type=permission_type,
            permission_key=key,
            display_name=display_name,
            is_active=True,
            is_system_permission=True,
        ))
        created += 1

    print(f"✅ Seeded permissions ({created} new, {len(PERMISSIONS)} total)")
