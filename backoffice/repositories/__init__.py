"""Repository contracts and their SQLAlchemy implementations."""

from backoffice.repositories.base import (
    MenuRepository, PermissionRepository, RolePermissionRepository, RoleRepository,
    SubscriptionRepository, UserRepository, UserRoleRepository,
)
from backoffice.repositories.sql import (
    SqlMenuRepository, SqlPermissionRepository, SqlRolePermissionRepository,
    SqlRoleRepository, SqlSubscriptionRepository, SqlUserRepository, SqlUserRoleRepository,
)

__all__ = [
    "MenuRepository", "PermissionRepository", "RolePermissionRepository", "RoleRepository",
    "SubscriptionRepository", "UserRepository", "UserRoleRepository",
    "SqlMenuRepository", "SqlPermissionRepository", "SqlRolePermissionRepository",
    "SqlRoleRepository", "SqlSubscriptionRepository", "SqlUserRepository",
    "SqlUserRoleRepository",
]
