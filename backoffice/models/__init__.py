"""Models package — import all models so metadata.create_all can discover them."""

from backoffice.models.enums import MenuType, PermissionType, SubscriptionType, SystemRole
from backoffice.models.user import User
from backoffice.models.role import Role
from backoffice.models.menu import Menu
from backoffice.models.permission import Permission, RolePermission
from backoffice.models.user_role import UserRole
from backoffice.models.subscription import UserSubscription
from backoffice.models.audit_log import AuditLog

__all__ = [
    "MenuType", "PermissionType", "SubscriptionType", "SystemRole",
    "User", "Role", "Menu", "Permission", "RolePermission",
    "UserRole", "UserSubscription", "AuditLog",
]
