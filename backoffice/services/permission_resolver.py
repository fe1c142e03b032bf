"""Permission resolver — effective roles and permissions of a user.

Every query here is fail-closed: a store failure is logged and answered
with an empty result, never raised to the caller.
"""

import logging
from typing import FrozenSet, List, Set, Union

from sqlalchemy.exc import SQLAlchemyError

from backoffice.models import Permission, SystemRole
from backoffice.repositories.base import PermissionRepository, UserRoleRepository

logger = logging.getLogger(__name__)


class PermissionResolver:
    """Computes a user's effective role set and permission set.

    A role contributes exactly the permissions explicitly granted to it;
    there is no inheritance between roles.
    """

    def __init__(self, user_roles: UserRoleRepository, permissions: PermissionRepository):
        self._user_roles = user_roles
        self._permissions = permissions

    async def get_user_roles(self, user_id: int) -> Set[SystemRole]:
        try:
            return set(await self._user_roles.get_active_system_roles(user_id))
        except SQLAlchemyError:
            logger.exception("Error getting roles for user %s", user_id)
            return set()

    async def get_user_permissions(self, user_id: int) -> List[Permission]:
        """Union of granted, active permissions over the user's active roles."""
        try:
            rows = await self._permissions.get_user_permissions(user_id)
        except SQLAlchemyError:
            logger.exception("Error getting permissions for user %s", user_id)
            return []

        unique = {}
        for permission in rows:
            unique.setdefault(permission.id, permission)
        return list(unique.values())

    async def get_user_permission_keys(self, user_id: int) -> FrozenSet[str]:
        return frozenset(p.permission_key for p in await self.get_user_permissions(user_id))

    async def has_permission(self, user_id: int, permission: Union[str, Permission]) -> bool:
        if isinstance(permission, Permission):
            target = permission
        else:
            try:
                target = await self._permissions.get_by_key(permission)
            except SQLAlchemyError:
                logger.exception("Error resolving permission key %r", permission)
                return False
            if target is None:
                logger.info("Unknown permission key %r checked for user %s", permission, user_id)
                return False

        granted = await self.get_user_permissions(user_id)
        return any(p.id == target.id for p in granted)
