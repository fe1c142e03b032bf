"""Role administration — role creation, permission sets, and user assignment."""

import logging
from contextlib import contextmanager
from typing import Iterable, List, Optional, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from backoffice.core.exceptions import PersistenceError
from backoffice.models import Permission, Role, SystemRole
from backoffice.repositories.base import (
    PermissionRepository, RolePermissionRepository, RoleRepository, UserRoleRepository,
)

logger = logging.getLogger(__name__)

PermissionRef = Union[Permission, int]


@contextmanager
def _surface_store_errors(action: str):
    """Administrative writes report store failures instead of masking them."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception("Failed to %s", action)
        raise PersistenceError(f"Failed to {action}") from e


def _permission_ids(permissions: Iterable[PermissionRef]) -> List[int]:
    ids = [p.id if isinstance(p, Permission) else int(p) for p in permissions]
    return list(dict.fromkeys(ids))


class RoleAdministrator:
    """Owns the role lifecycle and every UserRole row.

    Missing roles and duplicate creations are answered with ``False``;
    database failures raise ``PersistenceError``.
    """

    def __init__(
        self,
        roles: RoleRepository,
        role_permissions: RolePermissionRepository,
        user_roles: UserRoleRepository,
        permissions: PermissionRepository,
    ):
        self._roles = roles
        self._role_permissions = role_permissions
        self._user_roles = user_roles
        self._permissions = permissions

    async def create_role(
        self,
        name: str,
        system_role: SystemRole,
        permissions: Iterable[PermissionRef],
        created_by: Optional[str] = None,
        description: Optional[str] = None,
    ) -> bool:
        with _surface_store_errors(f"create role {name}"):
            if await self._roles.get_by_system_role(system_role) is not None:
                logger.warning("Role %s already exists", system_role.value)
                return False

            try:
                role = await self._roles.add(Role(
                    name=name,
                    system_role=system_role,
                    description=description or f"System role: {system_role.value}",
                    is_active=True,
                ))
            except IntegrityError:
                logger.warning("Role %s was created concurrently", system_role.value)
                return False

            permission_ids = _permission_ids(permissions)
            await self._role_permissions.replace_granted(role.id, permission_ids, created_by)

        logger.info("Role %s created with %s permissions", name, len(permission_ids))
        return True

    async def update_role_permissions(
        self,
        role_id: int,
        permissions: Iterable[PermissionRef],
        granted_by: Optional[str] = None,
    ) -> bool:
        """Replace the role's granted permission set.

        Edges leaving the set are revoked in place, so their rows and
        grant metadata remain for auditing.
        """
        with _surface_store_errors(f"update permissions of role {role_id}"):
            if await self._roles.get_by_id(role_id) is None:
                logger.warning("Role %s not found", role_id)
                return False
            permission_ids = _permission_ids(permissions)
            await self._role_permissions.replace_granted(role_id, permission_ids, granted_by)

        logger.info("Updated permissions for role %s (%s granted)", role_id, len(permission_ids))
        return True

    async def get_role_permissions(self, role_id: int) -> List[Permission]:
        with _surface_store_errors(f"load permissions of role {role_id}"):
            edges = await self._role_permissions.list_for_role(role_id)
            return await self._permissions.get_by_ids(rp.permission_id for rp in edges)

    async def set_role_active(self, role_id: int, active: bool) -> bool:
        with _surface_store_errors(f"change status of role {role_id}"):
            role = await self._roles.get_by_id(role_id)
            if role is None:
                return False
            role.is_active = active
            await self._roles.update(role)

        logger.info("Role %s %s", role_id, "reactivated" if active else "deactivated")
        return True

    async def deactivate_role(self, role_id: int) -> bool:
        return await self.set_role_active(role_id, False)

    async def reactivate_role(self, role_id: int) -> bool:
        return await self.set_role_active(role_id, True)

    async def assign_role_to_user(
        self, user_id: int, system_role: SystemRole, assigned_by: Optional[str]
    ) -> bool:
        """Grant ``system_role`` to the user; repeated calls are no-ops."""
        with _surface_store_errors(f"assign role {system_role.value} to user {user_id}"):
            role = await self._roles.get_by_system_role(system_role)
            if role is None or not role.is_active:
                logger.warning("Role %s not found or inactive", system_role.value)
                return False
            await self._user_roles.activate(user_id, role.id, assigned_by)

        logger.info(
            "Role %s assigned to user %s by %s", system_role.value, user_id, assigned_by,
        )
        return True

    async def remove_role_from_user(self, user_id: int, system_role: SystemRole) -> bool:
        with _surface_store_errors(f"remove role {system_role.value} from user {user_id}"):
            role = await self._roles.get_by_system_role(system_role)
            if role is None:
                return False
            removed = await self._user_roles.deactivate(user_id, role.id)

        if removed:
            logger.info("Role %s removed from user %s", system_role.value, user_id)
        return removed
