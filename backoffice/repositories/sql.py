"""SQLAlchemy (async) implementations of the repository contracts."""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import ResourceConflictError
from backoffice.db.base import utcnow
from backoffice.models import (
    Menu, Permission, Role, RolePermission, SystemRole, User, UserRole, UserSubscription,
)

logger = logging.getLogger(__name__)


class _SqlRepository:
    """Shared session plumbing; every write flushes but never commits."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _save(self, entity):
        self._session.add(entity)
        await self._session.flush()
        return entity


class SqlRoleRepository(_SqlRepository):

    async def get_by_id(self, role_id: int) -> Optional[Role]:
        return await self._session.get(Role, role_id)

    async def get_by_system_role(self, system_role: SystemRole) -> Optional[Role]:
        result = await self._session.execute(
            select(Role).where(Role.system_role == system_role)
        )
        return result.scalar_one_or_none()

    async def list_all(self, include_inactive: bool = False) -> List[Role]:
        stmt = select(Role).order_by(Role.id)
        if not include_inactive:
            stmt = stmt.where(Role.is_active.is_(True))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, role: Role) -> Role:
        # A duplicate system_role rolls back only this savepoint.
        async with self._session.begin_nested():
            self._session.add(role)
        return role

    async def update(self, role: Role) -> Role:
        return await self._save(role)


class SqlPermissionRepository(_SqlRepository):

    async def get_by_id(self, permission_id: int) -> Optional[Permission]:
        return await self._session.get(Permission, permission_id)

    async def get_by_key(self, permission_key: str) -> Optional[Permission]:
        result = await self._session.execute(
            select(Permission).where(Permission.permission_key == permission_key)
        )
        return result.scalar_one_or_none()

    async def get_by_keys(self, permission_keys: Iterable[str]) -> List[Permission]:
        keys = list(dict.fromkeys(permission_keys))
        if not keys:
            return []
        result = await self._session.execute(
            select(Permission).where(Permission.permission_key.in_(keys))
        )
        return list(result.scalars().all())

    async def get_by_ids(self, permission_ids: Iterable[int]) -> List[Permission]:
        ids = list(dict.fromkeys(permission_ids))
        if not ids:
            return []
        result = await self._session.execute(
            select(Permission).where(Permission.id.in_(ids)).order_by(Permission.permission_key)
        )
        return list(result.scalars().all())

    async def list_all(self, include_inactive: bool = False) -> List[Permission]:
        stmt = select(Permission).order_by(Permission.permission_key)
        if not include_inactive:
            stmt = stmt.where(Permission.is_active.is_(True))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_user_permissions(self, user_id: int) -> List[Permission]:
        stmt = (
            select(Permission)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .join(Role, Role.id == RolePermission.role_id)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(
                UserRole.user_id == user_id,
                UserRole.is_active.is_(True),
                Role.is_active.is_(True),
                RolePermission.is_granted.is_(True),
                Permission.is_active.is_(True),
            )
            .distinct()
            .order_by(Permission.permission_key)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, permission: Permission) -> Permission:
        return await self._save(permission)

    async def update(self, permission: Permission) -> Permission:
        return await self._save(permission)


class SqlMenuRepository(_SqlRepository):

    async def get_by_id(self, menu_id: int) -> Optional[Menu]:
        return await self._session.get(Menu, menu_id)

    async def get_by_name(self, name: str) -> Optional[Menu]:
        result = await self._session.execute(select(Menu).where(Menu.name == name))
        return result.scalar_one_or_none()

    async def list_all(self, include_inactive: bool = False) -> List[Menu]:
        stmt = select(Menu).order_by(Menu.sort_order, Menu.name)
        if not include_inactive:
            stmt = stmt.where(Menu.is_active.is_(True))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def add(self, menu: Menu) -> Menu:
        return await self._save(menu)

    async def update(self, menu: Menu) -> Menu:
        return await self._save(menu)


class SqlUserRoleRepository(_SqlRepository):

    MAX_ACTIVATE_ATTEMPTS = 3

    async def get(self, user_id: int, role_id: int) -> Optional[UserRole]:
        result = await self._session.execute(
            select(UserRole)
            .where(UserRole.user_id == user_id, UserRole.role_id == role_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int, active_only: bool = True) -> List[UserRole]:
        stmt = select(UserRole).where(UserRole.user_id == user_id).order_by(UserRole.role_id)
        if active_only:
            stmt = stmt.where(UserRole.is_active.is_(True))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_active_system_roles(self, user_id: int) -> List[SystemRole]:
        result = await self._session.execute(
            select(Role.system_role)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(
                UserRole.user_id == user_id,
                UserRole.is_active.is_(True),
                Role.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def activate(self, user_id: int, role_id: int, assigned_by: Optional[str]) -> UserRole:
        for attempt in range(1, self.MAX_ACTIVATE_ATTEMPTS + 1):
            # Reactivate a soft-deleted row in place.
            result = await self._session.execute(
                update(UserRole)
                .where(
                    UserRole.user_id == user_id,
                    UserRole.role_id == role_id,
                    UserRole.is_active.is_(False),
                )
                .values(is_active=True, assigned_by=assigned_by, assigned_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount:
                return await self.get(user_id, role_id)

            existing = await self.get(user_id, role_id)
            if existing is not None:
                return existing

            user_role = UserRole(
                user_id=user_id,
                role_id=role_id,
                is_active=True,
                assigned_by=assigned_by,
                assigned_at=utcnow(),
            )
            try:
                async with self._session.begin_nested():
                    self._session.add(user_role)
                return user_role
            except IntegrityError:
                # Another request inserted the same pair between our read and write.
                logger.info(
                    "Concurrent assignment of role %s to user %s (attempt %s), retrying",
                    role_id, user_id, attempt,
                )

        raise ResourceConflictError(
            f"Could not assign role {role_id} to user {user_id} after "
            f"{self.MAX_ACTIVATE_ATTEMPTS} attempts"
        )

    async def deactivate(self, user_id: int, role_id: int) -> bool:
        user_role = await self.get(user_id, role_id)
        if user_role is None:
            return False
        user_role.is_active = False
        await self._session.flush()
        return True


class SqlRolePermissionRepository(_SqlRepository):

    async def list_for_role(self, role_id: int, granted_only: bool = True) -> List[RolePermission]:
        stmt = select(RolePermission).where(RolePermission.role_id == role_id)
        if granted_only:
            stmt = stmt.where(RolePermission.is_granted.is_(True))
        result = await self._session.execute(stmt.order_by(RolePermission.permission_id))
        return list(result.scalars().all())

    async def replace_granted(
        self, role_id: int, permission_ids: Sequence[int], granted_by: Optional[str]
    ) -> None:
        wanted = set(permission_ids)
        existing = {
            rp.permission_id: rp
            for rp in await self.list_for_role(role_id, granted_only=False)
        }
        now = utcnow()

        for permission_id, edge in existing.items():
            if permission_id in wanted:
                if not edge.is_granted:
                    edge.is_granted = True
                    edge.granted_by = granted_by
                    edge.granted_at = now
            elif edge.is_granted:
                edge.is_granted = False

        self._session.add_all([
            RolePermission(
                role_id=role_id,
                permission_id=permission_id,
                is_granted=True,
                granted_by=granted_by,
                granted_at=now,
            )
            for permission_id in sorted(wanted - existing.keys())
        ])
        await self._session.flush()


class SqlUserRepository(_SqlRepository):

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return await self._session.get(User, user_id)

    async def list_page(
        self, offset: int, limit: int, search: Optional[str] = None
    ) -> Tuple[List[User], int]:
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(or_(User.email.ilike(pattern), User.full_name.ilike(pattern)))

        total = await self._session.scalar(select(func.count(User.id)).where(*filters))
        result = await self._session.execute(
            select(User).where(*filters).order_by(User.id).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self._session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def add(self, user: User) -> User:
        return await self._save(user)

    async def update(self, user: User) -> User:
        return await self._save(user)


class SqlSubscriptionRepository(_SqlRepository):

    async def get_active(self, user_id: int) -> Optional[UserSubscription]:
        result = await self._session.execute(
            select(UserSubscription)
            .where(UserSubscription.user_id == user_id, UserSubscription.is_active.is_(True))
            .order_by(UserSubscription.end_date.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: int) -> List[UserSubscription]:
        result = await self._session.execute(
            select(UserSubscription)
            .where(UserSubscription.user_id == user_id)
            .order_by(UserSubscription.start_date.desc())
        )
        return list(result.scalars().all())

    async def add(self, subscription: UserSubscription) -> UserSubscription:
        return await self._save(subscription)

    async def update(self, subscription: UserSubscription) -> UserSubscription:
        return await self._save(subscription)
