"""Repository contracts for the authorization graph.

Services depend on these protocols only; ``backoffice.repositories.sql``
provides the SQLAlchemy implementation.
"""

from typing import Iterable, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from backoffice.models import (
    Menu, Permission, Role, RolePermission, SystemRole, User, UserRole, UserSubscription,
)


@runtime_checkable
class RoleRepository(Protocol):
    async def get_by_id(self, role_id: int) -> Optional[Role]: ...

    async def get_by_system_role(self, system_role: SystemRole) -> Optional[Role]: ...

    async def list_all(self, include_inactive: bool = False) -> List[Role]: ...

    async def add(self, role: Role) -> Role: ...

    async def update(self, role: Role) -> Role: ...


@runtime_checkable
class PermissionRepository(Protocol):
    async def get_by_id(self, permission_id: int) -> Optional[Permission]: ...

    async def get_by_key(self, permission_key: str) -> Optional[Permission]: ...

    async def get_by_keys(self, permission_keys: Iterable[str]) -> List[Permission]: ...

    async def get_by_ids(self, permission_ids: Iterable[int]) -> List[Permission]: ...

    async def list_all(self, include_inactive: bool = False) -> List[Permission]: ...

    async def get_user_permissions(self, user_id: int) -> List[Permission]:
        """Permissions reachable through active roles and granted edges.

        Only active permissions of active roles held through active
        assignments are returned.
        """
        ...

    async def add(self, permission: Permission) -> Permission: ...

    async def update(self, permission: Permission) -> Permission: ...


@runtime_checkable
class MenuRepository(Protocol):
    async def get_by_id(self, menu_id: int) -> Optional[Menu]: ...

    async def get_by_name(self, name: str) -> Optional[Menu]: ...

    async def list_all(self, include_inactive: bool = False) -> List[Menu]: ...

    async def add(self, menu: Menu) -> Menu: ...

    async def update(self, menu: Menu) -> Menu: ...


@runtime_checkable
class UserRoleRepository(Protocol):
    async def get(self, user_id: int, role_id: int) -> Optional[UserRole]: ...

    async def list_for_user(self, user_id: int, active_only: bool = True) -> List[UserRole]: ...

    async def get_active_system_roles(self, user_id: int) -> List[SystemRole]: ...

    async def activate(self, user_id: int, role_id: int, assigned_by: Optional[str]) -> UserRole:
        """Insert the assignment or reactivate the existing row.

        Must leave exactly one row per (user, role) even when called
        concurrently.
        """
        ...

    async def deactivate(self, user_id: int, role_id: int) -> bool: ...


@runtime_checkable
class RolePermissionRepository(Protocol):
    async def list_for_role(self, role_id: int, granted_only: bool = True) -> List[RolePermission]: ...

    async def replace_granted(
        self, role_id: int, permission_ids: Sequence[int], granted_by: Optional[str]
    ) -> None:
        """Make ``permission_ids`` the exact granted set of the role."""
        ...


@runtime_checkable
class UserRepository(Protocol):
    async def get_by_id(self, user_id: int) -> Optional[User]: ...

    async def list_page(
        self, offset: int, limit: int, search: Optional[str] = None
    ) -> Tuple[List[User], int]:
        """One page of users ordered by id, plus the total matching ``search``."""
        ...

    async def get_by_email(self, email: str) -> Optional[User]: ...

    async def add(self, user: User) -> User: ...

    async def update(self, user: User) -> User: ...


@runtime_checkable
class SubscriptionRepository(Protocol):
    async def get_active(self, user_id: int) -> Optional[UserSubscription]: ...

    async def list_for_user(self, user_id: int) -> List[UserSubscription]: ...

    async def add(self, subscription: UserSubscription) -> UserSubscription: ...

    async def update(self, subscription: UserSubscription) -> UserSubscription: ...
