"""Request-scoped service providers and the authorization dependency."""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import forbidden, payment_required, unauthorized
from backoffice.core.security import security_scheme, token_issuer, TokenClaims
from backoffice.db.session import get_db
from backoffice.repositories import (
    SqlMenuRepository, SqlPermissionRepository, SqlRolePermissionRepository,
    SqlRoleRepository, SqlSubscriptionRepository, SqlUserRepository, SqlUserRoleRepository,
)
from backoffice.services.auth_service import AuthService
from backoffice.services.authorization import AuthContext, DenyReason, Gate, authorize
from backoffice.services.permission_resolver import PermissionResolver
from backoffice.services.role_admin import RoleAdministrator
from backoffice.services.subscription_service import SubscriptionService


def get_permission_resolver(db: AsyncSession = Depends(get_db)) -> PermissionResolver:
    return PermissionResolver(SqlUserRoleRepository(db), SqlPermissionRepository(db))


def get_role_administrator(db: AsyncSession = Depends(get_db)) -> RoleAdministrator:
    return RoleAdministrator(
        roles=SqlRoleRepository(db),
        role_permissions=SqlRolePermissionRepository(db),
        user_roles=SqlUserRoleRepository(db),
        permissions=SqlPermissionRepository(db),
    )


def get_subscription_service(db: AsyncSession = Depends(get_db)) -> SubscriptionService:
    return SubscriptionService(SqlSubscriptionRepository(db))


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    administrator: RoleAdministrator = Depends(get_role_administrator),
) -> AuthService:
    return AuthService(SqlUserRepository(db), resolver, administrator, token_issuer)


def get_menu_repository(db: AsyncSession = Depends(get_db)) -> SqlMenuRepository:
    return SqlMenuRepository(db)


def get_permission_repository(db: AsyncSession = Depends(get_db)) -> SqlPermissionRepository:
    return SqlPermissionRepository(db)


def get_role_repository(db: AsyncSession = Depends(get_db)) -> SqlRoleRepository:
    return SqlRoleRepository(db)


def _claims(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[TokenClaims]:
    if credentials is None:
        return None
    return token_issuer.decode(credentials.credentials)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> int:
    """Extract user_id from the JWT Bearer token."""
    claims = _claims(credentials)
    if claims is None:
        raise unauthorized("Invalid or expired token")
    return claims.user_id


_DENIALS = {
    DenyReason.unauthenticated: unauthorized,
    DenyReason.forbidden: forbidden,
    DenyReason.payment_required: payment_required,
}


class Authorize:
    """Dependency that evaluates authorization gates for the caller.

    Usage::

        @router.get("/roles", dependencies=[Depends(Authorize(require_permission("roles.view")))])

    With no gates the caller only needs a valid token.
    """

    def __init__(self, *gates: Gate):
        self.gates = gates

    async def __call__(
        self,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
        resolver: PermissionResolver = Depends(get_permission_resolver),
        subscriptions: SubscriptionService = Depends(get_subscription_service),
    ) -> AuthContext:
        claims = _claims(credentials)
        context = AuthContext(
            user_id=claims.user_id if claims else None,
            permissions=resolver,
            subscriptions=subscriptions,
            email=claims.email if claims else None,
            token_roles=claims.roles if claims else (),
        )

        decision = await authorize(context, self.gates)
        if not decision.allowed:
            raise _DENIALS[decision.reason](decision.message)
        return context
