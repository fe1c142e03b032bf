"""Auth service — login, registration, passwords, and account status."""

import logging
from typing import Any, Dict, Optional

from backoffice.core.config import settings
from backoffice.core.exceptions import AuthenticationError, ResourceConflictError, ValidationError
from backoffice.core.security import TokenIssuer, hash_password, verify_password
from backoffice.db.base import utcnow
from backoffice.models import SystemRole, User
from backoffice.repositories.base import UserRepository
from backoffice.services.permission_resolver import PermissionResolver
from backoffice.services.role_admin import RoleAdministrator

logger = logging.getLogger(__name__)


class AuthService:
    """Handles authentication and self-registration.

    Password hashing and token signing are delegated to
    ``backoffice.core.security``.
    """

    def __init__(
        self,
        users: UserRepository,
        resolver: PermissionResolver,
        administrator: RoleAdministrator,
        issuer: TokenIssuer,
    ):
        self._users = users
        self._resolver = resolver
        self._administrator = administrator
        self._issuer = issuer

    async def authenticate(self, email: str, password: str) -> Dict[str, Any]:
        """Authenticate user and return an access token carrying role claims.

        Raises:
            AuthenticationError: If credentials are invalid.
        """
        user = await self._users.get_by_email(email)
        if not user or not user.hashed_password or not verify_password(password, user.hashed_password):
            raise AuthenticationError("Invalid email or password")

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")

        roles = sorted(role.value for role in await self._resolver.get_user_roles(user.id))
        access_token = self._issuer.issue(user.id, user.email, roles)

        user.last_login_at = utcnow()
        await self._users.update(user)
        logger.info("User %s logged in with roles %s", user.id, roles)

        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": settings.JWT_EXPIRY_MINUTES * 60,
            "user": {
                "id": user.id,
                "email": user.email,
                "full_name": user.full_name,
                "roles": roles,
            },
        }

    async def register(
        self,
        email: str,
        password: str,
        full_name: str,
        role: Optional[SystemRole] = None,
        assigned_by: str = "registration",
    ) -> User:
        """Create a local account with ``role`` (the default role when omitted)."""
        if await self._users.get_by_email(email):
            raise ResourceConflictError(f"User with email {email} already exists")

        user = await self._users.add(User(
            email=email,
            hashed_password=hash_password(password),
            full_name=full_name,
            is_active=True,
        ))

        role = role or SystemRole(settings.DEFAULT_USER_ROLE)
        if not await self._administrator.assign_role_to_user(user.id, role, assigned_by=assigned_by):
            logger.warning("Role %s missing or inactive; user %s has no role", role.value, user.id)
        return user

    async def list_users(self, page: int = 1, page_size: int = 20, search: Optional[str] = None) -> Dict[str, Any]:
        """List users with pagination."""
        users, total = await self._users.list_page((page - 1) * page_size, page_size, search)
        return {"users": users, "total": total, "page": page, "page_size": page_size}

    async def set_user_active(self, user_id: int, active: bool) -> Optional[User]:
        """Enable or disable login for a user; ``None`` when the user is unknown."""
        user = await self._users.get_by_id(user_id)
        if user is None:
            return None
        user.is_active = active
        await self._users.update(user)
        logger.info("User %s %s", user_id, "reactivated" if active else "deactivated")
        return user

    async def change_password(self, user_id: int, current_password: str, new_password: str) -> User:
        """Replace the password after checking the current one.

        Raises:
            AuthenticationError: If the account is missing or deactivated.
            ValidationError: If ``current_password`` does not match.
        """
        user = await self._users.get_by_id(user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Account not found or deactivated")
        if not user.hashed_password or not verify_password(current_password, user.hashed_password):
            raise ValidationError("Current password is incorrect")

        user.hashed_password = hash_password(new_password)
        await self._users.update(user)
        logger.info("User %s changed their password", user_id)
        return user
