"""Composable authorization gates.

A gate is an async predicate ``AuthContext -> Decision``. Protected
operations declare the gates they need and the invoking layer combines
them with ``all_of``; the first deny wins.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Protocol, Set

from fastapi import status

from backoffice.models import SubscriptionType, SystemRole

logger = logging.getLogger(__name__)


class DenyReason(str, enum.Enum):
    unauthenticated = "unauthenticated"
    forbidden = "forbidden"
    payment_required = "payment_required"

    @property
    def status_code(self) -> int:
        return {
            DenyReason.unauthenticated: status.HTTP_401_UNAUTHORIZED,
            DenyReason.forbidden: status.HTTP_403_FORBIDDEN,
            DenyReason.payment_required: status.HTTP_402_PAYMENT_REQUIRED,
        }[self]


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None
    message: str = ""

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenyReason, message: str) -> "Decision":
        return cls(allowed=False, reason=reason, message=message)

    def __bool__(self) -> bool:
        return self.allowed


class PermissionChecker(Protocol):
    async def has_permission(self, user_id: int, permission) -> bool: ...

    async def get_user_roles(self, user_id: int) -> Set[SystemRole]: ...


class SubscriptionChecker(Protocol):
    async def is_subscription_active(
        self, user_id: int, required_type: Optional[SubscriptionType] = None
    ) -> bool: ...


@dataclass
class AuthContext:
    """Identity of the caller plus the services gates consult."""

    user_id: Optional[int]
    permissions: PermissionChecker
    subscriptions: Optional[SubscriptionChecker] = None
    email: Optional[str] = None
    token_roles: tuple = ()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None


Gate = Callable[[AuthContext], Awaitable[Decision]]

_NOT_AUTHENTICATED = Decision.deny(DenyReason.unauthenticated, "Not authenticated")


def require_authenticated() -> Gate:
    async def gate(context: AuthContext) -> Decision:
        return Decision.allow() if context.is_authenticated else _NOT_AUTHENTICATED

    gate.__qualname__ = "require_authenticated"
    return gate


def require_permission(permission_key: str) -> Gate:
    async def gate(context: AuthContext) -> Decision:
        if not context.is_authenticated:
            return _NOT_AUTHENTICATED
        if await context.permissions.has_permission(context.user_id, permission_key):
            return Decision.allow()
        return Decision.deny(DenyReason.forbidden, f"Missing permission '{permission_key}'")

    gate.__qualname__ = f"require_permission({permission_key!r})"
    return gate


def require_role(*roles: SystemRole) -> Gate:
    """Allow when the caller holds at least one of ``roles`` (direct match only)."""
    required = frozenset(roles)

    async def gate(context: AuthContext) -> Decision:
        if not context.is_authenticated:
            return _NOT_AUTHENTICATED
        held = await context.permissions.get_user_roles(context.user_id)
        if required & set(held):
            return Decision.allow()
        names = ", ".join(sorted(r.value for r in required))
        return Decision.deny(DenyReason.forbidden, f"Requires one of roles: {names}")

    gate.__qualname__ = f"require_role({', '.join(r.value for r in roles)})"
    return gate


def require_subscription(required_type: Optional[SubscriptionType] = None) -> Gate:
    """Allow when the caller has an active plan covering ``required_type``.

    AllModules and Premium plans cover every specific type.
    """
    async def gate(context: AuthContext) -> Decision:
        if not context.is_authenticated:
            return _NOT_AUTHENTICATED
        if context.subscriptions is not None and await context.subscriptions.is_subscription_active(
            context.user_id, required_type
        ):
            return Decision.allow()
        return Decision.deny(DenyReason.payment_required, "Active subscription required")

    gate.__qualname__ = f"require_subscription({required_type.value if required_type else 'any'})"
    return gate


def all_of(*gates: Gate) -> Gate:
    """Logical AND of gates, evaluated in order and short-circuiting on deny."""
    async def gate(context: AuthContext) -> Decision:
        for inner in gates:
            decision = await inner(context)
            if not decision.allowed:
                logger.debug("Gate %s denied user %s: %s", inner.__qualname__, context.user_id, decision.message)
                return decision
        return Decision.allow()

    gate.__qualname__ = "all_of"
    return gate


async def authorize(context: AuthContext, gates: Iterable[Gate]) -> Decision:
    """Evaluate ``gates`` for ``context``; no gates means authenticated-only."""
    gates = list(gates) or [require_authenticated()]
    return await all_of(*gates)(context)
