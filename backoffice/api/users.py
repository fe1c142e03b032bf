"""Users API router — account listing, creation and status."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import Authorize, get_auth_service, get_permission_resolver
from backoffice.core.exceptions import ResourceNotFoundError, ValidationError
from backoffice.db.session import get_db
from backoffice.repositories import SqlUserRepository
from backoffice.schemas.schemas import ApiResponse, UserCreate, UserOut, UserPage
from backoffice.services.audit_service import audit_service
from backoffice.services.auth_service import AuthService
from backoffice.services.authorization import AuthContext, require_permission
from backoffice.services.permission_resolver import PermissionResolver

router = APIRouter(prefix="/users", tags=["users"])


async def load_profile(db: AsyncSession, resolver: PermissionResolver, user_id: int) -> UserOut:
    """User with effective roles and permission keys."""
    user = await SqlUserRepository(db).get_by_id(user_id)
    if user is None:
        raise ResourceNotFoundError(f"User {user_id} not found")
    profile = UserOut.model_validate(user)
    profile.roles = sorted(await resolver.get_user_roles(user_id), key=lambda r: r.value)
    profile.permissions = sorted(await resolver.get_user_permission_keys(user_id))
    return profile


@router.get("", response_model=ApiResponse[UserPage])
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = Query(None, min_length=1),
    auth: AuthService = Depends(get_auth_service),
    _: AuthContext = Depends(Authorize(require_permission("users.view"))),
):
    """List users, optionally matching ``search`` against email and name."""
    result = await auth.list_users(page, page_size, search)
    return ApiResponse.ok(UserPage(
        users=[UserOut.model_validate(u) for u in result["users"]],
        total=result["total"],
        page=result["page"],
        page_size=result["page_size"],
    ))


@router.get("/{user_id}", response_model=ApiResponse[UserOut])
async def get_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    _: AuthContext = Depends(Authorize(require_permission("users.view"))),
):
    return ApiResponse.ok(await load_profile(db, resolver, user_id))


@router.post("", response_model=ApiResponse[UserOut], status_code=201)
async def create_user(
    body: UserCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    ctx: AuthContext = Depends(Authorize(require_permission("users.create"))),
):
    """Create an account on behalf of someone, with an initial role."""
    user = await auth.register(
        body.email, body.password, body.full_name, role=body.system_role, assigned_by=ctx.email,
    )
    await audit_service.log_action(
        db, request, ctx,
        action="user.created",
        resource_type="user",
        resource_id=user.id,
        new_value={"email": user.email, "system_role": body.system_role.value},
    )
    return ApiResponse.ok(await load_profile(db, resolver, user.id), "User created")


async def _set_active(
    db: AsyncSession, request: Request, ctx: AuthContext, auth: AuthService, user_id: int, active: bool,
):
    user = await auth.set_user_active(user_id, active)
    if user is None:
        raise ResourceNotFoundError(f"User {user_id} not found")
    await audit_service.log_action(
        db, request, ctx,
        action="user.reactivated" if active else "user.deactivated",
        resource_type="user",
        resource_id=user_id,
        new_value={"is_active": active},
    )
    return user


@router.post("/{user_id}/deactivate", response_model=ApiResponse[UserOut])
async def deactivate_user(
    user_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    ctx: AuthContext = Depends(Authorize(require_permission("users.edit"))),
):
    """Block further logins. Issued tokens stay valid until they expire."""
    if user_id == ctx.user_id:
        raise ValidationError("You cannot deactivate your own account")
    user = await _set_active(db, request, ctx, auth, user_id, False)
    return ApiResponse.ok(UserOut.model_validate(user), "User deactivated")


@router.post("/{user_id}/reactivate", response_model=ApiResponse[UserOut])
async def reactivate_user(
    user_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    ctx: AuthContext = Depends(Authorize(require_permission("users.edit"))),
):
    user = await _set_active(db, request, ctx, auth, user_id, True)
    return ApiResponse.ok(UserOut.model_validate(user), "User reactivated")
