"""Permissions API router — catalog management and permission checks."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import (
    Authorize, get_menu_repository, get_permission_repository, get_permission_resolver,
)
from backoffice.core.exceptions import (
    AuthorizationError, ResourceConflictError, ResourceNotFoundError, ValidationError,
)
from backoffice.db.session import get_db
from backoffice.models import Permission
from backoffice.repositories import SqlMenuRepository, SqlPermissionRepository
from backoffice.schemas.schemas import ApiResponse, PermissionCheckOut, PermissionCreate, PermissionOut
from backoffice.services.audit_service import audit_service
from backoffice.services.authorization import AuthContext, require_permission
from backoffice.services.permission_resolver import PermissionResolver

router = APIRouter(prefix="/permissions", tags=["permissions"])


@router.get("", response_model=ApiResponse[List[PermissionOut]])
async def list_permissions(
    include_inactive: bool = Query(False),
    permissions: SqlPermissionRepository = Depends(get_permission_repository),
    _: AuthContext = Depends(Authorize(require_permission("permissions.view"))),
):
    result = await permissions.list_all(include_inactive=include_inactive)
    return ApiResponse.ok([PermissionOut.model_validate(p) for p in result])


@router.get("/me", response_model=ApiResponse[List[str]])
async def my_permissions(
    resolver: PermissionResolver = Depends(get_permission_resolver),
    ctx: AuthContext = Depends(Authorize()),
):
    """Effective permission keys of the caller."""
    return ApiResponse.ok(sorted(await resolver.get_user_permission_keys(ctx.user_id)))


@router.get("/check", response_model=ApiResponse[PermissionCheckOut])
async def check_permission(
    key: str = Query(..., min_length=1),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    ctx: AuthContext = Depends(Authorize()),
):
    """Whether the caller holds ``key``; unknown keys answer ``false``."""
    granted = await resolver.has_permission(ctx.user_id, key)
    return ApiResponse.ok(PermissionCheckOut(permission_key=key, granted=granted))


@router.post("", response_model=ApiResponse[PermissionOut], status_code=201)
async def create_permission(
    body: PermissionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    permissions: SqlPermissionRepository = Depends(get_permission_repository),
    menus: SqlMenuRepository = Depends(get_menu_repository),
    ctx: AuthContext = Depends(Authorize(require_permission("permissions.create"))),
):
    """Add a permission to the catalog, attached to an active menu."""
    menu = await menus.get_by_id(body.menu_id)
    if menu is None or not menu.is_active:
        raise ValidationError(f"Menu {body.menu_id} does not exist or is inactive")
    if await permissions.get_by_key(body.permission_key) is not None:
        raise ResourceConflictError(f"Permission '{body.permission_key}' already exists")

    permission = await permissions.add(Permission(
        menu_id=body.menu_id,
        permission_type=body.permission_type,
        permission_key=body.permission_key,
        display_name=body.display_name,
        description=body.description,
        is_active=True,
        is_system_permission=body.is_system_permission,
    ))
    await audit_service.log_action(
        db, request, ctx,
        action="permission.created",
        resource_type="permission",
        resource_id=permission.id,
        new_value={"permission_key": permission.permission_key, "menu_id": permission.menu_id},
    )
    return ApiResponse.ok(PermissionOut.model_validate(permission), "Permission created")


@router.post("/{permission_id}/deactivate", response_model=ApiResponse[PermissionOut])
async def deactivate_permission(
    permission_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    permissions: SqlPermissionRepository = Depends(get_permission_repository),
    ctx: AuthContext = Depends(Authorize(require_permission("permissions.delete"))),
):
    """Soft-deactivate a permission. System permissions are protected."""
    permission = await permissions.get_by_id(permission_id)
    if permission is None:
        raise ResourceNotFoundError(f"Permission {permission_id} not found")
    if permission.is_system_permission:
        raise AuthorizationError(f"System permission '{permission.permission_key}' cannot be deactivated")

    permission.is_active = False
    await permissions.update(permission)
    await audit_service.log_action(
        db, request, ctx,
        action="permission.deactivated",
        resource_type="permission",
        resource_id=permission.id,
    )
    return ApiResponse.ok(PermissionOut.model_validate(permission), "Permission deactivated")
