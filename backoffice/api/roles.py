"""Roles API router — role lifecycle and permission sets."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import Authorize, get_role_administrator, get_role_repository
from backoffice.core.exceptions import ResourceConflictError, ResourceNotFoundError, ValidationError
from backoffice.db.session import get_db
from backoffice.repositories import SqlPermissionRepository, SqlRoleRepository
from backoffice.schemas.schemas import (
    ApiResponse, PermissionOut, RoleCreate, RoleOut, RolePermissionsUpdate, RoleUpdate,
)
from backoffice.services.audit_service import audit_service
from backoffice.services.authorization import AuthContext, require_permission
from backoffice.services.role_admin import RoleAdministrator

router = APIRouter(prefix="/roles", tags=["roles"])


async def _load_role(roles: SqlRoleRepository, role_id: int):
    role = await roles.get_by_id(role_id)
    if role is None:
        raise ResourceNotFoundError(f"Role {role_id} not found")
    return role


async def _check_permission_ids(db: AsyncSession, permission_ids: List[int]) -> None:
    known = {p.id for p in await SqlPermissionRepository(db).list_all()}
    unknown = sorted(set(permission_ids) - known)
    if unknown:
        raise ValidationError(f"Unknown or inactive permission ids: {unknown}")


@router.get("", response_model=ApiResponse[List[RoleOut]])
async def list_roles(
    include_inactive: bool = Query(False),
    roles: SqlRoleRepository = Depends(get_role_repository),
    _: AuthContext = Depends(Authorize(require_permission("roles.view"))),
):
    """List roles."""
    result = await roles.list_all(include_inactive=include_inactive)
    return ApiResponse.ok([RoleOut.model_validate(r) for r in result])


@router.get("/{role_id}", response_model=ApiResponse[RoleOut])
async def get_role(
    role_id: int,
    roles: SqlRoleRepository = Depends(get_role_repository),
    _: AuthContext = Depends(Authorize(require_permission("roles.view"))),
):
    role = await _load_role(roles, role_id)
    return ApiResponse.ok(RoleOut.model_validate(role))


@router.post("", response_model=ApiResponse[RoleOut], status_code=201)
async def create_role(
    body: RoleCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    roles: SqlRoleRepository = Depends(get_role_repository),
    administrator: RoleAdministrator = Depends(get_role_administrator),
    ctx: AuthContext = Depends(Authorize(require_permission("roles.create"))),
):
    """Create the role for a system role value with its initial permission set."""
    await _check_permission_ids(db, body.permission_ids)
    created = await administrator.create_role(
        body.name, body.system_role, body.permission_ids,
        created_by=ctx.email, description=body.description,
    )
    if not created:
        raise ResourceConflictError(f"Role {body.system_role.value} already exists")

    role = await roles.get_by_system_role(body.system_role)
    await audit_service.log_action(
        db, request, ctx,
        action="role.created",
        resource_type="role",
        resource_id=role.id,
        new_value={"name": role.name, "system_role": role.system_role.value,
                   "permission_ids": body.permission_ids},
    )
    return ApiResponse.ok(RoleOut.model_validate(role), "Role created")


@router.put("/{role_id}", response_model=ApiResponse[RoleOut])
async def update_role(
    role_id: int,
    body: RoleUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    roles: SqlRoleRepository = Depends(get_role_repository),
    ctx: AuthContext = Depends(Authorize(require_permission("roles.edit"))),
):
    """Rename a role or change its description."""
    role = await _load_role(roles, role_id)
    old = {"name": role.name, "description": role.description}

    if body.name is not None:
        role.name = body.name
    if body.description is not None:
        role.description = body.description
    await roles.update(role)

    await audit_service.log_action(
        db, request, ctx,
        action="role.updated",
        resource_type="role",
        resource_id=role.id,
        old_value=old,
        new_value={"name": role.name, "description": role.description},
    )
    return ApiResponse.ok(RoleOut.model_validate(role), "Role updated")


@router.get("/{role_id}/permissions", response_model=ApiResponse[List[PermissionOut]])
async def get_role_permissions(
    role_id: int,
    roles: SqlRoleRepository = Depends(get_role_repository),
    administrator: RoleAdministrator = Depends(get_role_administrator),
    _: AuthContext = Depends(Authorize(require_permission("roles.view"))),
):
    await _load_role(roles, role_id)
    permissions = await administrator.get_role_permissions(role_id)
    return ApiResponse.ok([PermissionOut.model_validate(p) for p in permissions])


@router.put("/{role_id}/permissions", response_model=ApiResponse[List[PermissionOut]])
async def replace_role_permissions(
    role_id: int,
    body: RolePermissionsUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    administrator: RoleAdministrator = Depends(get_role_administrator),
    ctx: AuthContext = Depends(Authorize(require_permission("roles.edit"))),
):
    """Replace the role's granted permission set."""
    await _check_permission_ids(db, body.permission_ids)
    before = [p.id for p in await administrator.get_role_permissions(role_id)]
    if not await administrator.update_role_permissions(role_id, body.permission_ids, granted_by=ctx.email):
        raise ResourceNotFoundError(f"Role {role_id} not found")

    permissions = await administrator.get_role_permissions(role_id)
    await audit_service.log_action(
        db, request, ctx,
        action="role.permissions_replaced",
        resource_type="role",
        resource_id=role_id,
        old_value={"permission_ids": before},
        new_value={"permission_ids": [p.id for p in permissions]},
    )
    return ApiResponse.ok([PermissionOut.model_validate(p) for p in permissions], "Permissions updated")


@router.post("/{role_id}/deactivate", response_model=ApiResponse[RoleOut])
async def deactivate_role(
    role_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    roles: SqlRoleRepository = Depends(get_role_repository),
    administrator: RoleAdministrator = Depends(get_role_administrator),
    ctx: AuthContext = Depends(Authorize(require_permission("roles.delete"))),
):
    """Soft-deactivate a role; its holders lose its permissions immediately."""
    if not await administrator.deactivate_role(role_id):
        raise ResourceNotFoundError(f"Role {role_id} not found")
    await audit_service.log_action(
        db, request, ctx,
        action="role.deactivated",
        resource_type="role",
        resource_id=role_id,
    )
    return ApiResponse.ok(RoleOut.model_validate(await roles.get_by_id(role_id)), "Role deactivated")


@router.post("/{role_id}/reactivate", response_model=ApiResponse[RoleOut])
async def reactivate_role(
    role_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    roles: SqlRoleRepository = Depends(get_role_repository),
    administrator: RoleAdministrator = Depends(get_role_administrator),
    ctx: AuthContext = Depends(Authorize(require_permission("roles.edit"))),
):
    if not await administrator.reactivate_role(role_id):
        raise ResourceNotFoundError(f"Role {role_id} not found")
    await audit_service.log_action(
        db, request, ctx,
        action="role.reactivated",
        resource_type="role",
        resource_id=role_id,
    )
    return ApiResponse.ok(RoleOut.model_validate(await roles.get_by_id(role_id)), "Role reactivated")
