"""User roles API router — assigning and removing roles."""

from typing import List

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import Authorize, get_role_administrator
from backoffice.core.exceptions import ResourceNotFoundError, ValidationError
from backoffice.db.session import get_db
from backoffice.models import SystemRole
from backoffice.repositories import SqlRoleRepository, SqlUserRepository, SqlUserRoleRepository
from backoffice.schemas.schemas import ApiResponse, AssignRoleRequest, UserRoleOut
from backoffice.services.audit_service import audit_service
from backoffice.services.authorization import AuthContext, require_permission
from backoffice.services.role_admin import RoleAdministrator

router = APIRouter(prefix="/users/{user_id}/roles", tags=["user-roles"])


async def _require_user(db: AsyncSession, user_id: int) -> None:
    if await SqlUserRepository(db).get_by_id(user_id) is None:
        raise ResourceNotFoundError(f"User {user_id} not found")


async def _user_roles(db: AsyncSession, user_id: int, active_only: bool) -> List[UserRoleOut]:
    roles = {r.id: r for r in await SqlRoleRepository(db).list_all(include_inactive=True)}
    rows = await SqlUserRoleRepository(db).list_for_user(user_id, active_only=active_only)
    return [
        UserRoleOut(
            role_id=row.role_id,
            system_role=roles[row.role_id].system_role,
            is_active=row.is_active,
            assigned_by=row.assigned_by,
            assigned_at=row.assigned_at,
        )
        for row in rows
        if row.role_id in roles
    ]


@router.get("", response_model=ApiResponse[List[UserRoleOut]])
async def list_user_roles(
    user_id: int,
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _: AuthContext = Depends(Authorize(require_permission("users.view"))),
):
    await _require_user(db, user_id)
    return ApiResponse.ok(await _user_roles(db, user_id, active_only=not include_inactive))


@router.post("", response_model=ApiResponse[List[UserRoleOut]])
async def assign_role(
    user_id: int,
    body: AssignRoleRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    administrator: RoleAdministrator = Depends(get_role_administrator),
    ctx: AuthContext = Depends(Authorize(require_permission("users.edit"))),
):
    """Assign a role; assigning a role the user already holds is a no-op."""
    await _require_user(db, user_id)
    if not await administrator.assign_role_to_user(user_id, body.system_role, assigned_by=ctx.email):
        raise ValidationError(f"Role {body.system_role.value} does not exist or is inactive")

    await audit_service.log_action(
        db, request, ctx,
        action="user_role.assigned",
        resource_type="user_role",
        resource_id=user_id,
        new_value={"system_role": body.system_role.value},
    )
    return ApiResponse.ok(await _user_roles(db, user_id, active_only=True), "Role assigned")


@router.delete("/{system_role}", response_model=ApiResponse[List[UserRoleOut]])
async def remove_role(
    user_id: int,
    system_role: SystemRole,
    request: Request,
    db: AsyncSession = Depends(get_db),
    administrator: RoleAdministrator = Depends(get_role_administrator),
    ctx: AuthContext = Depends(Authorize(require_permission("users.edit"))),
):
    if not await administrator.remove_role_from_user(user_id, system_role):
        raise ResourceNotFoundError(f"User {user_id} does not hold role {system_role.value}")

    await audit_service.log_action(
        db, request, ctx,
        action="user_role.removed",
        resource_type="user_role",
        resource_id=user_id,
        old_value={"system_role": system_role.value},
    )
    return ApiResponse.ok(await _user_roles(db, user_id, active_only=True), "Role removed")
