"""Menus API router — navigation tree management and the per-user menu."""

from types import SimpleNamespace
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import (
    Authorize, get_menu_repository, get_permission_repository, get_permission_resolver,
)
from backoffice.core.exceptions import ResourceConflictError, ResourceNotFoundError, ValidationError
from backoffice.db.session import get_db
from backoffice.models import Menu, MenuType
from backoffice.repositories import SqlMenuRepository, SqlPermissionRepository
from backoffice.schemas.schemas import ApiResponse, MenuCreate, MenuNodeOut, MenuOut, MenuUpdate
from backoffice.services.audit_service import audit_service
from backoffice.services.authorization import AuthContext, require_permission
from backoffice.services.menu_tree import find_cycle, menu_tree_builder, validate_parent
from backoffice.services.permission_resolver import PermissionResolver

router = APIRouter(prefix="/menus", tags=["menus"])


async def _load_menu(menus: SqlMenuRepository, menu_id: int) -> Menu:
    menu = await menus.get_by_id(menu_id)
    if menu is None:
        raise ResourceNotFoundError(f"Menu {menu_id} not found")
    return menu


@router.get("/me", response_model=ApiResponse[List[MenuNodeOut]])
async def my_menus(
    menu_type: Optional[MenuType] = Query(None),
    menus: SqlMenuRepository = Depends(get_menu_repository),
    permissions: SqlPermissionRepository = Depends(get_permission_repository),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    ctx: AuthContext = Depends(Authorize()),
):
    """Navigation tree pruned to what the caller may act on."""
    snapshot = await menus.list_all()
    if menu_type is not None:
        snapshot = [m for m in snapshot if m.menu_type == menu_type]
    tree = menu_tree_builder.build_tree(snapshot, await permissions.list_all())
    keys = await resolver.get_user_permission_keys(ctx.user_id)
    visible = menu_tree_builder.filter_by_permissions(tree, keys)
    return ApiResponse.ok([MenuNodeOut.from_node(node) for node in visible])


@router.get("/tree", response_model=ApiResponse[List[MenuNodeOut]])
async def menu_tree(
    menus: SqlMenuRepository = Depends(get_menu_repository),
    permissions: SqlPermissionRepository = Depends(get_permission_repository),
    _: AuthContext = Depends(Authorize(require_permission("system.view"))),
):
    """Full, unfiltered navigation tree."""
    tree = menu_tree_builder.build_tree(await menus.list_all(), await permissions.list_all())
    return ApiResponse.ok([MenuNodeOut.from_node(node) for node in tree])


@router.get("", response_model=ApiResponse[List[MenuOut]])
async def list_menus(
    include_inactive: bool = Query(False),
    menus: SqlMenuRepository = Depends(get_menu_repository),
    _: AuthContext = Depends(Authorize(require_permission("system.view"))),
):
    result = await menus.list_all(include_inactive=include_inactive)
    return ApiResponse.ok([MenuOut.model_validate(m) for m in result])


@router.get("/{menu_id}", response_model=ApiResponse[MenuOut])
async def get_menu(
    menu_id: int,
    menus: SqlMenuRepository = Depends(get_menu_repository),
    _: AuthContext = Depends(Authorize(require_permission("system.view"))),
):
    return ApiResponse.ok(MenuOut.model_validate(await _load_menu(menus, menu_id)))


@router.post("", response_model=ApiResponse[MenuOut], status_code=201)
async def create_menu(
    body: MenuCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    menus: SqlMenuRepository = Depends(get_menu_repository),
    ctx: AuthContext = Depends(Authorize(require_permission("system.manage"))),
):
    if await menus.get_by_name(body.name) is not None:
        raise ResourceConflictError(f"Menu '{body.name}' already exists")
    validate_parent(None, body.parent_menu_id, await menus.list_all())

    menu = await menus.add(Menu(**body.model_dump(), is_active=True))
    await audit_service.log_action(
        db, request, ctx,
        action="menu.created",
        resource_type="menu",
        resource_id=menu.id,
        new_value=body.model_dump(mode="json"),
    )
    return ApiResponse.ok(MenuOut.model_validate(menu), "Menu created")


@router.put("/{menu_id}", response_model=ApiResponse[MenuOut])
async def update_menu(
    menu_id: int,
    body: MenuUpdate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    menus: SqlMenuRepository = Depends(get_menu_repository),
    ctx: AuthContext = Depends(Authorize(require_permission("system.manage"))),
):
    """Partial update; re-parenting is checked against the active tree."""
    menu = await _load_menu(menus, menu_id)
    changes = body.model_dump(exclude_unset=True)

    if "parent_menu_id" in changes:
        snapshot = await menus.list_all()
        validate_parent(menu_id, changes["parent_menu_id"], snapshot)
        proposed = [
            SimpleNamespace(
                id=m.id,
                parent_menu_id=changes["parent_menu_id"] if m.id == menu_id else m.parent_menu_id,
            )
            for m in snapshot
        ]
        cycle = find_cycle(proposed)
        if cycle:
            raise ValidationError(f"Re-parenting would create a cycle: {cycle}")

    for field, value in changes.items():
        if value is not None or field == "parent_menu_id":
            setattr(menu, field, value)
    await menus.update(menu)

    await audit_service.log_action(
        db, request, ctx,
        action="menu.updated",
        resource_type="menu",
        resource_id=menu.id,
        new_value=body.model_dump(mode="json", exclude_unset=True),
    )
    return ApiResponse.ok(MenuOut.model_validate(menu), "Menu updated")


@router.post("/{menu_id}/deactivate", response_model=ApiResponse[MenuOut])
async def deactivate_menu(
    menu_id: int,
    request: Request,
    db: AsyncSession = Depends(get_db),
    menus: SqlMenuRepository = Depends(get_menu_repository),
    ctx: AuthContext = Depends(Authorize(require_permission("system.manage"))),
):
    """Soft-deactivate a menu; refused while it still has active children."""
    menu = await _load_menu(menus, menu_id)
    children = [m for m in await menus.list_all() if m.parent_menu_id == menu_id]
    if children:
        raise ValidationError(
            f"Menu {menu_id} has active children: {sorted(m.name for m in children)}"
        )

    menu.is_active = False
    await menus.update(menu)
    await audit_service.log_action(
        db, request, ctx,
        action="menu.deactivated",
        resource_type="menu",
        resource_id=menu.id,
    )
    return ApiResponse.ok(MenuOut.model_validate(menu), "Menu deactivated")
