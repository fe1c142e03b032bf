"""Content API router — learning modules gated by subscription plan."""

import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import Authorize
from backoffice.db.session import get_db
from backoffice.models import SubscriptionType, SystemRole
from backoffice.schemas.schemas import ApiResponse, ContentCreate, ContentOut
from backoffice.services.audit_service import audit_service
from backoffice.services.authorization import (
    AuthContext, require_permission, require_role, require_subscription,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["content"])

CONTENT_EDITORS = (SystemRole.content_manager, SystemRole.admin, SystemRole.super_admin)


def _module(name: str, plan: SubscriptionType) -> ContentOut:
    return ContentOut(module=name, required_plan=plan)


@router.get("/vocabulary", response_model=ApiResponse[ContentOut])
async def vocabulary_content(
    ctx: AuthContext = Depends(Authorize(require_subscription(SubscriptionType.vocabulary_only))),
):
    logger.info("User %s accessing vocabulary content", ctx.user_id)
    return ApiResponse.ok(_module("vocabulary", SubscriptionType.vocabulary_only))


@router.get("/ielts", response_model=ApiResponse[ContentOut])
async def ielts_content(
    ctx: AuthContext = Depends(Authorize(require_subscription(SubscriptionType.ielts_only))),
):
    logger.info("User %s accessing IELTS content", ctx.user_id)
    return ApiResponse.ok(_module("ielts", SubscriptionType.ielts_only))


@router.get("/premium", response_model=ApiResponse[ContentOut])
async def premium_content(
    ctx: AuthContext = Depends(Authorize(require_subscription(SubscriptionType.premium))),
):
    """Premium material; AllModules plans qualify as well."""
    logger.info("User %s accessing premium content", ctx.user_id)
    return ApiResponse.ok(_module("premium", SubscriptionType.premium))


async def _create(db: AsyncSession, request: Request, ctx: AuthContext, module: str, body: ContentCreate):
    await audit_service.log_action(
        db, request, ctx,
        action="content.created",
        resource_type="content",
        resource_id=module,
        new_value=body.model_dump(),
    )
    logger.info("User %s created %s content '%s'", ctx.user_id, module, body.title)
    return ApiResponse.ok(
        ContentOut(module=module, title=body.title, created_by=ctx.email),
        f"{module.capitalize()} content created",
    )


@router.post("/vocabulary", response_model=ApiResponse[ContentOut], status_code=201)
async def create_vocabulary_content(
    body: ContentCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(Authorize(
        require_role(*CONTENT_EDITORS), require_permission("content.create"),
    )),
):
    return await _create(db, request, ctx, "vocabulary", body)


@router.post("/ielts", response_model=ApiResponse[ContentOut], status_code=201)
async def create_ielts_content(
    body: ContentCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    ctx: AuthContext = Depends(Authorize(
        require_role(*CONTENT_EDITORS), require_permission("content.create"),
    )),
):
    return await _create(db, request, ctx, "ielts", body)
