"""Subscriptions API router — learner plans."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import Authorize, get_subscription_service
from backoffice.core.exceptions import ResourceNotFoundError
from backoffice.db.session import get_db
from backoffice.repositories import SqlUserRepository
from backoffice.schemas.schemas import (
    ApiResponse, SubscriptionCancel, SubscriptionCreate, SubscriptionOut, SubscriptionRenew,
)
from backoffice.services.audit_service import audit_service
from backoffice.services.authorization import AuthContext, require_permission
from backoffice.services.subscription_service import SubscriptionService

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("/me", response_model=ApiResponse[Optional[SubscriptionOut]])
async def my_subscription(
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    ctx: AuthContext = Depends(Authorize()),
):
    """The caller's active plan, or ``null``."""
    subscription = await subscriptions.get_active_subscription(ctx.user_id)
    return ApiResponse.ok(SubscriptionOut.model_validate(subscription) if subscription else None)


@router.get("/users/{user_id}", response_model=ApiResponse[List[SubscriptionOut]])
async def subscription_history(
    user_id: int,
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    _: AuthContext = Depends(Authorize(require_permission("financials.view"))),
):
    history = await subscriptions.get_history(user_id)
    return ApiResponse.ok([SubscriptionOut.model_validate(s) for s in history])


@router.post("", response_model=ApiResponse[SubscriptionOut], status_code=201)
async def create_subscription(
    body: SubscriptionCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    ctx: AuthContext = Depends(Authorize(require_permission("financials.manage"))),
):
    """Start a plan for a user, closing the one currently active."""
    if await SqlUserRepository(db).get_by_id(body.user_id) is None:
        raise ResourceNotFoundError(f"User {body.user_id} not found")

    subscription = await subscriptions.create_subscription(
        body.user_id, body.subscription_type, body.amount, body.end_date, body.payment_reference,
    )
    await audit_service.log_action(
        db, request, ctx,
        action="subscription.created",
        resource_type="subscription",
        resource_id=subscription.id,
        new_value=body.model_dump(mode="json"),
    )
    return ApiResponse.ok(SubscriptionOut.model_validate(subscription), "Subscription created")


@router.post("/users/{user_id}/cancel", response_model=ApiResponse[None])
async def cancel_subscription(
    user_id: int,
    body: SubscriptionCancel,
    request: Request,
    db: AsyncSession = Depends(get_db),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    ctx: AuthContext = Depends(Authorize(require_permission("financials.manage"))),
):
    if not await subscriptions.cancel_subscription(user_id, body.reason):
        raise ResourceNotFoundError(f"User {user_id} has no active subscription")

    await audit_service.log_action(
        db, request, ctx,
        action="subscription.cancelled",
        resource_type="subscription",
        resource_id=user_id,
        new_value={"reason": body.reason},
    )
    return ApiResponse.ok(message="Subscription cancelled")


@router.post("/users/{user_id}/renew", response_model=ApiResponse[SubscriptionOut])
async def renew_subscription(
    user_id: int,
    body: SubscriptionRenew,
    request: Request,
    db: AsyncSession = Depends(get_db),
    subscriptions: SubscriptionService = Depends(get_subscription_service),
    ctx: AuthContext = Depends(Authorize(require_permission("financials.manage"))),
):
    """Extend the active plan and add the payment to its amount."""
    if not await subscriptions.renew_subscription(user_id, body.end_date, body.amount):
        raise ResourceNotFoundError(f"User {user_id} has no active subscription")

    await audit_service.log_action(
        db, request, ctx,
        action="subscription.renewed",
        resource_type="subscription",
        resource_id=user_id,
        new_value=body.model_dump(mode="json"),
    )
    subscription = await subscriptions.get_active_subscription(user_id)
    return ApiResponse.ok(SubscriptionOut.model_validate(subscription), "Subscription renewed")
