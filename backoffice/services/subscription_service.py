"""Subscription service — learner plans used by the subscription gate."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from backoffice.core.exceptions import PersistenceError
from backoffice.db.base import utcnow
from backoffice.models import SubscriptionType, UserSubscription
from backoffice.models.enums import SUPERSET_SUBSCRIPTIONS
from backoffice.repositories.base import SubscriptionRepository

logger = logging.getLogger(__name__)


def satisfies(held: SubscriptionType, required: Optional[SubscriptionType]) -> bool:
    """Whether a held plan covers the required one (``None`` means any plan)."""
    if required is None:
        return True
    return held == required or held in SUPERSET_SUBSCRIPTIONS


class SubscriptionService:
    """Reads and manages a user's active subscription."""

    def __init__(self, subscriptions: SubscriptionRepository):
        self._subscriptions = subscriptions

    async def get_active_subscription(self, user_id: int) -> Optional[UserSubscription]:
        """Active subscription, expiring it first if its end date has passed."""
        try:
            subscription = await self._subscriptions.get_active(user_id)
            if subscription is not None and subscription.end_date < utcnow():
                subscription.is_active = False
                await self._subscriptions.update(subscription)
                logger.info("Subscription %s of user %s expired", subscription.id, user_id)
                return None
            return subscription
        except SQLAlchemyError:
            logger.exception("Error getting active subscription for user %s", user_id)
            return None

    async def is_subscription_active(
        self, user_id: int, required_type: Optional[SubscriptionType] = None
    ) -> bool:
        subscription = await self.get_active_subscription(user_id)
        if subscription is None or not subscription.is_active:
            return False
        return satisfies(subscription.subscription_type, required_type)

    async def get_history(self, user_id: int) -> List[UserSubscription]:
        try:
            return await self._subscriptions.list_for_user(user_id)
        except SQLAlchemyError:
            logger.exception("Error getting subscription history for user %s", user_id)
            return []

    async def create_subscription(
        self,
        user_id: int,
        subscription_type: SubscriptionType,
        amount: Decimal,
        end_date: datetime,
        payment_reference: Optional[str] = None,
    ) -> UserSubscription:
        """Start a new plan, closing the currently active one."""
        try:
            existing = await self._subscriptions.get_active(user_id)
            if existing is not None:
                existing.is_active = False
                await self._subscriptions.update(existing)

            subscription = await self._subscriptions.add(UserSubscription(
                user_id=user_id,
                subscription_type=subscription_type,
                start_date=utcnow(),
                end_date=end_date,
                amount=amount,
                payment_reference=payment_reference,
                is_active=True,
            ))
        except SQLAlchemyError as e:
            logger.exception("Error creating subscription for user %s", user_id)
            raise PersistenceError("Failed to create subscription") from e

        logger.info("Created subscription %s for user %s", subscription_type.value, user_id)
        return subscription

    async def cancel_subscription(self, user_id: int, reason: str) -> bool:
        try:
            subscription = await self._subscriptions.get_active(user_id)
            if subscription is None:
                return False
            subscription.is_active = False
            subscription.notes = f"Cancelled: {reason}"
            await self._subscriptions.update(subscription)
        except SQLAlchemyError as e:
            logger.exception("Error cancelling subscription for user %s", user_id)
            raise PersistenceError("Failed to cancel subscription") from e

        logger.info("Cancelled subscription for user %s. Reason: %s", user_id, reason)
        return True

    async def renew_subscription(self, user_id: int, new_end_date: datetime, amount: Decimal) -> bool:
        try:
            subscription = await self._subscriptions.get_active(user_id)
            if subscription is None:
                return False
            subscription.end_date = new_end_date
            subscription.amount = (subscription.amount or 0) + amount
            subscription.notes = f"Renewed on {utcnow():%Y-%m-%d}"
            await self._subscriptions.update(subscription)
        except SQLAlchemyError as e:
            logger.exception("Error renewing subscription for user %s", user_id)
            raise PersistenceError("Failed to renew subscription") from e

        logger.info("Renewed subscription for user %s until %s", user_id, new_end_date)
        return True
