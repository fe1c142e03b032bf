"""Learner subscription model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, Numeric, func
from backoffice.db.base import Base
from backoffice.models.enums import SubscriptionType


class UserSubscription(Base):
    """A paid (or free) plan; at most one row per user is active."""
    __tablename__ = "user_subscriptions"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_type = Column(Enum(SubscriptionType), nullable=False)
    start_date = Column(DateTime, server_default=func.now(), nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    amount = Column(Numeric(10, 2), default=0, nullable=False)
    payment_reference = Column(String(255), nullable=True)
    notes = Column(String(500), nullable=True)
