"""User -> role assignment model."""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, func,
)
from backoffice.db.base import Base


class UserRole(Base):
    """Assignment of a role to a user; removal flips ``is_active``."""
    __tablename__ = "user_roles"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_user_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    assigned_by = Column(String(255), nullable=True)
    assigned_at = Column(DateTime, server_default=func.now(), nullable=False)
