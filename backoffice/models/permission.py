"""Permission model and the role -> permission edge."""

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint, func,
)
from backoffice.db.base import Base
from backoffice.models.enums import PermissionType


class Permission(Base):
    """A grantable capability identified by a unique key such as ``users.view``."""
    __tablename__ = "permissions"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    menu_id = Column(Integer, ForeignKey("menus.id"), nullable=False, index=True)
    permission_type = Column(Enum(PermissionType), nullable=False)
    permission_key = Column(String(100), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_system_permission = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)


class RolePermission(Base):
    """Edge of the role -> permission graph.

    Edges are never deleted: revoking flips ``is_granted`` so the grant
    history stays auditable.
    """
    __tablename__ = "role_permissions"
    __mapper_args__ = {"eager_defaults": True}
    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    role_id = Column(Integer, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id = Column(Integer, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False)
    is_granted = Column(Boolean, default=True, nullable=False)
    granted_by = Column(String(255), nullable=True)
    granted_at = Column(DateTime, server_default=func.now(), nullable=False)
