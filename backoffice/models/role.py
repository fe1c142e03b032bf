"""Role model for RBAC."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Enum, func
from backoffice.db.base import Base
from backoffice.models.enums import SystemRole


class Role(Base):
    """System role; permissions are attached through RolePermission edges."""
    __tablename__ = "roles"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    system_role = Column(Enum(SystemRole), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
