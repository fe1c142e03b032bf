"""Navigation menu model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Enum, func
from backoffice.db.base import Base
from backoffice.models.enums import MenuType


class Menu(Base):
    """Node of the navigation tree; ``parent_menu_id`` is NULL for roots."""
    __tablename__ = "menus"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False, index=True)
    display_name = Column(String(255), nullable=False)
    description = Column(String(500), nullable=True)
    icon = Column(String(100), nullable=True)
    route = Column(String(255), nullable=True)
    menu_type = Column(Enum(MenuType), default=MenuType.admin, nullable=False)
    parent_menu_id = Column(Integer, ForeignKey("menus.id"), nullable=True, index=True)
    sort_order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)
