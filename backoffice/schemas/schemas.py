"""Pydantic schemas for API request/response serialization."""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any, Generic, TypeVar
from datetime import datetime
from decimal import Decimal

from backoffice.models.enums import MenuType, PermissionType, SubscriptionType, SystemRole

T = TypeVar("T")


# ---- Envelope ----
class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    errors: List[str] = []

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None) -> "ApiResponse":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, message: str, errors: Optional[List[str]] = None) -> "ApiResponse":
        return cls(success=False, message=message, errors=errors or [message])


# ---- Auth ----
class LoginRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=4)

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: Optional[Dict[str, Any]] = None

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=4)
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=1)

class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)


# ---- User ----
class UserOut(BaseModel):
    id: int
    email: str
    full_name: str
    is_active: bool = True
    roles: List[SystemRole] = []
    permissions: List[str] = []
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserCreate(RegisterRequest):
    system_role: SystemRole = SystemRole.user

class UserPage(BaseModel):
    users: List[UserOut]
    total: int
    page: int
    page_size: int


# ---- Role ----
class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    system_role: SystemRole
    description: Optional[str] = None
    permission_ids: List[int] = []

class RoleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None

class RolePermissionsUpdate(BaseModel):
    permission_ids: List[int]

class RoleOut(BaseModel):
    id: int
    name: str
    system_role: SystemRole
    description: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Permission ----
class PermissionCreate(BaseModel):
    menu_id: int
    permission_type: PermissionType
    permission_key: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_-]+(\.[a-z0-9_-]+)+$")
    display_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_system_permission: bool = False

class PermissionOut(BaseModel):
    id: int
    menu_id: int
    permission_type: PermissionType
    permission_key: str
    display_name: str
    description: Optional[str] = None
    is_active: bool
    is_system_permission: bool

    class Config:
        from_attributes = True

class PermissionCheckOut(BaseModel):
    permission_key: str
    granted: bool


# ---- Menu ----
class MenuCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1)
    description: Optional[str] = None
    icon: Optional[str] = None
    route: Optional[str] = None
    menu_type: MenuType = MenuType.admin
    parent_menu_id: Optional[int] = None
    sort_order: int = 0

class MenuUpdate(BaseModel):
    """Partial update; an explicit ``parent_menu_id: null`` makes the menu a root."""
    display_name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    route: Optional[str] = None
    menu_type: Optional[MenuType] = None
    parent_menu_id: Optional[int] = None
    sort_order: Optional[int] = None

class MenuOut(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    route: Optional[str] = None
    menu_type: MenuType
    parent_menu_id: Optional[int] = None
    sort_order: int
    is_active: bool

    class Config:
        from_attributes = True

class MenuNodeOut(BaseModel):
    id: int
    name: str
    display_name: str
    icon: Optional[str] = None
    route: Optional[str] = None
    menu_type: MenuType
    sort_order: int
    permissions: List[str] = []
    children: List["MenuNodeOut"] = []

    @classmethod
    def from_node(cls, node) -> "MenuNodeOut":
        menu = node.menu
        return cls(
            id=menu.id,
            name=menu.name,
            display_name=menu.display_name,
            icon=menu.icon,
            route=menu.route,
            menu_type=menu.menu_type,
            sort_order=menu.sort_order or 0,
            permissions=list(node.permission_keys),
            children=[cls.from_node(child) for child in node.children],
        )


# ---- User roles ----
class AssignRoleRequest(BaseModel):
    system_role: SystemRole

class UserRoleOut(BaseModel):
    role_id: int
    system_role: SystemRole
    is_active: bool
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None


# ---- Subscription ----
class SubscriptionCreate(BaseModel):
    user_id: int
    subscription_type: SubscriptionType
    amount: Decimal = Field(Decimal("0"), ge=0)
    end_date: datetime
    payment_reference: Optional[str] = None

class SubscriptionCancel(BaseModel):
    reason: str = Field(..., min_length=1, max_length=400)

class SubscriptionRenew(BaseModel):
    end_date: datetime
    amount: Decimal = Field(Decimal("0"), ge=0)

class SubscriptionOut(BaseModel):
    id: int
    user_id: int
    subscription_type: SubscriptionType
    start_date: datetime
    end_date: datetime
    is_active: bool
    amount: Decimal
    payment_reference: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True


# ---- Audit ----
class AuditLogOut(BaseModel):
    id: int
    actor_id: Optional[int] = None
    actor_email: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ---- Content ----
class ContentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    content: str = Field(..., min_length=1)

class ContentOut(BaseModel):
    module: str
    required_plan: Optional[SubscriptionType] = None
    title: Optional[str] = None
    created_by: Optional[str] = None
