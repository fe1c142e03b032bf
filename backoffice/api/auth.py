"""Auth API router — login, register, me, change-password."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps import get_auth_service, get_current_user_id, get_permission_resolver
from backoffice.api.users import load_profile
from backoffice.db.session import get_db
from backoffice.schemas.schemas import (
    ApiResponse, ChangePasswordRequest, LoginRequest, RegisterRequest, TokenResponse, UserOut,
)
from backoffice.services.audit_service import audit_service, client_details
from backoffice.services.auth_service import AuthService
from backoffice.services.permission_resolver import PermissionResolver

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Authenticate and return a JWT access token."""
    result = await auth.authenticate(body.email, body.password)
    user_id = result["user"]["id"]
    await audit_service.log(
        db, "user.login", "user", user_id,
        actor_id=user_id,
        actor_email=body.email,
        **client_details(request),
    )
    return ApiResponse.ok(TokenResponse(**result), "Login successful")


@router.post("/register", response_model=ApiResponse[UserOut], status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    resolver: PermissionResolver = Depends(get_permission_resolver),
):
    """Register a new user with the default role."""
    user = await auth.register(body.email, body.password, body.full_name)
    return ApiResponse.ok(await load_profile(db, resolver, user.id), "User registered")


@router.get("/me", response_model=ApiResponse[UserOut])
async def get_me(
    db: AsyncSession = Depends(get_db),
    resolver: PermissionResolver = Depends(get_permission_resolver),
    user_id: int = Depends(get_current_user_id),
):
    """Current user profile with effective roles and permissions."""
    return ApiResponse.ok(await load_profile(db, resolver, user_id))


@router.post("/change-password", response_model=ApiResponse[None])
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    user_id: int = Depends(get_current_user_id),
):
    user = await auth.change_password(user_id, body.current_password, body.new_password)
    await audit_service.log(
        db, "user.password_changed", "user", user_id,
        actor_id=user_id,
        actor_email=user.email,
        **client_details(request),
    )
    return ApiResponse.ok(message="Password changed")
