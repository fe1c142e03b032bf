"""FastAPI main application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backoffice.core.config import settings
from backoffice.core.middleware import RequestIdFilter, setup_middleware
from backoffice.core.exceptions import BackofficeError
from backoffice.db.session import engine
from backoffice.schemas.schemas import ApiResponse

from backoffice.api.auth import router as auth_router
from backoffice.api.roles import router as roles_router
from backoffice.api.permissions import router as permissions_router
from backoffice.api.menus import router as menus_router
from backoffice.api.user_roles import router as user_roles_router
from backoffice.api.users import router as users_router
from backoffice.api.content import router as content_router
from backoffice.api.subscriptions import router as subscriptions_router
from backoffice.api.admin import router as admin_router

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
)
for handler in logging.getLogger().handlers:
    handler.addFilter(RequestIdFilter())
logger = logging.getLogger("backoffice")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    logger.info("🚀 Starting %s", settings.APP_NAME)
    yield
    await engine.dispose()
    logger.info("🔻 Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title="StudyBridge Back Office API",
    description="Role, permission and navigation management for the StudyBridge back office",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Middleware
setup_middleware(app)


# Exception handler for back-office errors
@app.exception_handler(BackofficeError)
async def backoffice_exception_handler(request: Request, exc: BackofficeError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.fail(exc.message).model_dump(),
    )

# Register routers
app.include_router(auth_router, prefix="/api")
app.include_router(roles_router, prefix="/api")
app.include_router(permissions_router, prefix="/api")
app.include_router(menus_router, prefix="/api")
app.include_router(users_router, prefix="/api")
app.include_router(user_roles_router, prefix="/api")
app.include_router(subscriptions_router, prefix="/api")
app.include_router(content_router, prefix="/api")
app.include_router(admin_router, prefix="/api")


@app.get("/")
async def root():
    return {
        "name": settings.APP_NAME,
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/api/health")
async def health():
    """Quick health check endpoint."""
    return {"status": "ok"}
