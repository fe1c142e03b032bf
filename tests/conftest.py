"""Pytest configuration and fixtures for back-office tests."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backoffice.core.security import TokenIssuer, hash_password
from backoffice.db.base import Base
from backoffice.db.seeds.seed_menus import seed_menus, seed_permissions
from backoffice.db.seeds.seed_roles import seed_roles
from backoffice.models import User
from backoffice.repositories import (
    SqlPermissionRepository, SqlRolePermissionRepository, SqlRoleRepository,
    SqlSubscriptionRepository, SqlUserRepository, SqlUserRoleRepository,
)
from backoffice.services.permission_resolver import PermissionResolver
from backoffice.services.role_admin import RoleAdministrator
from backoffice.services.subscription_service import SubscriptionService


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def catalog(session):
    """Seeded menus and permissions, no roles."""
    menus = await seed_menus(session)
    await seed_permissions(session, menus)
    return menus


@pytest_asyncio.fixture
async def seeded(session, catalog):
    """Seeded menus, permissions, and the six system roles with their grants."""
    await seed_roles(session)
    return session


@pytest.fixture
def make_user(session):
    """Factory inserting a user; pass ``password`` to make it able to log in."""
    async def factory(email: str = "learner@example.com", full_name: str = "Test User", password: str = None):
        return await SqlUserRepository(session).add(User(
            email=email,
            full_name=full_name,
            hashed_password=hash_password(password) if password else None,
            is_active=True,
        ))
    return factory


@pytest.fixture
def resolver(session):
    return PermissionResolver(SqlUserRoleRepository(session), SqlPermissionRepository(session))


@pytest.fixture
def administrator(session):
    return RoleAdministrator(
        roles=SqlRoleRepository(session),
        role_permissions=SqlRolePermissionRepository(session),
        user_roles=SqlUserRoleRepository(session),
        permissions=SqlPermissionRepository(session),
    )


@pytest.fixture
def subscription_service(session):
    return SubscriptionService(SqlSubscriptionRepository(session))


@pytest.fixture
def issuer():
    return TokenIssuer(
        secret="test-secret-key-that-is-long-enough-for-hs256",
        issuer="StudyBridge",
        audience="StudyBridge-Users",
        expiry_minutes=60,
    )


@pytest.fixture
def store_error():
    """An infrastructure failure as raised by the database driver."""
    return OperationalError("SELECT 1", {}, Exception("database is unavailable"))


@pytest.fixture
def broken_repository(store_error):
    """Mock repository whose every call fails with a store error."""
    def factory():
        repository = AsyncMock()
        for name in (
            "get_by_id", "get_by_ids", "get_by_key", "get_by_keys", "get_by_system_role", "list_all",
            "get_user_permissions", "get_active_system_roles", "list_for_user",
            "get_active", "add", "update", "activate", "deactivate",
        ):
            setattr(repository, name, AsyncMock(side_effect=store_error))
        return repository
    return factory
