"""Seed the super-admin user from env vars."""

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import settings
from backoffice.core.security import hash_password
from backoffice.db.seeds.seed_roles import role_administrator
from backoffice.models import SystemRole, User
from backoffice.repositories import SqlUserRepository


async def seed_super_admin(db: AsyncSession) -> None:
    """Create the super-admin user if not already present and grant SuperAdmin."""
    users = SqlUserRepository(db)

    admin = await users.get_by_email(settings.SUPER_ADMIN_EMAIL)
    if admin:
        print(f"ℹ️  Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, skipping.")
    else:
        admin = await users.add(User(
            email=settings.SUPER_ADMIN_EMAIL,
            hashed_password=hash_password(settings.SUPER_ADMIN_PASSWORD),
            full_name="System Administrator",
            is_active=True,
        ))
        print(f"✅ Created super admin: {settings.SUPER_ADMIN_EMAIL}")

    if not await role_administrator(db).assign_role_to_user(admin.id, SystemRole.super_admin, assigned_by="seed"):
        print("⚠️  SuperAdmin role not found. Run seed_roles first.")
