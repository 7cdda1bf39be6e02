"""
Seed script to create the first ADMIN user.

Run once (after init_db) with env set:
  DEFAULT_ADMIN_EMAIL=admin@greenfield-school.com
  DEFAULT_ADMIN_PASSWORD=YourSecurePassword1

Creates:
- users: one user with role ADMIN (if email/password set and the user does not exist)
An existing user with that email is left untouched.
"""
import asyncio
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.models import User
from school_admin.auth.security import hash_password, validate_password_strength
from school_admin.core.config import settings
from school_admin.core.enums import Role, UserStatus
from school_admin.db.session import AsyncSessionLocal

DEFAULT_ADMIN_FULL_NAME = "Administrator"


async def seed_admin(
    db: AsyncSession,
    email: Optional[str] = None,
    password: Optional[str] = None,
) -> Optional[User]:
    """Returns the created admin, or None when nothing was created."""
    email = email or settings.default_admin_email
    password = password or settings.default_admin_password
    if not email or not password:
        print("No default admin email/password; skipping admin user.")
        return None

    problem = validate_password_strength(password)
    if problem:
        raise ValueError(f"Default admin password rejected: {problem}")

    existing = (
        await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    ).scalar_one_or_none()
    if existing:
        print("Admin user already exists:", email)
        return None

    admin = User(
        email=email,
        full_name=DEFAULT_ADMIN_FULL_NAME,
        password_hash=hash_password(password),
        role=Role.ADMIN.value,
        status=UserStatus.ACTIVE.value,
    )
    db.add(admin)
    await db.commit()
    print("Created ADMIN user:", email)
    return admin


async def main() -> None:
    async with AsyncSessionLocal() as db:
        try:
            await seed_admin(db)
        except Exception as e:
            await db.rollback()
            print("Error:", e)
            raise


if __name__ == "__main__":
    asyncio.run(main())
