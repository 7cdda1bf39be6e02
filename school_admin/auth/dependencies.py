import logging
from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.auth.models import User
from school_admin.auth.schemas import CurrentUser
from school_admin.core.config import settings
from school_admin.core.enums import Role, UserStatus
from school_admin.core.exceptions import UnauthorizedError
from school_admin.db.session import get_db

logger = logging.getLogger(__name__)

# auto_error=False so a missing header goes through UnauthorizedError like every other auth failure
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth", auto_error=False)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user from the access token. Fails closed."""
    if not token:
        raise UnauthorizedError("No token provided. Please login first.")

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")

    user_id_str = payload.get("sub")
    if not user_id_str:
        raise UnauthorizedError("Invalid or expired token")
    try:
        user_id = UUID(user_id_str)
    except ValueError:
        raise UnauthorizedError("Invalid or expired token")

    stmt = select(User).options(selectinload(User.teacher_profile)).where(User.id == user_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if not user or user.status != UserStatus.ACTIVE.value:
        logger.warning("Rejected token for missing or inactive user %s", user_id)
        raise UnauthorizedError("User not found or inactive")

    try:
        role = Role(user.role)
    except ValueError:
        raise UnauthorizedError("User has an unknown role")

    return CurrentUser(
        id=user.id,
        email=user.email,
        name=user.full_name,
        role=role,
        teacher_id=user.teacher_profile.id if user.teacher_profile else None,
    )
