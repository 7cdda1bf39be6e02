import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from school_admin.auth.models import TeacherProfile, User
from school_admin.auth.schemas import (
    AssignedClassInfo,
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    RegisterUserRequest,
    TeacherProfileInfo,
    UserInfo,
)
from school_admin.auth.security import (
    create_access_token,
    hash_password,
    validate_password_strength,
    verify_password,
)
from school_admin.core import clock
from school_admin.core.enums import Role, UserStatus
from school_admin.core.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from school_admin.core.models import SchoolClass, TeacherClassAssignment

logger = logging.getLogger(__name__)


def user_to_info(user: User) -> UserInfo:
    profile = user.teacher_profile
    return UserInfo(
        id=user.id,
        name=user.full_name,
        email=user.email,
        role=Role(user.role),
        status=user.status,
        teacher=TeacherProfileInfo.model_validate(profile) if profile else None,
    )


async def _load_user(db: AsyncSession, user_id: UUID) -> Optional[User]:
    result = await db.execute(
        select(User).options(selectinload(User.teacher_profile)).where(User.id == user_id)
    )
    return result.scalar_one_or_none()


async def login_user(db: AsyncSession, payload: LoginRequest) -> LoginResponse:
    # 1. Find user by email (case-insensitive)
    user_stmt = (
        select(User)
        .options(selectinload(User.teacher_profile))
        .where(func.lower(User.email) == func.lower(payload.email))
    )
    user: Optional[User] = (await db.execute(user_stmt)).scalar_one_or_none()
    if not user:
        raise UnauthorizedError("Invalid email or password")

    # 2. Deactivated accounts cannot log in
    if user.status != UserStatus.ACTIVE.value:
        raise UnauthorizedError("Your account has been deactivated. Please contact administrator.")

    # 3. Verify password hash
    if not verify_password(payload.password, user.password_hash):
        raise UnauthorizedError("Invalid email or password")

    issued_at = clock.utcnow()
    access_token = create_access_token(
        subject={
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
            "iat": int(issued_at.timestamp()),
        }
    )
    logger.info("User %s logged in", user.id)
    return LoginResponse(
        access_token=access_token,
        user=user_to_info(user),
        issued_at=issued_at,
    )


async def get_profile(db: AsyncSession, user_id: UUID) -> ProfileResponse:
    user = await _load_user(db, user_id)
    if not user:
        raise NotFoundError("User not found")
    info = user_to_info(user)
    assigned: List[AssignedClassInfo] = []
    if user.teacher_profile:
        rows = (
            await db.execute(
                select(TeacherClassAssignment, SchoolClass.name)
                .join(SchoolClass, TeacherClassAssignment.class_id == SchoolClass.id)
                .where(TeacherClassAssignment.teacher_id == user.teacher_profile.id)
                .order_by(SchoolClass.name)
            )
        ).all()
        assigned = [
            AssignedClassInfo(
                class_id=tca.class_id,
                class_name=class_name,
                subject=tca.subject,
                is_primary=tca.is_primary,
            )
            for tca, class_name in rows
        ]
    return ProfileResponse(**info.model_dump(), assigned_classes=assigned)


async def change_password(
    db: AsyncSession,
    user_id: UUID,
    payload: ChangePasswordRequest,
) -> None:
    problem = validate_password_strength(payload.new_password)
    if problem:
        raise ValidationError(problem)
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if not verify_password(payload.current_password, user.password_hash):
        raise UnauthorizedError("Current password is incorrect")
    user.password_hash = hash_password(payload.new_password)
    await db.commit()
    logger.info("Password changed for user %s", user_id)


async def create_user(
    db: AsyncSession,
    payload: RegisterUserRequest,
) -> UserInfo:
    """Create an ADMIN or TEACHER login, optionally with a teacher profile."""
    problem = validate_password_strength(payload.password)
    if problem:
        raise ValidationError(problem)

    existing = (
        await db.execute(select(User.id).where(func.lower(User.email) == func.lower(payload.email)))
    ).scalar_one_or_none()
    if existing:
        raise ConflictError("User with this email already exists")

    if payload.teacher is not None:
        dup_employee = (
            await db.execute(
                select(TeacherProfile.id).where(TeacherProfile.employee_id == payload.teacher.employee_id)
            )
        ).scalar_one_or_none()
        if dup_employee:
            raise ConflictError("Employee ID already exists")

    try:
        user = User(
            email=payload.email,
            full_name=payload.name.strip(),
            password_hash=hash_password(payload.password),
            role=payload.role.value,
            status=UserStatus.ACTIVE.value,
        )
        if payload.teacher is not None:
            user.teacher_profile = TeacherProfile(
                employee_id=payload.teacher.employee_id.strip(),
                phone_number=payload.teacher.phone_number.strip(),
                address=payload.teacher.address,
                qualification=payload.teacher.qualification,
                joining_date=payload.teacher.joining_date or clock.today(),
            )
        db.add(user)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User with this email or employee ID already exists")

    created = await _load_user(db, user.id)
    logger.info("Created %s user %s", created.role, created.id)
    return user_to_info(created)
