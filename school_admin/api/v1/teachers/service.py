"""Teachers service: teacher accounts and class assignments (Admin), own classes (Teacher)."""

import logging
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.api.v1.classes.service import get_class_by_id
from school_admin.auth.models import TeacherProfile, User
from school_admin.auth.security import hash_password, validate_password_strength
from school_admin.core import clock
from school_admin.core.enums import Role, UserStatus
from school_admin.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from school_admin.core.models import SchoolClass, Student, TeacherClassAssignment

from .schemas import (
    ClassAssignmentCreate,
    ClassAssignmentResponse,
    MyClassResponse,
    RosterStudent,
    TeacherCreate,
    TeacherResponse,
    TeacherUpdate,
)

logger = logging.getLogger(__name__)


def _assignment_to_response(
    tca: TeacherClassAssignment,
    class_name: str,
    student_count: int = 0,
) -> ClassAssignmentResponse:
    return ClassAssignmentResponse(
        id=tca.id,
        teacher_id=tca.teacher_id,
        class_id=tca.class_id,
        class_name=class_name,
        subject=tca.subject,
        is_primary=tca.is_primary,
        student_count=student_count,
        created_at=tca.created_at,
    )


def _teacher_to_response(
    profile: TeacherProfile,
    user: User,
    assignments: Optional[List[ClassAssignmentResponse]] = None,
) -> TeacherResponse:
    return TeacherResponse(
        id=profile.id,
        user_id=user.id,
        name=user.full_name,
        email=user.email,
        status=user.status,
        employee_id=profile.employee_id,
        phone_number=profile.phone_number,
        address=profile.address,
        qualification=profile.qualification,
        joining_date=profile.joining_date,
        created_at=profile.created_at,
        assigned_classes=assignments or [],
    )


async def _assignments_for(
    db: AsyncSession,
    teacher_ids: List[UUID],
) -> Dict[UUID, List[ClassAssignmentResponse]]:
    if not teacher_ids:
        return {}
    count_subq = (
        select(Student.class_id, func.count(Student.id).label("student_count"))
        .where(Student.is_active.is_(True))
        .group_by(Student.class_id)
    ).subquery()
    rows = (
        await db.execute(
            select(
                TeacherClassAssignment,
                SchoolClass.name,
                func.coalesce(count_subq.c.student_count, 0),
            )
            .join(SchoolClass, TeacherClassAssignment.class_id == SchoolClass.id)
            .outerjoin(count_subq, count_subq.c.class_id == SchoolClass.id)
            .where(TeacherClassAssignment.teacher_id.in_(teacher_ids))
            .order_by(SchoolClass.name)
        )
    ).all()
    grouped: Dict[UUID, List[ClassAssignmentResponse]] = {}
    for tca, class_name, count in rows:
        grouped.setdefault(tca.teacher_id, []).append(_assignment_to_response(tca, class_name, count))
    return grouped


async def _get_profile_with_user(db: AsyncSession, teacher_id: UUID):
    return (
        await db.execute(
            select(TeacherProfile, User)
            .join(User, TeacherProfile.user_id == User.id)
            .where(TeacherProfile.id == teacher_id)
        )
    ).first()


async def list_teachers(db: AsyncSession) -> List[TeacherResponse]:
    rows = (
        await db.execute(
            select(TeacherProfile, User)
            .join(User, TeacherProfile.user_id == User.id)
            .order_by(User.full_name)
        )
    ).all()
    assignments = await _assignments_for(db, [p.id for p, _ in rows])
    return [_teacher_to_response(p, u, assignments.get(p.id)) for p, u in rows]


async def get_teacher(db: AsyncSession, teacher_id: UUID) -> TeacherResponse:
    row = await _get_profile_with_user(db, teacher_id)
    if not row:
        raise NotFoundError("Teacher not found")
    profile, user = row
    assignments = await _assignments_for(db, [profile.id])
    return _teacher_to_response(profile, user, assignments.get(profile.id))


async def create_teacher(db: AsyncSession, payload: TeacherCreate) -> TeacherResponse:
    problem = validate_password_strength(payload.password)
    if problem:
        raise ValidationError(problem)
    if (
        await db.execute(select(User.id).where(func.lower(User.email) == func.lower(payload.email)))
    ).scalar_one_or_none():
        raise ConflictError("User with this email already exists")
    if (
        await db.execute(select(TeacherProfile.id).where(TeacherProfile.employee_id == payload.employee_id.strip()))
    ).scalar_one_or_none():
        raise ConflictError("Employee ID already exists")

    try:
        user = User(
            email=payload.email,
            full_name=payload.name.strip(),
            password_hash=hash_password(payload.password),
            role=Role.TEACHER.value,
            status=UserStatus.ACTIVE.value,
        )
        profile = TeacherProfile(
            user=user,
            employee_id=payload.employee_id.strip(),
            phone_number=payload.phone_number.strip(),
            address=payload.address,
            qualification=payload.qualification,
            joining_date=payload.joining_date or clock.today(),
        )
        db.add_all([user, profile])
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User with this email or employee ID already exists")
    logger.info("Created teacher %s for user %s", profile.id, user.id)
    return _teacher_to_response(profile, user)


async def update_teacher(
    db: AsyncSession,
    teacher_id: UUID,
    payload: TeacherUpdate,
) -> TeacherResponse:
    row = await _get_profile_with_user(db, teacher_id)
    if not row:
        raise NotFoundError("Teacher not found")
    profile, user = row
    data = payload.model_dump(exclude_unset=True)
    if data.get("name") is not None:
        user.full_name = data["name"].strip()
    if data.get("email") is not None:
        user.email = data["email"]
    if data.get("is_active") is not None:
        user.status = UserStatus.ACTIVE.value if data["is_active"] else UserStatus.INACTIVE.value
    if data.get("phone_number") is not None:
        profile.phone_number = data["phone_number"].strip()
    for field in ("address", "qualification", "joining_date"):
        if field in data:
            setattr(profile, field, data[field])
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("User with this email already exists")
    return await get_teacher(db, teacher_id)


async def deactivate_teacher(db: AsyncSession, teacher_id: UUID) -> None:
    """Deactivates the login; assignments stay so history remains readable."""
    row = await _get_profile_with_user(db, teacher_id)
    if not row:
        raise NotFoundError("Teacher not found")
    _, user = row
    user.status = UserStatus.INACTIVE.value
    await db.commit()
    logger.info("Deactivated teacher %s", teacher_id)


# ----- Class assignments (Admin only) -----
async def assign_to_class(
    db: AsyncSession,
    teacher_id: UUID,
    payload: ClassAssignmentCreate,
) -> ClassAssignmentResponse:
    if not await db.get(TeacherProfile, teacher_id):
        raise NotFoundError("Teacher not found")
    school_class = await get_class_by_id(db, payload.class_id, active_only=False)
    if not school_class:
        raise NotFoundError("Class not found")
    existing = (
        await db.execute(
            select(TeacherClassAssignment.id).where(
                TeacherClassAssignment.teacher_id == teacher_id,
                TeacherClassAssignment.class_id == payload.class_id,
            )
        )
    ).scalar_one_or_none()
    if existing:
        raise ConflictError("Teacher is already assigned to this class")
    try:
        tca = TeacherClassAssignment(
            teacher_id=teacher_id,
            class_id=payload.class_id,
            subject=payload.subject,
            is_primary=payload.is_primary,
        )
        db.add(tca)
        await db.commit()
        await db.refresh(tca)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Teacher is already assigned to this class")
    logger.info("Assigned teacher %s to class %s", teacher_id, payload.class_id)
    return _assignment_to_response(tca, school_class.name)


async def remove_from_class(db: AsyncSession, teacher_id: UUID, class_id: UUID) -> None:
    tca = (
        await db.execute(
            select(TeacherClassAssignment).where(
                TeacherClassAssignment.teacher_id == teacher_id,
                TeacherClassAssignment.class_id == class_id,
            )
        )
    ).scalar_one_or_none()
    if not tca:
        raise NotFoundError("Teacher is not assigned to this class")
    await db.delete(tca)
    await db.commit()
    logger.info("Removed teacher %s from class %s", teacher_id, class_id)


async def get_assigned_classes(db: AsyncSession, teacher_id: UUID) -> List[ClassAssignmentResponse]:
    if not await db.get(TeacherProfile, teacher_id):
        raise NotFoundError("Teacher not found")
    return (await _assignments_for(db, [teacher_id])).get(teacher_id, [])


async def get_my_classes(db: AsyncSession, teacher_id: Optional[UUID]) -> List[MyClassResponse]:
    """Assignments of the calling teacher only, each with its active roster."""
    if teacher_id is None:
        raise ForbiddenError("Teacher profile not found")
    assignments = (await _assignments_for(db, [teacher_id])).get(teacher_id, [])
    class_ids = [a.class_id for a in assignments]
    rosters: Dict[UUID, List[RosterStudent]] = {}
    if class_ids:
        students = (
            await db.execute(
                select(Student)
                .where(Student.class_id.in_(class_ids), Student.is_active.is_(True))
                .order_by(Student.roll_number)
            )
        ).scalars().all()
        for s in students:
            rosters.setdefault(s.class_id, []).append(
                RosterStudent(id=s.id, name=s.name, roll_number=s.roll_number)
            )
    return [
        MyClassResponse(**a.model_dump(), students=rosters.get(a.class_id, []))
        for a in assignments
    ]
