from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.exceptions import ConflictError, ValidationError
from school_admin.core.models import FeeStructure, SchoolClass, Student

from .schemas import ClassCreate, ClassResponse, ClassUpdate


def _class_to_response(
    c: SchoolClass,
    student_count: int = 0,
    total_monthly_fee=None,
) -> ClassResponse:
    return ClassResponse(
        id=c.id,
        name=c.name,
        description=c.description,
        is_active=c.is_active,
        student_count=student_count,
        total_monthly_fee=total_monthly_fee,
        created_at=c.created_at,
        updated_at=c.updated_at,
    )


async def _student_counts(db: AsyncSession, class_ids: List[UUID]) -> Dict[UUID, int]:
    if not class_ids:
        return {}
    rows = (
        await db.execute(
            select(Student.class_id, func.count(Student.id))
            .where(Student.class_id.in_(class_ids), Student.is_active.is_(True))
            .group_by(Student.class_id)
        )
    ).all()
    return {class_id: count for class_id, count in rows}


async def create_class(db: AsyncSession, payload: ClassCreate) -> ClassResponse:
    name = payload.name.strip()
    try:
        obj = SchoolClass(name=name, description=payload.description, is_active=True)
        db.add(obj)
        await db.commit()
        await db.refresh(obj)
        return _class_to_response(obj)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Class with this name already exists")


async def list_classes(
    db: AsyncSession,
    active_only: bool = True,
    include_fees: bool = True,
) -> List[ClassResponse]:
    stmt = select(SchoolClass, FeeStructure.total_monthly_fee).outerjoin(
        FeeStructure, FeeStructure.class_id == SchoolClass.id
    )
    if active_only:
        stmt = stmt.where(SchoolClass.is_active.is_(True))
    stmt = stmt.order_by(SchoolClass.name)
    rows = (await db.execute(stmt)).all()
    counts = await _student_counts(db, [c.id for c, _ in rows])
    return [
        _class_to_response(c, counts.get(c.id, 0), fee if include_fees else None)
        for c, fee in rows
    ]


async def get_class(
    db: AsyncSession,
    class_id: UUID,
    include_fees: bool = True,
) -> Optional[ClassResponse]:
    row = (
        await db.execute(
            select(SchoolClass, FeeStructure.total_monthly_fee)
            .outerjoin(FeeStructure, FeeStructure.class_id == SchoolClass.id)
            .where(SchoolClass.id == class_id)
        )
    ).first()
    if not row:
        return None
    obj, fee = row
    counts = await _student_counts(db, [obj.id])
    return _class_to_response(obj, counts.get(obj.id, 0), fee if include_fees else None)


async def update_class(
    db: AsyncSession,
    class_id: UUID,
    payload: ClassUpdate,
) -> Optional[ClassResponse]:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        return None
    if payload.name is not None:
        obj.name = payload.name.strip()
    if payload.description is not None:
        obj.description = payload.description
    if payload.is_active is not None:
        obj.is_active = payload.is_active
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Class with this name already exists")
    return await get_class(db, class_id)


async def delete_class(db: AsyncSession, class_id: UUID) -> bool:
    obj = await db.get(SchoolClass, class_id)
    if not obj:
        return False
    used = await db.execute(select(Student.id).where(Student.class_id == class_id).limit(1))
    if used.scalar_one_or_none() is not None:
        raise ValidationError(
            "Cannot delete class with enrolled students. Please reassign or remove students first."
        )
    await db.delete(obj)
    await db.commit()
    return True


async def get_class_by_id(
    db: AsyncSession,
    class_id: UUID,
    active_only: bool = True,
) -> Optional[SchoolClass]:
    stmt = select(SchoolClass).where(SchoolClass.id == class_id)
    if active_only:
        stmt = stmt.where(SchoolClass.is_active.is_(True))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()
