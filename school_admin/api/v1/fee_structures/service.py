"""Fee structures service: one fee template per class (Admin only)."""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.api.v1.classes.service import get_class_by_id
from school_admin.core.exceptions import ConflictError, NotFoundError, ValidationError
from school_admin.core.ledger import FEE_COMPONENTS, sum_components, to_decimal
from school_admin.core.models import FeeAuditLog, FeeStructure, SchoolClass, Student

from .schemas import FeeStructureCreate, FeeStructureResponse, FeeStructureUpdate

logger = logging.getLogger(__name__)


def _fs_to_response(fs: FeeStructure, class_name: Optional[str] = None) -> FeeStructureResponse:
    return FeeStructureResponse(
        id=fs.id,
        class_id=fs.class_id,
        class_name=class_name,
        tuition_fee=to_decimal(fs.tuition_fee),
        lab_fee=to_decimal(fs.lab_fee),
        library_fee=to_decimal(fs.library_fee),
        sports_fee=to_decimal(fs.sports_fee),
        exam_fee=to_decimal(fs.exam_fee),
        other_fee=to_decimal(fs.other_fee),
        total_monthly_fee=to_decimal(fs.total_monthly_fee),
        created_at=fs.created_at,
        updated_at=fs.updated_at,
    )


def _snapshot(fs: FeeStructure) -> dict:
    data = {name: str(to_decimal(getattr(fs, name))) for name in FEE_COMPONENTS}
    data["total_monthly_fee"] = str(to_decimal(fs.total_monthly_fee))
    return data


async def list_fee_structures(db: AsyncSession) -> List[FeeStructureResponse]:
    rows = (
        await db.execute(
            select(FeeStructure, SchoolClass.name)
            .join(SchoolClass, FeeStructure.class_id == SchoolClass.id)
            .order_by(SchoolClass.name)
        )
    ).all()
    return [_fs_to_response(fs, name) for fs, name in rows]


async def get_fee_structure_by_class(
    db: AsyncSession,
    class_id: UUID,
) -> Optional[FeeStructureResponse]:
    row = (
        await db.execute(
            select(FeeStructure, SchoolClass.name)
            .join(SchoolClass, FeeStructure.class_id == SchoolClass.id)
            .where(FeeStructure.class_id == class_id)
        )
    ).first()
    if not row:
        return None
    fs, name = row
    return _fs_to_response(fs, name)


async def create_fee_structure(
    db: AsyncSession,
    payload: FeeStructureCreate,
    changed_by: Optional[UUID] = None,
) -> FeeStructureResponse:
    school_class = await get_class_by_id(db, payload.class_id, active_only=False)
    if not school_class:
        raise NotFoundError("Class not found")
    existing = (
        await db.execute(select(FeeStructure.id).where(FeeStructure.class_id == payload.class_id))
    ).scalar_one_or_none()
    if existing:
        raise ConflictError("Fee structure already exists for this class")
    try:
        fs = FeeStructure(
            class_id=payload.class_id,
            **{name: getattr(payload, name) for name in FEE_COMPONENTS},
        )
        fs.total_monthly_fee = sum_components(fs)
        db.add(fs)
        await db.flush()
        db.add(
            FeeAuditLog(
                reference_table="fee_structures",
                reference_id=fs.id,
                action_type="CREATE",
                new_value=_snapshot(fs),
                changed_by=changed_by,
            )
        )
        await db.commit()
        await db.refresh(fs)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Fee structure already exists for this class")
    logger.info("Created fee structure for class %s (total %s)", fs.class_id, fs.total_monthly_fee)
    return _fs_to_response(fs, school_class.name)


async def update_fee_structure(
    db: AsyncSession,
    class_id: UUID,
    payload: FeeStructureUpdate,
    changed_by: Optional[UUID] = None,
) -> Optional[FeeStructureResponse]:
    fs = (
        await db.execute(select(FeeStructure).where(FeeStructure.class_id == class_id))
    ).scalar_one_or_none()
    if not fs:
        return None
    old = _snapshot(fs)
    for name, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(fs, name, value)
    fs.total_monthly_fee = sum_components(fs)
    db.add(
        FeeAuditLog(
            reference_table="fee_structures",
            reference_id=fs.id,
            action_type="UPDATE",
            old_value=old,
            new_value=_snapshot(fs),
            changed_by=changed_by,
        )
    )
    await db.commit()
    logger.info("Updated fee structure for class %s (total %s)", class_id, fs.total_monthly_fee)
    return await get_fee_structure_by_class(db, class_id)


async def delete_fee_structure(
    db: AsyncSession,
    class_id: UUID,
    changed_by: Optional[UUID] = None,
) -> bool:
    fs = (
        await db.execute(select(FeeStructure).where(FeeStructure.class_id == class_id))
    ).scalar_one_or_none()
    if not fs:
        return False
    used = await db.execute(select(Student.id).where(Student.class_id == class_id).limit(1))
    if used.scalar_one_or_none() is not None:
        raise ValidationError("Cannot delete fee structure for a class with students")
    db.add(
        FeeAuditLog(
            reference_table="fee_structures",
            reference_id=fs.id,
            action_type="DELETE",
            old_value=_snapshot(fs),
            changed_by=changed_by,
        )
    )
    await db.delete(fs)
    await db.commit()
    logger.info("Deleted fee structure for class %s", class_id)
    return True
