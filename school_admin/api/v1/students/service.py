import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.api.v1.classes.service import get_class_by_id
from school_admin.core import clock
from school_admin.core.enums import MONTHS
from school_admin.core.exceptions import ConflictError, NotFoundError, ValidationError
from school_admin.core.ledger import RECURRING_COMPONENTS, sum_components, to_decimal
from school_admin.core.models import FeeRecord, FeeStructure, SchoolClass, Student

from .schemas import (
    StudentCreate,
    StudentDetailResponse,
    StudentFeeRecordSummary,
    StudentResponse,
    StudentUpdate,
)

logger = logging.getLogger(__name__)


def _student_to_response(
    s: Student,
    class_name: Optional[str] = None,
    include_fees: bool = True,
) -> StudentResponse:
    fees = {}
    if include_fees:
        fees = {name: to_decimal(getattr(s, name)) for name in RECURRING_COMPONENTS}
        fees["total_monthly_fee"] = sum_components(s, RECURRING_COMPONENTS)
    return StudentResponse(
        id=s.id,
        roll_number=s.roll_number,
        name=s.name,
        father_name=s.father_name,
        date_of_birth=s.date_of_birth,
        class_id=s.class_id,
        class_name=class_name,
        phone_number=s.phone_number,
        address=s.address,
        admission_date=s.admission_date,
        is_active=s.is_active,
        created_at=s.created_at,
        updated_at=s.updated_at,
        **fees,
    )


async def _load_with_class(db: AsyncSession, student_id: UUID):
    return (
        await db.execute(
            select(Student, SchoolClass.name)
            .join(SchoolClass, Student.class_id == SchoolClass.id)
            .where(Student.id == student_id)
        )
    ).first()


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    if not await get_class_by_id(db, payload.class_id):
        raise NotFoundError("Class not found")

    roll_number = payload.roll_number.strip()
    existing = (
        await db.execute(select(Student.id).where(Student.roll_number == roll_number))
    ).scalar_one_or_none()
    if existing:
        raise ConflictError("Student with this roll number already exists")

    structure = (
        await db.execute(select(FeeStructure).where(FeeStructure.class_id == payload.class_id))
    ).scalar_one_or_none()
    fees = {}
    for name in RECURRING_COMPONENTS:
        value = getattr(payload, name)
        if value is None:
            value = getattr(structure, name) if structure else None
        fees[name] = to_decimal(value)

    try:
        student = Student(
            roll_number=roll_number,
            name=payload.name.strip(),
            father_name=payload.father_name,
            date_of_birth=payload.date_of_birth,
            class_id=payload.class_id,
            phone_number=payload.phone_number,
            address=payload.address,
            admission_date=payload.admission_date or clock.today(),
            is_active=True,
            **fees,
        )
        db.add(student)
        await db.commit()
        await db.refresh(student)
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Student with this roll number already exists")
    logger.info("Created student %s (roll %s)", student.id, student.roll_number)
    row = await _load_with_class(db, student.id)
    return _student_to_response(*row)


async def list_students(
    db: AsyncSession,
    class_id: Optional[UUID] = None,
    is_active: Optional[bool] = None,
    include_fees: bool = True,
) -> List[StudentResponse]:
    stmt = select(Student, SchoolClass.name).join(SchoolClass, Student.class_id == SchoolClass.id)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    if is_active is not None:
        stmt = stmt.where(Student.is_active.is_(is_active))
    stmt = stmt.order_by(Student.name)
    rows = (await db.execute(stmt)).all()
    return [_student_to_response(s, class_name, include_fees) for s, class_name in rows]


async def get_student(
    db: AsyncSession,
    student_id: UUID,
    include_fees: bool = True,
) -> StudentDetailResponse:
    row = await _load_with_class(db, student_id)
    if not row:
        raise NotFoundError("Student not found")
    student, class_name = row
    base = _student_to_response(student, class_name, include_fees)
    if not include_fees:
        return StudentDetailResponse(**base.model_dump())
    records = (
        await db.execute(select(FeeRecord).where(FeeRecord.student_id == student_id))
    ).scalars().all()
    # Newest year first, calendar order within a year
    records = sorted(records, key=lambda r: (-r.year, MONTHS.index(r.month) if r.month in MONTHS else 0))
    return StudentDetailResponse(
        **base.model_dump(),
        fee_records=[
            StudentFeeRecordSummary(
                id=r.id,
                month=r.month,
                year=r.year,
                total_fee=to_decimal(r.total_fee),
                amount_paid=to_decimal(r.amount_paid),
                balance=to_decimal(r.balance),
                status=r.status,
                due_date=r.due_date,
            )
            for r in records
        ],
    )


async def update_student(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentUpdate,
) -> StudentResponse:
    """Rate changes apply to future billing periods only; existing fee records keep their snapshot."""
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    data = payload.model_dump(exclude_unset=True)
    if "class_id" in data and data["class_id"] is not None:
        if not await get_class_by_id(db, data["class_id"]):
            raise NotFoundError("Class not found")
    for field, value in data.items():
        if value is None and field in RECURRING_COMPONENTS + ("name", "class_id", "is_active"):
            raise ValidationError(f"{field} cannot be null")
        setattr(student, field, value.strip() if field == "name" else value)
    await db.commit()
    row = await _load_with_class(db, student_id)
    return _student_to_response(*row)


async def deactivate_student(db: AsyncSession, student_id: UUID) -> StudentResponse:
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    student.is_active = False
    await db.commit()
    logger.info("Deactivated student %s", student_id)
    row = await _load_with_class(db, student_id)
    return _student_to_response(*row)


async def delete_student_permanently(db: AsyncSession, student_id: UUID) -> None:
    """Removes the student with their fee and attendance records."""
    student = await db.get(Student, student_id)
    if not student:
        raise NotFoundError("Student not found")
    await db.delete(student)
    await db.commit()
    logger.info("Permanently deleted student %s", student_id)
