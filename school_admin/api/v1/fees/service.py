"""Fee records service: monthly generation, payments, one-time amendments, overdue sweep. Financial logic with audit."""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core import clock
from school_admin.core.config import settings
from school_admin.core.enums import FeeStatus
from school_admin.core.exceptions import NotFoundError, ValidationError
from school_admin.core.ledger import (
    FEE_COMPONENTS,
    RECURRING_COMPONENTS,
    apply_derivation,
    default_due_date,
    normalize_month,
    sum_components,
    to_decimal,
    to_money,
)
from school_admin.core.models import FeeAuditLog, FeeRecord, SchoolClass, Student

from .schemas import (
    FeeGenerateRequest,
    FeeGenerateResponse,
    FeeRecordResponse,
    OneTimeFeeAmend,
    OverdueSweepResponse,
    PaymentCreate,
    SkippedStudent,
    StatusOverride,
)

logger = logging.getLogger(__name__)


# --- Audit helper ---
async def _log_fee_audit(
    db: AsyncSession,
    reference_id: Optional[UUID],
    action_type: str,
    old_value: Optional[dict],
    new_value: Optional[dict],
    changed_by: Optional[UUID],
) -> None:
    log = FeeAuditLog(
        reference_table="fee_records",
        reference_id=reference_id,
        action_type=action_type,
        old_value=old_value,
        new_value=new_value,
        changed_by=changed_by,
    )
    db.add(log)


def _snapshot(record: FeeRecord) -> dict:
    data = {name: str(to_decimal(getattr(record, name))) for name in FEE_COMPONENTS}
    data.update(
        total_fee=str(to_decimal(record.total_fee)),
        amount_paid=str(to_decimal(record.amount_paid)),
        balance=str(to_decimal(record.balance)),
        status=record.status,
    )
    return data


def _record_to_response(
    record: FeeRecord,
    student_name: Optional[str] = None,
    roll_number: Optional[str] = None,
    class_name: Optional[str] = None,
) -> FeeRecordResponse:
    return FeeRecordResponse(
        id=record.id,
        student_id=record.student_id,
        student_name=student_name,
        roll_number=roll_number,
        class_name=class_name,
        month=record.month,
        year=record.year,
        tuition_fee=to_decimal(record.tuition_fee),
        lab_fee=to_decimal(record.lab_fee),
        library_fee=to_decimal(record.library_fee),
        sports_fee=to_decimal(record.sports_fee),
        exam_fee=to_decimal(record.exam_fee),
        other_fee=to_decimal(record.other_fee),
        total_fee=to_decimal(record.total_fee),
        amount_paid=to_decimal(record.amount_paid),
        balance=to_decimal(record.balance),
        due_date=record.due_date,
        status=FeeStatus(record.status),
        payment_date=record.payment_date,
        payment_mode=record.payment_mode,
        remarks=record.remarks,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _detail_stmt():
    return (
        select(FeeRecord, Student.name, Student.roll_number, SchoolClass.name)
        .join(Student, FeeRecord.student_id == Student.id)
        .join(SchoolClass, Student.class_id == SchoolClass.id)
    )


async def _lock_record(db: AsyncSession, record_id: UUID) -> FeeRecord:
    """Load a fee record holding a row lock until the surrounding transaction ends."""
    record = (
        await db.execute(
            select(FeeRecord)
            .where(FeeRecord.id == record_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if not record:
        raise NotFoundError("Fee record not found")
    return record


# --- Generation ---
async def _resolve_targets(db: AsyncSession, payload: FeeGenerateRequest) -> List[Student]:
    stmt = select(Student).where(Student.is_active.is_(True))
    if payload.student_ids:
        stmt = stmt.where(Student.id.in_(payload.student_ids))
    elif payload.class_id is not None:
        stmt = stmt.where(Student.class_id == payload.class_id)
    return list((await db.execute(stmt.order_by(Student.roll_number))).scalars().all())


async def _existing_student_ids(db: AsyncSession, month: str, year: int, student_ids: List[UUID]) -> Set[UUID]:
    return set(
        (
            await db.execute(
                select(FeeRecord.student_id).where(
                    FeeRecord.month == month,
                    FeeRecord.year == year,
                    FeeRecord.student_id.in_(student_ids),
                )
            )
        ).scalars().all()
    )


async def generate_period(
    db: AsyncSession,
    payload: FeeGenerateRequest,
    changed_by: Optional[UUID] = None,
) -> FeeGenerateResponse:
    """
    Create one Pending fee record per targeted student for a billing period.

    Records are committed one student at a time: a student whose record for the
    period already exists (including one created concurrently) is reported in
    `skipped` and does not abort the batch. A storage failure for one student is
    rolled back and reported in `failed`; records committed before it are kept
    and still returned in `created`.
    """
    if not payload.month or payload.year is None:
        raise ValidationError("Month and year are required")
    month = normalize_month(payload.month)
    year = payload.year
    due_date = payload.due_date or default_due_date(month, year, settings.default_due_day)

    students = await _resolve_targets(db, payload)
    if not students:
        raise ValidationError("No active students found for fee generation")

    # Plain values only: a rollback below expires every loaded instance.
    targets = [
        (s.id, s.name, s.roll_number, {name: to_money(getattr(s, name)) for name in RECURRING_COMPONENTS})
        for s in students
    ]
    target_ids = [t[0] for t in targets]
    class_names = dict(
        (
            await db.execute(
                select(Student.id, SchoolClass.name)
                .join(SchoolClass, Student.class_id == SchoolClass.id)
                .where(Student.id.in_(target_ids))
            )
        ).all()
    )
    existing = await _existing_student_ids(db, month, year, target_ids)

    created: List[FeeRecordResponse] = []
    skipped: List[SkippedStudent] = []
    failed: List[SkippedStudent] = []
    for student_id, name, roll_number, recurring in targets:
        if student_id in existing:
            skipped.append(SkippedStudent(student_id=student_id, student_name=name, reason="Fee record already exists"))
            continue
        record = FeeRecord(
            student_id=student_id,
            month=month,
            year=year,
            exam_fee=to_money(payload.exam_fee),
            other_fee=to_money(payload.other_fee),
            amount_paid=Decimal("0"),
            due_date=due_date,
            status=FeeStatus.PENDING.value,
            **recurring,
        )
        record.total_fee = sum_components(record)
        record.balance = record.total_fee
        try:
            db.add(record)
            await db.flush()
            await _log_fee_audit(db, record.id, "CREATE", None, _snapshot(record), changed_by)
            await db.commit()
        except IntegrityError:
            await db.rollback()
            skipped.append(SkippedStudent(student_id=student_id, student_name=name, reason="Fee record already exists"))
            continue
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Failed to create fee record for student %s (%s %s)", student_id, month, year)
            failed.append(SkippedStudent(student_id=student_id, student_name=name, reason="Storage error"))
            continue
        created.append(_record_to_response(record, name, roll_number, class_names.get(student_id)))

    logger.info(
        "Generated fee records for %s %s: %d created, %d skipped, %d failed",
        month, year, len(created), len(skipped), len(failed),
    )
    return FeeGenerateResponse(
        month=month,
        year=year,
        due_date=due_date,
        created_count=len(created),
        skipped_count=len(skipped),
        failed_count=len(failed),
        created=created,
        skipped=skipped,
        failed=failed,
    )


# --- Payments and amendments ---
async def record_payment(
    db: AsyncSession,
    record_id: UUID,
    payload: PaymentCreate,
    changed_by: Optional[UUID] = None,
    today: Optional[date] = None,
) -> FeeRecordResponse:
    """Add a payment to a fee record. Overpayment is accepted; the balance goes negative."""
    amount = to_money(payload.amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than 0")

    record = await _lock_record(db, record_id)
    old = _snapshot(record)
    record.amount_paid = to_decimal(record.amount_paid) + amount
    apply_derivation(record, today or clock.today())
    record.payment_date = clock.utcnow()
    record.payment_mode = payload.payment_mode.value
    if payload.remarks is not None:
        record.remarks = payload.remarks
    new = _snapshot(record)
    new.update(amount=str(amount), payment_mode=record.payment_mode)
    await _log_fee_audit(db, record.id, "PAYMENT", old, new, changed_by)
    await db.commit()
    logger.info(
        "Recorded payment of %s on fee record %s (balance %s, status %s)",
        amount, record.id, record.balance, record.status,
    )
    return await get_fee_record(db, record_id)


async def amend_one_time_fees(
    db: AsyncSession,
    record_id: UUID,
    payload: OneTimeFeeAmend,
    changed_by: Optional[UUID] = None,
    today: Optional[date] = None,
) -> FeeRecordResponse:
    """Add exam/other fee deltas to a fee record; amount_paid is left untouched."""
    record = await _lock_record(db, record_id)
    exam_fee = to_money(record.exam_fee) + to_money(payload.exam_fee)
    other_fee = to_money(record.other_fee) + to_money(payload.other_fee)
    if exam_fee < 0 or other_fee < 0:
        await db.rollback()
        raise ValidationError("One-time fees cannot become negative")

    old = _snapshot(record)
    record.exam_fee = exam_fee
    record.other_fee = other_fee
    apply_derivation(record, today or clock.today())
    if payload.remarks is not None:
        record.remarks = payload.remarks
    await _log_fee_audit(db, record.id, "AMEND", old, _snapshot(record), changed_by)
    await db.commit()
    logger.info("Amended one-time fees on fee record %s (total %s)", record.id, record.total_fee)
    return await get_fee_record(db, record_id)


async def override_status(
    db: AsyncSession,
    record_id: UUID,
    payload: StatusOverride,
    changed_by: Optional[UUID] = None,
) -> FeeRecordResponse:
    """Set status directly, bypassing derivation. Always audited as STATUS_OVERRIDE."""
    record = await _lock_record(db, record_id)
    old_status = record.status
    record.status = payload.status.value
    await _log_fee_audit(
        db, record.id, "STATUS_OVERRIDE",
        {"status": old_status},
        {"status": record.status, "reason": payload.reason},
        changed_by,
    )
    await db.commit()
    logger.warning(
        "Fee record %s status overridden from %s to %s by %s",
        record.id, old_status, record.status, changed_by,
    )
    return await get_fee_record(db, record_id)


async def sweep_overdue(
    db: AsyncSession,
    as_of: Optional[date] = None,
    changed_by: Optional[UUID] = None,
) -> OverdueSweepResponse:
    """Move every Pending record past its due date with a positive balance to Overdue."""
    as_of = as_of or clock.today()
    result = await db.execute(
        update(FeeRecord)
        .where(
            FeeRecord.status == FeeStatus.PENDING.value,
            FeeRecord.due_date < as_of,
            FeeRecord.balance > 0,
        )
        .values(status=FeeStatus.OVERDUE.value, updated_at=clock.utcnow())
        .execution_options(synchronize_session=False)
    )
    count = result.rowcount or 0
    if count:
        await _log_fee_audit(
            db, None, "SWEEP", None,
            {"as_of": as_of.isoformat(), "updated_count": count},
            changed_by,
        )
    await db.commit()
    logger.info("Overdue sweep as of %s updated %d fee records", as_of, count)
    return OverdueSweepResponse(updated_count=count, as_of=as_of)


# --- Reads ---
async def list_fee_records(
    db: AsyncSession,
    student_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    month: Optional[str] = None,
    year: Optional[int] = None,
    status_filter: Optional[FeeStatus] = None,
) -> List[FeeRecordResponse]:
    stmt = _detail_stmt()
    if student_id is not None:
        stmt = stmt.where(FeeRecord.student_id == student_id)
    if class_id is not None:
        stmt = stmt.where(Student.class_id == class_id)
    if month:
        stmt = stmt.where(FeeRecord.month == normalize_month(month))
    if year is not None:
        stmt = stmt.where(FeeRecord.year == year)
    if status_filter is not None:
        stmt = stmt.where(FeeRecord.status == status_filter.value)
    stmt = stmt.order_by(FeeRecord.year.desc(), FeeRecord.due_date.desc(), Student.roll_number)
    rows = (await db.execute(stmt)).all()
    return [_record_to_response(r, name, roll, cls) for r, name, roll, cls in rows]


async def get_fee_record(db: AsyncSession, record_id: UUID) -> Optional[FeeRecordResponse]:
    row = (await db.execute(_detail_stmt().where(FeeRecord.id == record_id))).first()
    if not row:
        return None
    record, name, roll, cls = row
    return _record_to_response(record, name, roll, cls)


async def list_overdue(db: AsyncSession) -> List[FeeRecordResponse]:
    rows = (
        await db.execute(
            _detail_stmt()
            .where(FeeRecord.status == FeeStatus.OVERDUE.value)
            .order_by(FeeRecord.due_date, Student.roll_number)
        )
    ).all()
    return [_record_to_response(r, name, roll, cls) for r, name, roll, cls in rows]


async def list_pending(db: AsyncSession) -> List[FeeRecordResponse]:
    rows = (
        await db.execute(
            _detail_stmt()
            .where(FeeRecord.status == FeeStatus.PENDING.value)
            .order_by(FeeRecord.due_date, Student.roll_number)
        )
    ).all()
    return [_record_to_response(r, name, roll, cls) for r, name, roll, cls in rows]


async def delete_fee_record(
    db: AsyncSession,
    record_id: UUID,
    changed_by: Optional[UUID] = None,
) -> bool:
    record = await db.get(FeeRecord, record_id)
    if not record:
        return False
    await _log_fee_audit(db, record.id, "DELETE", _snapshot(record), None, changed_by)
    await db.delete(record)
    await db.commit()
    logger.info("Deleted fee record %s", record_id)
    return True
