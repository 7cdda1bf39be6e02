"""Dashboard aggregates over fee records (Admin only)."""

from typing import List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.core.enums import MONTHS, FeeStatus
from school_admin.core.ledger import normalize_month, to_decimal
from school_admin.core.models import FeeRecord, SchoolClass, Student

from .schemas import (
    ClassWiseItem,
    DashboardStats,
    MonthlyTrendItem,
    OverdueItem,
    PaymentModeItem,
)

OLDEST_OVERDUE_LIMIT = 10


def _sum(col):
    return func.coalesce(func.sum(col), 0)


def _owed():
    # Overpaid records carry a negative balance; they owe nothing.
    return _sum(case((FeeRecord.balance > 0, FeeRecord.balance), else_=0))


async def get_stats(db: AsyncSession, year: int) -> DashboardStats:
    total_students = (
        await db.execute(select(func.count(Student.id)).where(Student.is_active.is_(True)))
    ).scalar() or 0
    collected = (
        await db.execute(select(_sum(FeeRecord.amount_paid)).where(FeeRecord.year == year))
    ).scalar()

    by_status = dict(
        (
            await db.execute(
                select(FeeRecord.status, _owed())
                .where(FeeRecord.year == year)
                .group_by(FeeRecord.status)
            )
        ).all()
    )
    counts = dict(
        (
            await db.execute(
                select(FeeRecord.status, func.count(FeeRecord.id))
                .where(FeeRecord.year == year)
                .group_by(FeeRecord.status)
            )
        ).all()
    )

    rows = (
        await db.execute(
            select(FeeRecord, Student.name, SchoolClass.name)
            .join(Student, FeeRecord.student_id == Student.id)
            .join(SchoolClass, Student.class_id == SchoolClass.id)
            .where(FeeRecord.status == FeeStatus.OVERDUE.value)
            .order_by(FeeRecord.due_date, Student.roll_number)
            .limit(OLDEST_OVERDUE_LIMIT)
        )
    ).all()

    return DashboardStats(
        year=year,
        total_students=total_students,
        total_collected=to_decimal(collected),
        pending_amount=to_decimal(by_status.get(FeeStatus.PENDING.value)),
        overdue_amount=to_decimal(by_status.get(FeeStatus.OVERDUE.value)),
        status_counts={s.value: counts.get(s.value, 0) for s in FeeStatus},
        oldest_overdue=[
            OverdueItem(
                fee_record_id=r.id,
                student_id=r.student_id,
                student_name=student_name,
                class_name=class_name,
                month=r.month,
                year=r.year,
                balance=to_decimal(r.balance),
                due_date=r.due_date,
            )
            for r, student_name, class_name in rows
        ],
    )


async def get_monthly_trend(db: AsyncSession, year: int) -> List[MonthlyTrendItem]:
    """All twelve months in calendar order; months without records report zeros."""
    rows = (
        await db.execute(
            select(
                FeeRecord.month,
                _sum(FeeRecord.total_fee),
                _sum(FeeRecord.amount_paid),
                _owed(),
            )
            .where(FeeRecord.year == year)
            .group_by(FeeRecord.month)
        )
    ).all()
    by_month = {month: (expected, collected, pending) for month, expected, collected, pending in rows}
    items = []
    for month in MONTHS:
        expected, collected, pending = by_month.get(month, (0, 0, 0))
        items.append(
            MonthlyTrendItem(
                month=month,
                expected=to_decimal(expected),
                collected=to_decimal(collected),
                pending=to_decimal(pending),
            )
        )
    return items


async def get_class_wise(
    db: AsyncSession,
    year: int,
    month: Optional[str] = None,
) -> List[ClassWiseItem]:
    stmt = (
        select(
            SchoolClass.id,
            SchoolClass.name,
            func.count(FeeRecord.id),
            _sum(FeeRecord.total_fee),
            _sum(FeeRecord.amount_paid),
            _owed(),
        )
        .join(Student, FeeRecord.student_id == Student.id)
        .join(SchoolClass, Student.class_id == SchoolClass.id)
        .where(FeeRecord.year == year)
        .group_by(SchoolClass.id, SchoolClass.name)
        .order_by(SchoolClass.name)
    )
    if month:
        stmt = stmt.where(FeeRecord.month == normalize_month(month))
    rows = (await db.execute(stmt)).all()
    return [
        ClassWiseItem(
            class_id=class_id,
            class_name=name,
            record_count=count,
            expected=to_decimal(expected),
            collected=to_decimal(collected),
            pending=to_decimal(pending),
        )
        for class_id, name, count, expected, collected, pending in rows
    ]


async def get_payment_modes(db: AsyncSession, year: int) -> List[PaymentModeItem]:
    """Grouped by the last payment mode recorded on each fee record."""
    rows = (
        await db.execute(
            select(FeeRecord.payment_mode, func.count(FeeRecord.id), _sum(FeeRecord.amount_paid))
            .where(
                FeeRecord.year == year,
                FeeRecord.payment_mode.is_not(None),
                FeeRecord.amount_paid > 0,
            )
            .group_by(FeeRecord.payment_mode)
            .order_by(FeeRecord.payment_mode)
        )
    ).all()
    return [
        PaymentModeItem(payment_mode=mode, record_count=count, amount=to_decimal(amount))
        for mode, count, amount in rows
    ]
