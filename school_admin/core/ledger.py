"""
Fee ledger derivation.

total_fee, balance and status of a FeeRecord are never written directly by
services; every mutation ends with apply_derivation(). The one exception is the
audited status override in the fees service.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from school_admin.core.enums import MONTHS, FeeStatus
from school_admin.core.exceptions import ValidationError

RECURRING_COMPONENTS = ("tuition_fee", "lab_fee", "library_fee", "sports_fee")
ONE_TIME_COMPONENTS = ("exam_fee", "other_fee")
FEE_COMPONENTS = RECURRING_COMPONENTS + ONE_TIME_COMPONENTS

Number = Union[Decimal, int, float, str, None]

# Scale of every Numeric(12, 2) money column
CENT = Decimal("0.01")


def to_decimal(val: Number) -> Decimal:
    if val is None:
        return Decimal("0")
    return val if isinstance(val, Decimal) else Decimal(str(val))


def to_money(val: Number) -> Decimal:
    """to_decimal rounded half-up to whole cents, the precision money is stored at."""
    return to_decimal(val).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_components(obj, components=FEE_COMPONENTS) -> Decimal:
    return sum((to_decimal(getattr(obj, name, None)) for name in components), Decimal("0"))


def derive_status(balance: Number, due_date: date, today: date) -> FeeStatus:
    """Paid when nothing is owed, Overdue once today is strictly past the due date, else Pending."""
    if to_decimal(balance) <= 0:
        return FeeStatus.PAID
    if today > due_date:
        return FeeStatus.OVERDUE
    return FeeStatus.PENDING


def apply_derivation(record, today: date) -> None:
    """
    Recompute total_fee, balance and status on a FeeRecord in place.

    Components and amount_paid are rounded to cents first so the in-memory record
    matches what the database stores and balance == total_fee - amount_paid holds
    after the write.
    """
    for name in FEE_COMPONENTS:
        setattr(record, name, to_money(getattr(record, name, None)))
    record.amount_paid = to_money(record.amount_paid)
    total = sum_components(record)
    balance = total - record.amount_paid
    record.total_fee = total
    record.balance = balance
    record.status = derive_status(balance, record.due_date, today).value


def month_number(month: Optional[str]) -> int:
    """1-based month number for a month name ("March" -> 3)."""
    if not month:
        raise ValidationError("Month and year are required")
    normalized = month.strip().capitalize()
    if normalized not in MONTHS:
        raise ValidationError(f"Invalid month: {month}")
    return MONTHS.index(normalized) + 1


def normalize_month(month: Optional[str]) -> str:
    return MONTHS[month_number(month) - 1]


def default_due_date(month: str, year: int, day: int = 10) -> date:
    return date(year, month_number(month), day)
