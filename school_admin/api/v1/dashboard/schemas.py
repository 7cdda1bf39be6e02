from datetime import date
from decimal import Decimal
from typing import Dict, List
from uuid import UUID

from pydantic import BaseModel


class OverdueItem(BaseModel):
    fee_record_id: UUID
    student_id: UUID
    student_name: str
    class_name: str
    month: str
    year: int
    balance: Decimal
    due_date: date


class DashboardStats(BaseModel):
    year: int
    total_students: int
    total_collected: Decimal
    pending_amount: Decimal
    overdue_amount: Decimal
    status_counts: Dict[str, int]
    oldest_overdue: List[OverdueItem]


class MonthlyTrendItem(BaseModel):
    month: str
    expected: Decimal
    collected: Decimal
    pending: Decimal


class ClassWiseItem(BaseModel):
    class_id: UUID
    class_name: str
    record_count: int
    expected: Decimal
    collected: Decimal
    pending: Decimal


class PaymentModeItem(BaseModel):
    payment_mode: str
    record_count: int
    amount: Decimal
