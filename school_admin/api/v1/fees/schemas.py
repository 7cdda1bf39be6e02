from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_admin.core.enums import FeeStatus, PaymentMode


class FeeGenerateRequest(BaseModel):
    """
    Target resolution: student_ids if given, else every active student of class_id,
    else every active student. month/year are checked by the service so a missing
    period is reported as a validation failure rather than a body-shape error.
    """

    month: Optional[str] = None
    year: Optional[int] = Field(None, ge=2000, le=2100)
    class_id: Optional[UUID] = None
    student_ids: Optional[List[UUID]] = None
    due_date: Optional[date] = None
    exam_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    other_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class SkippedStudent(BaseModel):
    student_id: UUID
    student_name: Optional[str] = None
    reason: str


class FeeRecordResponse(BaseModel):
    id: UUID
    student_id: UUID
    student_name: Optional[str] = None
    roll_number: Optional[str] = None
    class_name: Optional[str] = None
    month: str
    year: int
    tuition_fee: Decimal
    lab_fee: Decimal
    library_fee: Decimal
    sports_fee: Decimal
    exam_fee: Decimal
    other_fee: Decimal
    total_fee: Decimal
    amount_paid: Decimal
    balance: Decimal
    due_date: date
    status: FeeStatus
    payment_date: Optional[datetime] = None
    payment_mode: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FeeGenerateResponse(BaseModel):
    month: str
    year: int
    due_date: date
    created_count: int
    skipped_count: int
    failed_count: int = 0
    created: List[FeeRecordResponse] = []
    skipped: List[SkippedStudent] = []
    failed: List[SkippedStudent] = []


class PaymentCreate(BaseModel):
    # Positivity is enforced by the service (400); sub-cent precision is a 422.
    amount: Decimal = Field(..., decimal_places=2)
    payment_mode: PaymentMode = PaymentMode.CASH
    remarks: Optional[str] = None


class OneTimeFeeAmend(BaseModel):
    """Additive changes to the one-time components; either may be zero."""

    exam_fee: Decimal = Field(Decimal("0"), decimal_places=2)
    other_fee: Decimal = Field(Decimal("0"), decimal_places=2)
    remarks: Optional[str] = None


class StatusOverride(BaseModel):
    status: FeeStatus
    reason: Optional[str] = None


class OverdueSweepResponse(BaseModel):
    success: bool = True
    updated_count: int
    as_of: date
