from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class StudentCreate(BaseModel):
    """Recurring fees left out default to the class fee structure."""

    name: str = Field(..., min_length=1, max_length=255)
    roll_number: str = Field(..., min_length=1, max_length=50)
    class_id: UUID
    father_name: Optional[str] = Field(None, max_length=255)
    date_of_birth: Optional[date] = None
    phone_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    admission_date: Optional[date] = None
    tuition_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    lab_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    library_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    sports_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class StudentUpdate(BaseModel):
    """roll_number is deliberately absent: it is immutable once assigned."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    class_id: Optional[UUID] = None
    father_name: Optional[str] = Field(None, max_length=255)
    date_of_birth: Optional[date] = None
    phone_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    is_active: Optional[bool] = None
    tuition_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    lab_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    library_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    sports_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)

    class Config:
        extra = "forbid"


class StudentResponse(BaseModel):
    id: UUID
    roll_number: str
    name: str
    father_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    class_id: UUID
    class_name: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    admission_date: Optional[date] = None
    # Fee fields are None for callers without fee access
    tuition_fee: Optional[Decimal] = None
    lab_fee: Optional[Decimal] = None
    library_fee: Optional[Decimal] = None
    sports_fee: Optional[Decimal] = None
    total_monthly_fee: Optional[Decimal] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class StudentFeeRecordSummary(BaseModel):
    id: UUID
    month: str
    year: int
    total_fee: Decimal
    amount_paid: Decimal
    balance: Decimal
    status: str
    due_date: date


class StudentDetailResponse(StudentResponse):
    fee_records: List[StudentFeeRecordSummary] = Field(default_factory=list)
