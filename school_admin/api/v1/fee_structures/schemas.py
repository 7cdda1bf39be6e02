from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FeeStructureCreate(BaseModel):
    class_id: UUID
    tuition_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    lab_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    library_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    sports_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    exam_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    other_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class FeeStructureUpdate(BaseModel):
    """total_monthly_fee is not accepted; it is recomputed from the components."""

    tuition_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    lab_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    library_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    sports_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    exam_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    other_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class FeeStructureResponse(BaseModel):
    id: UUID
    class_id: UUID
    class_name: Optional[str] = None
    tuition_fee: Decimal
    lab_fee: Decimal
    library_fee: Decimal
    sports_fee: Decimal
    exam_fee: Decimal
    other_fee: Decimal
    total_monthly_fee: Decimal
    created_at: datetime
    updated_at: datetime
