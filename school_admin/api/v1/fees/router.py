"""Fee records router: generation, payments, amendments, overdue sweep, status override (Admin only)."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.rbac import Action, check_permission
from school_admin.auth.schemas import CurrentUser
from school_admin.core.enums import FeeStatus
from school_admin.db.session import get_db

from .schemas import (
    FeeGenerateRequest,
    FeeGenerateResponse,
    FeeRecordResponse,
    OneTimeFeeAmend,
    OverdueSweepResponse,
    PaymentCreate,
    StatusOverride,
)
from . import service

router = APIRouter(prefix="/api/v1/fee-records", tags=["fee-records"])


@router.post("/generate", response_model=FeeGenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_fee_records(
    payload: FeeGenerateRequest,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> FeeGenerateResponse:
    return await service.generate_period(db, payload, changed_by=current_user.id)


@router.post("/update-overdue", response_model=OverdueSweepResponse)
async def update_overdue(
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> OverdueSweepResponse:
    return await service.sweep_overdue(db, as_of=as_of, changed_by=current_user.id)


@router.get(
    "",
    response_model=List[FeeRecordResponse],
    dependencies=[Depends(check_permission(Action.FEES_READ))],
)
async def list_fee_records(
    student_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    month: Optional[str] = None,
    year: Optional[int] = None,
    status_filter: Optional[FeeStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> List[FeeRecordResponse]:
    return await service.list_fee_records(
        db,
        student_id=student_id,
        class_id=class_id,
        month=month,
        year=year,
        status_filter=status_filter,
    )


@router.get(
    "/overdue",
    response_model=List[FeeRecordResponse],
    dependencies=[Depends(check_permission(Action.FEES_READ))],
)
async def list_overdue(db: AsyncSession = Depends(get_db)) -> List[FeeRecordResponse]:
    return await service.list_overdue(db)


@router.get(
    "/pending",
    response_model=List[FeeRecordResponse],
    dependencies=[Depends(check_permission(Action.FEES_READ))],
)
async def list_pending(db: AsyncSession = Depends(get_db)) -> List[FeeRecordResponse]:
    return await service.list_pending(db)


@router.get(
    "/{record_id}",
    response_model=FeeRecordResponse,
    dependencies=[Depends(check_permission(Action.FEES_READ))],
)
async def get_fee_record(record_id: UUID, db: AsyncSession = Depends(get_db)) -> FeeRecordResponse:
    obj = await service.get_fee_record(db, record_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee record not found")
    return obj


@router.post("/{record_id}/payment", response_model=FeeRecordResponse)
async def record_payment(
    record_id: UUID,
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> FeeRecordResponse:
    return await service.record_payment(db, record_id, payload, changed_by=current_user.id)


@router.put("/{record_id}/one-time-fees", response_model=FeeRecordResponse)
async def amend_one_time_fees(
    record_id: UUID,
    payload: OneTimeFeeAmend,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> FeeRecordResponse:
    return await service.amend_one_time_fees(db, record_id, payload, changed_by=current_user.id)


@router.put("/{record_id}/status", response_model=FeeRecordResponse)
async def override_status(
    record_id: UUID,
    payload: StatusOverride,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> FeeRecordResponse:
    return await service.override_status(db, record_id, payload, changed_by=current_user.id)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee_record(
    record_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> None:
    deleted = await service.delete_fee_record(db, record_id, changed_by=current_user.id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee record not found")
