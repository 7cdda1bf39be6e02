"""Fee structures router (Admin only)."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.rbac import Action, check_permission
from school_admin.auth.schemas import CurrentUser
from school_admin.db.session import get_db

from .schemas import FeeStructureCreate, FeeStructureResponse, FeeStructureUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-structures", tags=["fee-structures"])


@router.get(
    "",
    response_model=List[FeeStructureResponse],
    dependencies=[Depends(check_permission(Action.FEES_READ))],
)
async def list_fee_structures(db: AsyncSession = Depends(get_db)) -> List[FeeStructureResponse]:
    return await service.list_fee_structures(db)


@router.get(
    "/class/{class_id}",
    response_model=FeeStructureResponse,
    dependencies=[Depends(check_permission(Action.FEES_READ))],
)
async def get_fee_structure_by_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> FeeStructureResponse:
    obj = await service.get_fee_structure_by_class(db, class_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee structure not found for this class")
    return obj


@router.post(
    "",
    response_model=FeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_fee_structure(
    payload: FeeStructureCreate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> FeeStructureResponse:
    return await service.create_fee_structure(db, payload, changed_by=current_user.id)


@router.put("/class/{class_id}", response_model=FeeStructureResponse)
async def update_fee_structure(
    class_id: UUID,
    payload: FeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> FeeStructureResponse:
    obj = await service.update_fee_structure(db, class_id, payload, changed_by=current_user.id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee structure not found for this class")
    return obj


@router.delete("/class/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_fee_structure(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.FEES_MANAGE)),
) -> None:
    deleted = await service.delete_fee_structure(db, class_id, changed_by=current_user.id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Fee structure not found for this class")
