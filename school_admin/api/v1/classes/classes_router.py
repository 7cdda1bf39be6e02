from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.rbac import Action, check_permission, is_allowed
from school_admin.auth.schemas import CurrentUser
from school_admin.db.session import get_db

from .schemas import ClassCreate, ClassResponse, ClassUpdate
from . import service

router = APIRouter(prefix="/api/v1/classes", tags=["classes"])


@router.get("", response_model=List[ClassResponse])
async def list_classes(
    active_only: bool = Query(True, description="Return only is_active=true by default"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ROSTER_READ)),
) -> List[ClassResponse]:
    return await service.list_classes(
        db,
        active_only=active_only,
        include_fees=is_allowed(current_user.role, Action.FEES_READ),
    )


@router.get("/{class_id}", response_model=ClassResponse)
async def get_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ROSTER_READ)),
) -> ClassResponse:
    obj = await service.get_class(
        db, class_id, include_fees=is_allowed(current_user.role, Action.FEES_READ)
    )
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return obj


@router.post(
    "",
    response_model=ClassResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def create_class(
    payload: ClassCreate,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    return await service.create_class(db, payload)


@router.put(
    "/{class_id}",
    response_model=ClassResponse,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def update_class(
    class_id: UUID,
    payload: ClassUpdate,
    db: AsyncSession = Depends(get_db),
) -> ClassResponse:
    obj = await service.update_class(db, class_id, payload)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return obj


@router.delete(
    "/{class_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def delete_class(
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_class(db, class_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
