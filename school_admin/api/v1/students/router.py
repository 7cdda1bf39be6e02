"""Students router: roster reads for staff, management for admins."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.rbac import Action, check_permission, is_allowed
from school_admin.auth.schemas import CurrentUser
from school_admin.db.session import get_db

from .schemas import StudentCreate, StudentDetailResponse, StudentResponse, StudentUpdate
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get("", response_model=List[StudentResponse])
async def list_students(
    class_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ROSTER_READ)),
) -> List[StudentResponse]:
    return await service.list_students(
        db,
        class_id=class_id,
        is_active=is_active,
        include_fees=is_allowed(current_user.role, Action.FEES_READ),
    )


@router.get("/{student_id}", response_model=StudentDetailResponse)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ROSTER_READ)),
) -> StudentDetailResponse:
    """Fee rates and fee records are left out for roles without fee access."""
    return await service.get_student(
        db, student_id, include_fees=is_allowed(current_user.role, Action.FEES_READ)
    )


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    return await service.create_student(db, payload)


@router.put(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    return await service.update_student(db, student_id, payload)


@router.delete(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def deactivate_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    return await service.deactivate_student(db, student_id)


@router.delete(
    "/{student_id}/permanent",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def delete_student_permanently(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    await service.delete_student_permanently(db, student_id)
