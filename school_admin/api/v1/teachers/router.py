"""Teachers router: accounts and class assignments (Admin), own classes (Teacher)."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.rbac import Action, check_permission
from school_admin.auth.schemas import CurrentUser
from school_admin.db.session import get_db

from .schemas import (
    ClassAssignmentCreate,
    ClassAssignmentResponse,
    MyClassResponse,
    TeacherCreate,
    TeacherResponse,
    TeacherUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/teachers", tags=["teachers"])


@router.get("/my-classes", response_model=List[MyClassResponse])
async def get_my_classes(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.OWN_CLASSES)),
) -> List[MyClassResponse]:
    """Scoped to the caller's own teacher profile; there is no teacher id parameter."""
    return await service.get_my_classes(db, current_user.teacher_id)


@router.get(
    "",
    response_model=List[TeacherResponse],
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def list_teachers(db: AsyncSession = Depends(get_db)) -> List[TeacherResponse]:
    return await service.list_teachers(db)


@router.get(
    "/{teacher_id}",
    response_model=TeacherResponse,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def get_teacher(teacher_id: UUID, db: AsyncSession = Depends(get_db)) -> TeacherResponse:
    return await service.get_teacher(db, teacher_id)


@router.post(
    "",
    response_model=TeacherResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def create_teacher(
    payload: TeacherCreate,
    db: AsyncSession = Depends(get_db),
) -> TeacherResponse:
    return await service.create_teacher(db, payload)


@router.put(
    "/{teacher_id}",
    response_model=TeacherResponse,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def update_teacher(
    teacher_id: UUID,
    payload: TeacherUpdate,
    db: AsyncSession = Depends(get_db),
) -> TeacherResponse:
    return await service.update_teacher(db, teacher_id, payload)


@router.delete(
    "/{teacher_id}",
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def deactivate_teacher(teacher_id: UUID, db: AsyncSession = Depends(get_db)):
    await service.deactivate_teacher(db, teacher_id)
    return {"success": True, "message": "Teacher deactivated successfully"}


# ----- Class assignments -----
@router.post(
    "/{teacher_id}/assign-class",
    response_model=ClassAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def assign_to_class(
    teacher_id: UUID,
    payload: ClassAssignmentCreate,
    db: AsyncSession = Depends(get_db),
) -> ClassAssignmentResponse:
    return await service.assign_to_class(db, teacher_id, payload)


@router.delete(
    "/{teacher_id}/remove-class/{class_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def remove_from_class(
    teacher_id: UUID,
    class_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    await service.remove_from_class(db, teacher_id, class_id)


@router.get(
    "/{teacher_id}/classes",
    response_model=List[ClassAssignmentResponse],
    dependencies=[Depends(check_permission(Action.ROSTER_MANAGE))],
)
async def get_assigned_classes(
    teacher_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> List[ClassAssignmentResponse]:
    return await service.get_assigned_classes(db, teacher_id)
