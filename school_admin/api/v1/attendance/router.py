"""Attendance router: marking and reads for staff, gated by class assignment for teachers."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.auth.rbac import Action, check_permission
from school_admin.auth.schemas import CurrentUser
from school_admin.core.enums import AttendanceStatus
from school_admin.db.session import get_db

from .schemas import (
    AttendanceBulkMark,
    AttendanceMark,
    AttendanceRecord,
    BulkMarkResponse,
    ClassAttendanceReport,
    ClassDayAttendance,
    StudentAttendanceSummary,
)
from . import service

router = APIRouter(prefix="/api/v1/attendance", tags=["attendance"])


@router.post("", response_model=AttendanceRecord)
async def mark_attendance(
    payload: AttendanceMark,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ATTENDANCE_MARK)),
) -> AttendanceRecord:
    return await service.mark_attendance(db, current_user, payload)


@router.post("/bulk", response_model=BulkMarkResponse)
async def mark_attendance_bulk(
    payload: AttendanceBulkMark,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ATTENDANCE_MARK)),
) -> BulkMarkResponse:
    return await service.mark_attendance_bulk(db, current_user, payload)


@router.get("", response_model=List[AttendanceRecord])
async def list_attendance(
    student_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[AttendanceStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ATTENDANCE_READ)),
) -> List[AttendanceRecord]:
    return await service.list_attendance(
        db,
        current_user,
        student_id=student_id,
        class_id=class_id,
        date_from=date_from,
        date_to=date_to,
        status_filter=status_filter,
    )


@router.get("/class/{class_id}/date/{att_date}", response_model=ClassDayAttendance)
async def get_class_attendance_for_date(
    class_id: UUID,
    att_date: date,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ATTENDANCE_READ)),
) -> ClassDayAttendance:
    return await service.get_class_attendance_for_date(db, current_user, class_id, att_date)


@router.get("/class/{class_id}/report", response_model=ClassAttendanceReport)
async def get_class_report(
    class_id: UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ATTENDANCE_READ)),
) -> ClassAttendanceReport:
    return await service.get_class_report(db, current_user, class_id, date_from, date_to)


@router.get("/student/{student_id}/summary", response_model=StudentAttendanceSummary)
async def get_student_summary(
    student_id: UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(check_permission(Action.ATTENDANCE_READ)),
) -> StudentAttendanceSummary:
    return await service.get_student_summary(db, current_user, student_id, date_from, date_to)


@router.delete(
    "/{attendance_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(check_permission(Action.ATTENDANCE_DELETE))],
)
async def delete_attendance(
    attendance_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    deleted = await service.delete_attendance(db, attendance_id)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attendance record not found")
