"""Attendance service with class-assignment authorization for teachers."""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Set
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from school_admin.api.v1.classes.service import get_class_by_id
from school_admin.auth.models import User
from school_admin.auth.schemas import CurrentUser
from school_admin.core import clock
from school_admin.core.enums import AttendanceStatus
from school_admin.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from school_admin.core.models import (
    SchoolClass,
    Student,
    StudentAttendance,
    TeacherClassAssignment,
)

from .schemas import (
    AttendanceBulkMark,
    AttendanceMark,
    AttendanceRecord,
    BulkMarkResponse,
    ClassAttendanceReport,
    ClassDayAttendance,
    ClassDayStudent,
    ClassReportRow,
    StudentAttendanceSummary,
)

logger = logging.getLogger(__name__)


# ----- Authorization gate -----
async def _assigned_class_ids(db: AsyncSession, teacher_id: UUID) -> Set[UUID]:
    result = await db.execute(
        select(TeacherClassAssignment.class_id).where(TeacherClassAssignment.teacher_id == teacher_id)
    )
    return set(result.scalars().all())


def _require_teacher_profile(current_user: CurrentUser) -> UUID:
    if current_user.teacher_id is None:
        logger.warning("Attendance access denied for user %s: no teacher profile", current_user.id)
        raise ForbiddenError("Teacher profile not found")
    return current_user.teacher_id


async def authorize_classes(
    db: AsyncSession,
    current_user: CurrentUser,
    class_ids: Iterable[UUID],
) -> None:
    """Admins pass. Teachers must be assigned to every one of the given classes."""
    if current_user.is_admin:
        return
    teacher_id = _require_teacher_profile(current_user)
    denied = set(class_ids) - await _assigned_class_ids(db, teacher_id)
    if denied:
        logger.warning(
            "Attendance access denied for teacher %s on classes %s",
            teacher_id, sorted(str(c) for c in denied),
        )
        raise ForbiddenError("You are not assigned to this student's class")


async def authorize_students(
    db: AsyncSession,
    current_user: CurrentUser,
    student_ids: Iterable[UUID],
) -> Dict[UUID, Student]:
    """
    Load the given students and check the caller may act on all of them.

    Unknown ids fail with NotFoundError. For teachers, the distinct set of the
    students' classes must be fully covered by their class assignments; a single
    uncovered class rejects the whole request.
    """
    if not current_user.is_admin:
        _require_teacher_profile(current_user)
    wanted = set(student_ids)
    students = (
        await db.execute(select(Student).where(Student.id.in_(wanted)))
    ).scalars().all()
    by_id = {s.id: s for s in students}
    missing = wanted - set(by_id)
    if missing:
        raise NotFoundError(f"Student not found: {sorted(str(m) for m in missing)[0]}")
    await authorize_classes(db, current_user, {s.class_id for s in students})
    return by_id


# ----- Marking -----
def _check_mark_date(att_date: date) -> None:
    if att_date > clock.today():
        raise ValidationError("Cannot mark attendance for future dates")


async def _upsert(
    db: AsyncSession,
    student_id: UUID,
    att_date: date,
    status: AttendanceStatus,
    remarks: Optional[str],
    marked_by: UUID,
) -> StudentAttendance:
    existing = (
        await db.execute(
            select(StudentAttendance).where(
                StudentAttendance.student_id == student_id,
                StudentAttendance.date == att_date,
            )
        )
    ).scalar_one_or_none()
    if existing:
        existing.status = status.value
        existing.remarks = remarks
        existing.marked_by = marked_by
        return existing
    record = StudentAttendance(
        student_id=student_id,
        date=att_date,
        status=status.value,
        remarks=remarks,
        marked_by=marked_by,
    )
    db.add(record)
    return record


async def mark_attendance(
    db: AsyncSession,
    current_user: CurrentUser,
    payload: AttendanceMark,
) -> AttendanceRecord:
    _check_mark_date(payload.date)
    await authorize_students(db, current_user, [payload.student_id])
    record = await _upsert(
        db, payload.student_id, payload.date, payload.status, payload.remarks, current_user.id
    )
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Attendance for this student and date was marked concurrently, please retry")
    logger.info("Marked %s for student %s on %s", payload.status.value, payload.student_id, payload.date)
    return await _get_record(db, record.id)


async def mark_attendance_bulk(
    db: AsyncSession,
    current_user: CurrentUser,
    payload: AttendanceBulkMark,
) -> BulkMarkResponse:
    """All-or-nothing: every student is validated and authorized before anything is written."""
    _check_mark_date(payload.date)
    student_ids = [r.student_id for r in payload.records]
    if len(set(student_ids)) != len(student_ids):
        raise ValidationError("Duplicate student in attendance records")
    students = await authorize_students(db, current_user, student_ids)
    if payload.class_id is not None:
        await authorize_classes(db, current_user, [payload.class_id])
        outside = [s for s in students.values() if s.class_id != payload.class_id]
        if outside:
            raise ValidationError(f"Student {outside[0].name} is not in the selected class")

    for entry in payload.records:
        await _upsert(db, entry.student_id, payload.date, entry.status, entry.remarks, current_user.id)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Attendance for this date was marked concurrently, please retry")
    logger.info("Bulk marked attendance for %d students on %s", len(payload.records), payload.date)
    return BulkMarkResponse(date=payload.date, marked_count=len(payload.records))


# ----- Reads -----
def _record_stmt():
    return (
        select(StudentAttendance, Student, SchoolClass.name, User.full_name)
        .join(Student, StudentAttendance.student_id == Student.id)
        .join(SchoolClass, Student.class_id == SchoolClass.id)
        .outerjoin(User, StudentAttendance.marked_by == User.id)
    )


def _to_record(sa: StudentAttendance, student: Student, class_name: str, marker_name: Optional[str]) -> AttendanceRecord:
    return AttendanceRecord(
        id=sa.id,
        student_id=sa.student_id,
        student_name=student.name,
        roll_number=student.roll_number,
        class_id=student.class_id,
        class_name=class_name,
        date=sa.date,
        status=AttendanceStatus(sa.status),
        marked_by=sa.marked_by,
        marked_by_name=marker_name,
        remarks=sa.remarks,
        created_at=sa.created_at,
        updated_at=sa.updated_at,
    )


async def _get_record(db: AsyncSession, attendance_id: UUID) -> AttendanceRecord:
    row = (await db.execute(_record_stmt().where(StudentAttendance.id == attendance_id))).first()
    if not row:
        raise NotFoundError("Attendance record not found")
    return _to_record(*row)


def _counts(by_status: Dict[str, int]) -> dict:
    present = by_status.get(AttendanceStatus.PRESENT.value, 0)
    late = by_status.get(AttendanceStatus.LATE.value, 0)
    total = sum(by_status.values())
    return dict(
        total_days=total,
        present=present,
        absent=by_status.get(AttendanceStatus.ABSENT.value, 0),
        late=late,
        excused=by_status.get(AttendanceStatus.EXCUSED.value, 0),
        sick=by_status.get(AttendanceStatus.SICK.value, 0),
        attendance_percentage=round((present + late) * 100 / total, 2) if total else 0.0,
    )


def _in_range(stmt, date_from: Optional[date], date_to: Optional[date]):
    if date_from is not None:
        stmt = stmt.where(StudentAttendance.date >= date_from)
    if date_to is not None:
        stmt = stmt.where(StudentAttendance.date <= date_to)
    return stmt


async def list_attendance(
    db: AsyncSession,
    current_user: CurrentUser,
    student_id: Optional[UUID] = None,
    class_id: Optional[UUID] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    status_filter: Optional[AttendanceStatus] = None,
) -> List[AttendanceRecord]:
    """Admin: everything. Teacher: only students of assigned classes."""
    stmt = _in_range(_record_stmt(), date_from, date_to)
    if student_id is not None:
        await authorize_students(db, current_user, [student_id])
        stmt = stmt.where(StudentAttendance.student_id == student_id)
    if class_id is not None:
        await authorize_classes(db, current_user, [class_id])
        stmt = stmt.where(Student.class_id == class_id)
    if not current_user.is_admin:
        teacher_id = _require_teacher_profile(current_user)
        stmt = stmt.where(
            Student.class_id.in_(
                select(TeacherClassAssignment.class_id).where(TeacherClassAssignment.teacher_id == teacher_id)
            )
        )
    if status_filter is not None:
        stmt = stmt.where(StudentAttendance.status == status_filter.value)
    stmt = stmt.order_by(StudentAttendance.date.desc(), Student.roll_number)
    rows = (await db.execute(stmt)).all()
    return [_to_record(*row) for row in rows]


async def get_class_attendance_for_date(
    db: AsyncSession,
    current_user: CurrentUser,
    class_id: UUID,
    att_date: date,
) -> ClassDayAttendance:
    """Every active student of the class with their status for the day, marked or not."""
    school_class = await get_class_by_id(db, class_id, active_only=False)
    if not school_class:
        raise NotFoundError("Class not found")
    await authorize_classes(db, current_user, [class_id])

    rows = (
        await db.execute(
            select(Student, StudentAttendance)
            .outerjoin(
                StudentAttendance,
                (StudentAttendance.student_id == Student.id) & (StudentAttendance.date == att_date),
            )
            .where(Student.class_id == class_id, Student.is_active.is_(True))
            .order_by(Student.roll_number)
        )
    ).all()
    students: List[ClassDayStudent] = []
    by_status: Dict[str, int] = {}
    for student, sa in rows:
        if sa is not None:
            by_status[sa.status] = by_status.get(sa.status, 0) + 1
        students.append(
            ClassDayStudent(
                student_id=student.id,
                student_name=student.name,
                roll_number=student.roll_number,
                attendance_id=sa.id if sa else None,
                status=AttendanceStatus(sa.status) if sa else None,
                remarks=sa.remarks if sa else None,
            )
        )
    return ClassDayAttendance(
        class_id=class_id,
        class_name=school_class.name,
        date=att_date,
        total_students=len(students),
        total_present=by_status.get(AttendanceStatus.PRESENT.value, 0),
        total_absent=by_status.get(AttendanceStatus.ABSENT.value, 0),
        total_late=by_status.get(AttendanceStatus.LATE.value, 0),
        total_excused=by_status.get(AttendanceStatus.EXCUSED.value, 0),
        total_sick=by_status.get(AttendanceStatus.SICK.value, 0),
        not_marked=sum(1 for s in students if s.status is None),
        students=students,
    )


async def get_student_summary(
    db: AsyncSession,
    current_user: CurrentUser,
    student_id: UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> StudentAttendanceSummary:
    students = await authorize_students(db, current_user, [student_id])
    stmt = _in_range(
        select(StudentAttendance.status, func.count(StudentAttendance.id))
        .where(StudentAttendance.student_id == student_id)
        .group_by(StudentAttendance.status),
        date_from,
        date_to,
    )
    by_status = dict((await db.execute(stmt)).all())
    return StudentAttendanceSummary(
        student_id=student_id,
        student_name=students[student_id].name,
        date_from=date_from,
        date_to=date_to,
        **_counts(by_status),
    )


async def get_class_report(
    db: AsyncSession,
    current_user: CurrentUser,
    class_id: UUID,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> ClassAttendanceReport:
    school_class = await get_class_by_id(db, class_id, active_only=False)
    if not school_class:
        raise NotFoundError("Class not found")
    await authorize_classes(db, current_user, [class_id])

    students = (
        await db.execute(
            select(Student)
            .where(Student.class_id == class_id, Student.is_active.is_(True))
            .order_by(Student.roll_number)
        )
    ).scalars().all()
    stmt = _in_range(
        select(StudentAttendance.student_id, StudentAttendance.status, func.count(StudentAttendance.id))
        .join(Student, StudentAttendance.student_id == Student.id)
        .where(Student.class_id == class_id)
        .group_by(StudentAttendance.student_id, StudentAttendance.status),
        date_from,
        date_to,
    )
    per_student: Dict[UUID, Dict[str, int]] = {}
    for sid, status, count in (await db.execute(stmt)).all():
        per_student.setdefault(sid, {})[status] = count
    return ClassAttendanceReport(
        class_id=class_id,
        class_name=school_class.name,
        date_from=date_from,
        date_to=date_to,
        students=[
            ClassReportRow(
                student_id=s.id,
                student_name=s.name,
                roll_number=s.roll_number,
                **_counts(per_student.get(s.id, {})),
            )
            for s in students
        ],
    )


async def delete_attendance(db: AsyncSession, attendance_id: UUID) -> bool:
    record = await db.get(StudentAttendance, attendance_id)
    if not record:
        return False
    await db.delete(record)
    await db.commit()
    logger.info("Deleted attendance record %s", attendance_id)
    return True
