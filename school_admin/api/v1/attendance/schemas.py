from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from school_admin.core.enums import AttendanceStatus


class AttendanceMark(BaseModel):
    """Mark attendance for a single student. Marking again for the same day overwrites."""

    student_id: UUID
    date: date
    status: AttendanceStatus
    remarks: Optional[str] = None


class AttendanceBulkEntry(BaseModel):
    student_id: UUID
    status: AttendanceStatus
    remarks: Optional[str] = None


class AttendanceBulkMark(BaseModel):
    """Bulk mark for one date. class_id, when given, must match every student's class."""

    date: date
    class_id: Optional[UUID] = None
    records: List[AttendanceBulkEntry] = Field(..., min_length=1)


class AttendanceRecord(BaseModel):
    id: UUID
    student_id: UUID
    student_name: str
    roll_number: Optional[str] = None
    class_id: UUID
    class_name: str
    date: date
    status: AttendanceStatus
    marked_by: Optional[UUID] = None
    marked_by_name: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BulkMarkResponse(BaseModel):
    success: bool = True
    date: date
    marked_count: int


class ClassDayStudent(BaseModel):
    """status is None when the student has not been marked for the day."""

    student_id: UUID
    student_name: str
    roll_number: str
    attendance_id: Optional[UUID] = None
    status: Optional[AttendanceStatus] = None
    remarks: Optional[str] = None


class ClassDayAttendance(BaseModel):
    class_id: UUID
    class_name: str
    date: date
    total_students: int
    total_present: int
    total_absent: int
    total_late: int
    total_excused: int
    total_sick: int
    not_marked: int
    students: List[ClassDayStudent]


class AttendanceCounts(BaseModel):
    total_days: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    sick: int = 0
    # (present + late) / total_days, as a percentage
    attendance_percentage: float = 0.0


class StudentAttendanceSummary(AttendanceCounts):
    student_id: UUID
    student_name: str
    date_from: Optional[date] = None
    date_to: Optional[date] = None


class ClassReportRow(AttendanceCounts):
    student_id: UUID
    student_name: str
    roll_number: str


class ClassAttendanceReport(BaseModel):
    class_id: UUID
    class_name: str
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    students: List[ClassReportRow]
