from school_admin.auth.models import TeacherProfile, User
from school_admin.core.models.class_model import SchoolClass
from school_admin.core.models.fee_audit_log import FeeAuditLog
from school_admin.core.models.fee_record import FeeRecord
from school_admin.core.models.fee_structure import FeeStructure
from school_admin.core.models.student import Student
from school_admin.core.models.student_attendance import StudentAttendance
from school_admin.core.models.teacher_class_assignment import TeacherClassAssignment

__all__ = [
    "FeeAuditLog",
    "FeeRecord",
    "FeeStructure",
    "SchoolClass",
    "Student",
    "StudentAttendance",
    "TeacherClassAssignment",
    "TeacherProfile",
    "User",
]
