from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class TeacherCreate(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(..., min_length=1, max_length=255)
    employee_id: str = Field(..., min_length=1, max_length=50)
    phone_number: str = Field(..., min_length=1, max_length=50)
    address: Optional[str] = None
    qualification: Optional[str] = Field(None, max_length=255)
    joining_date: Optional[date] = None


class TeacherUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    qualification: Optional[str] = Field(None, max_length=255)
    joining_date: Optional[date] = None
    is_active: Optional[bool] = None


class ClassAssignmentCreate(BaseModel):
    class_id: UUID
    subject: Optional[str] = Field(None, max_length=100)
    is_primary: bool = False


class ClassAssignmentResponse(BaseModel):
    id: UUID
    teacher_id: UUID
    class_id: UUID
    class_name: str
    subject: Optional[str] = None
    is_primary: bool
    student_count: int = 0
    created_at: datetime


class TeacherResponse(BaseModel):
    """Teacher profile joined with its login user."""

    id: UUID
    user_id: UUID
    name: str
    email: EmailStr
    status: str
    employee_id: str
    phone_number: str
    address: Optional[str] = None
    qualification: Optional[str] = None
    joining_date: Optional[date] = None
    created_at: datetime
    assigned_classes: List[ClassAssignmentResponse] = Field(default_factory=list)


class RosterStudent(BaseModel):
    id: UUID
    name: str
    roll_number: str


class MyClassResponse(ClassAssignmentResponse):
    students: List[RosterStudent] = Field(default_factory=list)
