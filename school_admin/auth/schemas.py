from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, model_validator

from school_admin.core.enums import Role


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TeacherProfileInfo(BaseModel):
    id: UUID
    employee_id: str
    phone_number: str
    address: Optional[str] = None
    qualification: Optional[str] = None
    joining_date: Optional[date] = None

    class Config:
        from_attributes = True


class UserInfo(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: Role
    status: str
    teacher: Optional[TeacherProfileInfo] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo
    issued_at: datetime


class AssignedClassInfo(BaseModel):
    class_id: UUID
    class_name: str
    subject: Optional[str] = None
    is_primary: bool


class ProfileResponse(UserInfo):
    assigned_classes: List[AssignedClassInfo] = Field(default_factory=list)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class TeacherProfileCreate(BaseModel):
    employee_id: str = Field(..., max_length=50)
    phone_number: str = Field(..., max_length=50)
    address: Optional[str] = None
    qualification: Optional[str] = Field(None, max_length=255)
    joining_date: Optional[date] = None


class RegisterUserRequest(BaseModel):
    email: EmailStr
    password: str
    name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.TEACHER
    teacher: Optional[TeacherProfileCreate] = None

    @model_validator(mode="after")
    def validate_teacher_profile(self) -> "RegisterUserRequest":
        if self.teacher is not None and self.role != Role.TEACHER:
            raise ValueError("Only TEACHER users can carry a teacher profile")
        return self


class CurrentUser(BaseModel):
    """Actor descriptor resolved once per request from the access token.
    teacher_id is the TeacherProfile id, None for admins and profile-less teachers.
    """

    id: UUID
    email: str
    name: str
    role: Role
    teacher_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
