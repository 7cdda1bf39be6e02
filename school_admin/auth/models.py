import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from school_admin.core.enums import UserStatus
from school_admin.db.session import Base


class User(Base):
    """Login identity. Role decides which routes the user may reach."""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    password_hash = Column(Text, nullable=False)
    # ADMIN | TEACHER
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default=UserStatus.ACTIVE.value)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    teacher_profile = relationship(
        "TeacherProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class TeacherProfile(Base):
    """Profile for TEACHER users. Class assignments hang off this row, not the user."""

    __tablename__ = "teacher_profiles"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    employee_id = Column(String(50), nullable=False, unique=True)
    phone_number = Column(String(50), nullable=False)
    address = Column(Text, nullable=True)
    qualification = Column(String(255), nullable=True)
    joining_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="teacher_profile")
    class_assignments = relationship(
        "TeacherClassAssignment", back_populates="teacher", cascade="all, delete-orphan"
    )
