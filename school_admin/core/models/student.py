import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from school_admin.db.session import Base


class Student(Base):
    """
    Enrolled student with the recurring fee rates charged every billing period.
    roll_number is unique and never changes once assigned.
    """

    __tablename__ = "students"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    roll_number = Column(String(50), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    father_name = Column(String(255), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False, index=True)
    phone_number = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    admission_date = Column(Date, nullable=True)

    # Recurring fees; one-time fees (exam, other) live on the fee record only
    tuition_fee = Column(Numeric(12, 2), nullable=False, default=0)
    lab_fee = Column(Numeric(12, 2), nullable=False, default=0)
    library_fee = Column(Numeric(12, 2), nullable=False, default=0)
    sports_fee = Column(Numeric(12, 2), nullable=False, default=0)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass", back_populates="students")
    fee_records = relationship("FeeRecord", back_populates="student", cascade="all, delete-orphan")
    attendances = relationship("StudentAttendance", back_populates="student", cascade="all, delete-orphan")
