"""School classes (e.g. Nursery, LKG, 1st, 10th). Model named SchoolClass to avoid Python 'class' keyword."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid
from sqlalchemy.orm import relationship

from school_admin.db.session import Base


class SchoolClass(Base):
    """Class master. Name is unique; soft delete via is_active."""

    __tablename__ = "classes"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    students = relationship("Student", back_populates="school_class")
    fee_structure = relationship(
        "FeeStructure", back_populates="school_class", uselist=False, cascade="all, delete-orphan"
    )
