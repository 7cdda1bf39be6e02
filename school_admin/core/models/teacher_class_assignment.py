import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from school_admin.db.session import Base


class TeacherClassAssignment(Base):
    """Links a teacher profile to a class. The only fact consulted when a teacher marks attendance."""

    __tablename__ = "teacher_class_assignments"
    __table_args__ = (
        UniqueConstraint("teacher_id", "class_id", name="uq_teacher_class_assignment"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    teacher_id = Column(Uuid, ForeignKey("teacher_profiles.id", ondelete="CASCADE"), nullable=False)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False)
    subject = Column(String(100), nullable=True)
    is_primary = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    teacher = relationship("TeacherProfile", back_populates="class_assignments")
    school_class = relationship("SchoolClass", foreign_keys=[class_id])
