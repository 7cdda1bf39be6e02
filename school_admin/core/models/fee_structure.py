"""Per-class fee template. total_monthly_fee is derived, never written by callers."""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, Uuid
from sqlalchemy.orm import relationship

from school_admin.db.session import Base


class FeeStructure(Base):
    """One fee structure per class."""

    __tablename__ = "fee_structures"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    class_id = Column(Uuid, ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, unique=True)

    tuition_fee = Column(Numeric(12, 2), nullable=False, default=0)
    lab_fee = Column(Numeric(12, 2), nullable=False, default=0)
    library_fee = Column(Numeric(12, 2), nullable=False, default=0)
    sports_fee = Column(Numeric(12, 2), nullable=False, default=0)
    exam_fee = Column(Numeric(12, 2), nullable=False, default=0)
    other_fee = Column(Numeric(12, 2), nullable=False, default=0)
    total_monthly_fee = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_class = relationship("SchoolClass", back_populates="fee_structure")
