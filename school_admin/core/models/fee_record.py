"""Fee record: one student's ledger entry for one (month, year) billing period."""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import relationship

from school_admin.core.enums import FeeStatus
from school_admin.db.session import Base


class FeeRecord(Base):
    """
    Ledger entry for a student and billing period.
    total_fee, balance and status are derived; see school_admin.core.ledger.
    """

    __tablename__ = "fee_records"
    __table_args__ = (
        # At most one entry per student per billing period
        UniqueConstraint("student_id", "month", "year", name="uq_fee_record_student_period"),
        CheckConstraint(
            "status IN ('Pending','Paid','Overdue')",
            name="chk_fee_record_status",
        ),
        CheckConstraint("amount_paid >= 0", name="chk_fee_record_amount_paid"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(String(20), nullable=False)
    year = Column(Integer, nullable=False)

    # Recurring components, frozen from the student's rates at generation time
    tuition_fee = Column(Numeric(12, 2), nullable=False, default=0)
    lab_fee = Column(Numeric(12, 2), nullable=False, default=0)
    library_fee = Column(Numeric(12, 2), nullable=False, default=0)
    sports_fee = Column(Numeric(12, 2), nullable=False, default=0)
    # One-time components, amended additively
    exam_fee = Column(Numeric(12, 2), nullable=False, default=0)
    other_fee = Column(Numeric(12, 2), nullable=False, default=0)

    total_fee = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    balance = Column(Numeric(12, 2), nullable=False, default=0)
    due_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default=FeeStatus.PENDING.value, index=True)

    payment_date = Column(DateTime(timezone=True), nullable=True)
    payment_mode = Column(String(30), nullable=True)
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    student = relationship("Student", back_populates="fee_records")
