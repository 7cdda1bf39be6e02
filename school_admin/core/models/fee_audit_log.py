"""Fee audit log: immutable financial change tracking for audit safety."""

import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import relationship

from school_admin.db.session import Base


class FeeAuditLog(Base):
    """Immutable audit trail for fee-related financial changes."""

    __tablename__ = "fee_audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    reference_table = Column(String(50), nullable=False)
    reference_id = Column(Uuid, nullable=True)
    action_type = Column(String(30), nullable=False)  # CREATE, PAYMENT, AMEND, SWEEP, STATUS_OVERRIDE, DELETE, UPDATE
    old_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    changed_by = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    changed_by_user = relationship("User", foreign_keys=[changed_by])
