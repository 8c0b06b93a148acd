"""
Audit Log Database Model.

Tracks admin actions on pricing, payments and data migration.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for admin actions.

    Events logged:
    - PRICING_RULE_CREATED / PRICING_RULE_DEACTIVATED
    - PRICING_OVERRIDE_CREATED
    - RESTRICTED_GOOD_CREATED
    - CHARGE_MANUALLY_ADJUSTED
    - PAYMENT_STATUS_CHANGED
    - STATUS_BACKFILL_RUN
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system jobs)
    actor_id = Column(Integer, index=True, nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # What the action was applied to
    entity_type = Column(String(50), nullable=True)
    entity_id = Column(Integer, index=True, nullable=True)

    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_id}, entity={self.entity_type}:{self.entity_id})>"
