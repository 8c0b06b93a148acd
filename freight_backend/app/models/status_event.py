"""
Status Event database model.

Append-only history of status transitions.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, CheckConstraint
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base
from freight_backend.app.models.shipment_enums import ShipmentStatus


class StatusEvent(Base):
    """
    Status event model.

    Exactly one of shipment_id / bulk_shipment_id is set. Rows are never
    updated or deleted.
    """
    __tablename__ = "status_events"
    __table_args__ = (
        CheckConstraint(
            "(shipment_id IS NULL) <> (bulk_shipment_id IS NULL)",
            name="ck_status_events_single_owner",
        ),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    shipment_id = Column(Integer, ForeignKey("shipments.id"), nullable=True, index=True)
    bulk_shipment_id = Column(Integer, ForeignKey("bulk_shipments.id"), nullable=True, index=True)

    status = Column(Enum(ShipmentStatus), nullable=False)
    previous_status = Column(Enum(ShipmentStatus), nullable=True)
    note = Column(String(500), nullable=True)

    actor_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<StatusEvent(id={self.id}, status='{self.status.value}', actor={self.actor_id})>"
