"""
Bulk Shipment database model.

A staff-created consolidated shipment: several customer line items that
share one physical movement and one status.
"""

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.sql import func

from freight_backend.app.db.session import Base
from freight_backend.app.models.shipment_enums import TransportMode, ShipmentStatus, LegacyStatus


class BulkShipment(Base):
    """
    Bulk shipment parent.

    Every non-deleted item's status equals the parent's status; the
    BulkSyncEngine is the only writer of item statuses.
    """
    __tablename__ = "bulk_shipments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    tracking_number = Column(String(32), unique=True, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    transport_mode = Column(Enum(TransportMode), nullable=True, index=True)
    status = Column(Enum(ShipmentStatus), nullable=True, index=True)
    legacy_status = Column(Enum(LegacyStatus), nullable=True)
    flagged_for_admin_review = Column(Boolean, default=False, nullable=False)

    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    version = Column(Integer, nullable=False, default=1)

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        status = self.status.value if self.status else None
        return f"<BulkShipment(id={self.id}, tracking='{self.tracking_number}', status='{status}')>"
