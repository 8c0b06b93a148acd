"""
Package Detail database model.

Per-package measurements and restricted-goods screening captured during
warehouse verification.
"""

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base


class PackageDetail(Base):
    """
    Package detail model.

    Rows are replaced wholesale each time a shipment is verified.
    """
    __tablename__ = "package_details"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    shipment_id = Column(Integer, ForeignKey("shipments.id"), nullable=False, index=True)

    description = Column(String(500), nullable=True)
    item_type = Column(String(100), nullable=True)
    quantity = Column(Integer, default=1, nullable=False)

    # Measurements
    length_cm = Column(Float, nullable=True)
    width_cm = Column(Float, nullable=True)
    height_cm = Column(Float, nullable=True)
    weight_kg = Column(Float, nullable=True)
    volume_cbm = Column(Float, nullable=True)

    # Restricted-goods screening
    is_restricted = Column(Boolean, default=False, nullable=False)
    restricted_reason = Column(Text, nullable=True)
    restricted_override_approved = Column(Boolean, default=False, nullable=False)
    restricted_override_reason = Column(Text, nullable=True)
    restricted_override_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def is_blocked(self) -> bool:
        """Restricted and not cleared by an approved override."""
        return self.is_restricted and not self.restricted_override_approved

    def __repr__(self):
        return f"<PackageDetail(id={self.id}, shipment={self.shipment_id}, item_type='{self.item_type}')>"
