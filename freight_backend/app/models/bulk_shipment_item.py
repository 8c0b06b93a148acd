"""
Bulk Shipment Item database model.

One customer's line item inside a bulk shipment, with its own
customer-facing tracking number and charge.
"""

from sqlalchemy import Column, Integer, ForeignKey

from freight_backend.app.db.session import Base
from freight_backend.app.models.shipment_fields import ChargeableShipmentMixin


class BulkShipmentItem(ChargeableShipmentMixin, Base):
    """Bulk line item. Always references exactly one bulk parent."""
    __tablename__ = "bulk_shipment_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    bulk_shipment_id = Column(Integer, ForeignKey("bulk_shipments.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    def __repr__(self):
        status = self.status.value if self.status else None
        return f"<BulkShipmentItem(id={self.id}, bulk_id={self.bulk_shipment_id}, status='{status}')>"
