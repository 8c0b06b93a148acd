"""
Shipment database model.

A solo (single-customer) order moving through the intake → international
leg → Lagos office → pickup pipeline.
"""

from sqlalchemy import Column, Integer, Float, ForeignKey

from freight_backend.app.db.session import Base
from freight_backend.app.models.shipment_fields import ChargeableShipmentMixin


class Shipment(ChargeableShipmentMixin, Base):
    """
    Shipment model.

    Concurrent writers are serialized with SELECT ... FOR UPDATE and an
    optimistic version counter; a stale write raises StaleDataError.
    """
    __tablename__ = "shipments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Weight stated by the customer at intake, used when packages carry none
    declared_weight_kg = Column(Float, nullable=True)

    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        status = self.status.value if self.status else None
        return f"<Shipment(id={self.id}, tracking='{self.tracking_number}', status='{status}')>"
