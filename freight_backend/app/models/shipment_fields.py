"""
Columns shared by every chargeable shipment row.

Solo shipments and bulk shipment items both carry a fine-grained status,
a customer-facing status, payment collection state and pricing fields.
"""

from sqlalchemy import Column, Integer, String, Float, Numeric, Boolean, DateTime, Enum, Text
from sqlalchemy.sql import func

from freight_backend.app.models.shipment_enums import (
    TransportMode, ShipmentStatus, LegacyStatus, PaymentCollectionStatus, PricingSource
)


class ChargeableShipmentMixin:
    """Declarative mixin for shipment-like tables."""

    tracking_number = Column(String(32), unique=True, nullable=False, index=True)
    description = Column(String(500), nullable=True)

    transport_mode = Column(Enum(TransportMode), nullable=True, index=True)

    # Fine-grained status; customer_status mirrors it today
    status = Column(Enum(ShipmentStatus), nullable=True, index=True)
    customer_status = Column(Enum(ShipmentStatus), nullable=True)

    # Coarse status carried by rows created before the fine-grained model
    legacy_status = Column(Enum(LegacyStatus), nullable=True)
    flagged_for_admin_review = Column(Boolean, default=False, nullable=False, index=True)

    # Package summary
    total_weight_kg = Column(Float, nullable=True)
    total_volume_cbm = Column(Float, nullable=True)

    payment_collection_status = Column(
        Enum(PaymentCollectionStatus),
        default=PaymentCollectionStatus.UNPAID,
        nullable=False,
    )

    # Pricing
    calculated_charge_usd = Column(Numeric(12, 2), nullable=True)
    final_charge_usd = Column(Numeric(12, 2), nullable=True)
    pricing_source = Column(Enum(PricingSource), nullable=True)
    price_adjustment_reason = Column(Text, nullable=True)
    price_calculated_at = Column(DateTime(timezone=True), nullable=True)
    price_calculated_by = Column(Integer, nullable=True)

    # Soft delete
    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def apply_status(self, new_status: ShipmentStatus) -> None:
        """Set internal and customer-visible status together."""
        self.status = new_status
        self.customer_status = new_status
