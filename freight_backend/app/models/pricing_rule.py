"""
Pricing Rule database models.

Default per-mode rate rules and customer-specific overrides. Both share
one shape so the resolver can rank them the same way.
"""

from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, Enum, ForeignKey, Text
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base
from freight_backend.app.models.shipment_enums import TransportMode


class RateRuleMixin:
    """Columns common to default rules and customer overrides."""

    name = Column(String(100), nullable=False)
    transport_mode = Column(Enum(TransportMode), nullable=False, index=True)

    # Weight band; a null bound is unbounded
    min_weight_kg = Column(Numeric(10, 3), nullable=True)
    max_weight_kg = Column(Numeric(10, 3), nullable=True)

    rate_usd_per_kg = Column(Numeric(10, 4), nullable=True)  # Air
    flat_rate_usd_per_cbm = Column(Numeric(10, 4), nullable=True)  # Sea

    # Validity
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    effective_from = Column(DateTime(timezone=True), nullable=True)
    effective_to = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class PricingRule(RateRuleMixin, Base):
    """
    Default pricing rule.

    Several rules may be active for the same mode at once; the resolver
    picks the narrowest weight band that contains the shipment weight.
    """
    __tablename__ = "pricing_rules"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    def __repr__(self):
        return f"<PricingRule(id={self.id}, name='{self.name}', mode='{self.transport_mode.value}')>"


class CustomerPricingOverride(RateRuleMixin, Base):
    """Customer-specific rate; wins over default rules when it matches."""
    __tablename__ = "customer_pricing_overrides"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    customer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<CustomerPricingOverride(id={self.id}, customer={self.customer_id}, name='{self.name}')>"
