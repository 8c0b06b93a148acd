"""
Pricing and restricted goods schemas (admin).
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional
from freight_backend.app.models.shipment_enums import TransportMode, PricingSource


class RateRuleFields(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    transport_mode: TransportMode
    min_weight_kg: Optional[Decimal] = Field(None, ge=0)
    max_weight_kg: Optional[Decimal] = Field(None, ge=0)
    rate_usd_per_kg: Optional[Decimal] = Field(None, gt=0, description="Air rate")
    flat_rate_usd_per_cbm: Optional[Decimal] = Field(None, gt=0, description="Sea rate")
    effective_from: Optional[datetime] = None
    effective_to: Optional[datetime] = None


class PricingRuleCreate(RateRuleFields):
    """Schema for creating a default pricing rule."""


class CustomerPricingOverrideCreate(RateRuleFields):
    """Schema for creating a customer-specific override."""
    customer_id: int
    notes: Optional[str] = None


class PricingRuleResponse(BaseModel):
    id: int
    name: str
    transport_mode: TransportMode
    min_weight_kg: Optional[Decimal]
    max_weight_kg: Optional[Decimal]
    rate_usd_per_kg: Optional[Decimal]
    flat_rate_usd_per_cbm: Optional[Decimal]
    effective_from: Optional[datetime]
    effective_to: Optional[datetime]
    is_active: bool
    created_by: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerPricingOverrideResponse(PricingRuleResponse):
    customer_id: int
    notes: Optional[str]


class QuoteRequest(BaseModel):
    """Price a hypothetical shipment without persisting anything."""
    transport_mode: TransportMode
    customer_id: Optional[int] = None
    weight_kg: Optional[Decimal] = Field(None, gt=0)
    volume_cbm: Optional[Decimal] = Field(None, gt=0)
    as_of: Optional[datetime] = None


class QuoteResponse(BaseModel):
    amount_usd: Decimal
    pricing_source: PricingSource
    rule_id: int
    rate_usd: Decimal
    transport_mode: TransportMode


class RestrictedGoodCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    allow_with_override: bool = True
    is_active: bool = True


class RestrictedGoodResponse(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str]
    allow_with_override: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
