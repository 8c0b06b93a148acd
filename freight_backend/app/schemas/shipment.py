"""
Shipment Pydantic schemas.

Request and response models for intake, status updates, payment
collection, warehouse verification and public tracking.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from freight_backend.app.models.shipment_enums import (
    TransportMode, ShipmentStatus, LegacyStatus, PaymentCollectionStatus, PricingSource
)


class ShipmentCreate(BaseModel):
    """Schema for shipment intake."""
    customer_id: Optional[int] = Field(None, description="Required when staff create on behalf of a customer")
    transport_mode: Optional[TransportMode] = None
    description: Optional[str] = Field(None, max_length=500)
    declared_weight_kg: Optional[float] = Field(None, gt=0, description="Weight stated by the customer")


class ShipmentResponse(BaseModel):
    """Schema for shipment response."""
    id: int
    tracking_number: str
    customer_id: int
    description: Optional[str]
    transport_mode: Optional[TransportMode]
    status: Optional[ShipmentStatus]
    customer_status: Optional[ShipmentStatus]
    legacy_status: Optional[LegacyStatus]
    flagged_for_admin_review: bool
    declared_weight_kg: Optional[float]
    total_weight_kg: Optional[float]
    total_volume_cbm: Optional[float]
    payment_collection_status: PaymentCollectionStatus
    calculated_charge_usd: Optional[Decimal]
    final_charge_usd: Optional[Decimal]
    pricing_source: Optional[PricingSource]
    price_adjustment_reason: Optional[str]
    price_calculated_at: Optional[datetime]
    price_calculated_by: Optional[int]
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ShipmentStatusUpdate(BaseModel):
    """Manual status change by staff."""
    status: ShipmentStatus
    note: Optional[str] = Field(None, max_length=500)


class PaymentCollectionUpdate(BaseModel):
    payment_collection_status: PaymentCollectionStatus


class PackageInput(BaseModel):
    """One measured package at warehouse verification."""
    description: Optional[str] = Field(None, max_length=500)
    item_type: Optional[str] = Field(None, max_length=100, description="Restricted goods code, if any")
    quantity: int = Field(default=1, ge=1)
    length_cm: Optional[float] = Field(None, gt=0)
    width_cm: Optional[float] = Field(None, gt=0)
    height_cm: Optional[float] = Field(None, gt=0)
    weight_kg: Optional[float] = Field(None, gt=0)
    volume_cbm: Optional[float] = Field(None, gt=0, description="Direct volume; derived from dimensions when omitted")
    is_restricted: bool = False
    restricted_reason: Optional[str] = None
    restricted_override_approved: bool = False
    restricted_override_reason: Optional[str] = None


class PackageResponse(BaseModel):
    id: int
    description: Optional[str]
    item_type: Optional[str]
    quantity: int
    length_cm: Optional[float]
    width_cm: Optional[float]
    height_cm: Optional[float]
    weight_kg: Optional[float]
    volume_cbm: Optional[float]
    is_restricted: bool
    restricted_reason: Optional[str]
    restricted_override_approved: bool
    restricted_override_reason: Optional[str]
    restricted_override_by: Optional[int]

    class Config:
        from_attributes = True


class WarehouseVerificationRequest(BaseModel):
    packages: List[PackageInput] = Field(..., min_length=1)
    transport_mode: Optional[TransportMode] = None
    manual_final_charge_usd: Optional[Decimal] = Field(None, description="Replaces the calculated charge")
    manual_adjustment_reason: Optional[str] = None


class WarehouseVerificationResponse(BaseModel):
    shipment: ShipmentResponse
    packages: List[PackageResponse]


class StatusEventResponse(BaseModel):
    id: int
    status: ShipmentStatus
    previous_status: Optional[ShipmentStatus]
    note: Optional[str]
    actor_id: Optional[int]
    created_at: datetime

    class Config:
        from_attributes = True


class TrackingResponse(BaseModel):
    """Public tracking view: fine-grained status plus its legacy equivalent."""
    tracking_number: str
    kind: str  # shipment | bulk_shipment_item
    transport_mode: Optional[TransportMode]
    status: Optional[ShipmentStatus]
    legacy_status: Optional[LegacyStatus]
    updated_at: datetime
