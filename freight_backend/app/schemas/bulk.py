"""
Bulk shipment schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from freight_backend.app.models.shipment_enums import (
    TransportMode, ShipmentStatus, PaymentCollectionStatus, PricingSource
)


class BulkItemCreate(BaseModel):
    customer_id: int
    description: Optional[str] = Field(None, max_length=500)
    weight_kg: Optional[float] = Field(None, gt=0)
    volume_cbm: Optional[float] = Field(None, gt=0)


class BulkShipmentCreate(BaseModel):
    transport_mode: Optional[TransportMode] = None
    notes: Optional[str] = None
    items: List[BulkItemCreate] = Field(default_factory=list)


class BulkItemResponse(BaseModel):
    id: int
    bulk_shipment_id: int
    customer_id: int
    tracking_number: str
    description: Optional[str]
    transport_mode: Optional[TransportMode]
    status: Optional[ShipmentStatus]
    customer_status: Optional[ShipmentStatus]
    total_weight_kg: Optional[float]
    total_volume_cbm: Optional[float]
    payment_collection_status: PaymentCollectionStatus
    final_charge_usd: Optional[Decimal]
    pricing_source: Optional[PricingSource]
    deleted_at: Optional[datetime]
    created_at: datetime

    class Config:
        from_attributes = True


class BulkShipmentResponse(BaseModel):
    id: int
    tracking_number: str
    notes: Optional[str]
    transport_mode: Optional[TransportMode]
    status: Optional[ShipmentStatus]
    flagged_for_admin_review: bool
    created_by: int
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None
    items: List[BulkItemResponse] = []


class BulkStatusUpdate(BaseModel):
    status: ShipmentStatus
    note: Optional[str] = Field(None, max_length=500)


class BulkItemPaymentUpdate(BaseModel):
    payment_collection_status: PaymentCollectionStatus
