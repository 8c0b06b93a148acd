"""
Public Tracking Endpoint.

No authentication: anyone holding a tracking number sees its status in
both the fine-grained and legacy vocabularies.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from freight_backend.app.core.exceptions import ResourceNotFoundError
from freight_backend.app.db.session import get_db
from freight_backend.app.domain.shipment_status.mapping import status_to_legacy
from freight_backend.app.models.bulk_shipment_item import BulkShipmentItem
from freight_backend.app.schemas.shipment import TrackingResponse
from freight_backend.app.services.shipment_status_service import ShipmentStatusService

router = APIRouter(prefix="/track", tags=["Tracking"])


@router.get("/{tracking_number}", response_model=TrackingResponse)
async def track(
    tracking_number: str = Path(..., min_length=1, max_length=32),
    db: AsyncSession = Depends(get_db)
):
    record = await ShipmentStatusService.get_by_tracking_number(db, tracking_number)
    kind = "shipment"

    if record is None:
        result = await db.execute(
            select(BulkShipmentItem).where(
                BulkShipmentItem.tracking_number == tracking_number,
                BulkShipmentItem.deleted_at.is_(None),
            )
        )
        record = result.scalar_one_or_none()
        kind = "bulk_shipment_item"

    if record is None:
        raise ResourceNotFoundError("Shipment", tracking_number)

    # Rows not yet backfilled only carry the legacy value
    legacy = status_to_legacy(record.customer_status) if record.customer_status else record.legacy_status

    return TrackingResponse(
        tracking_number=record.tracking_number,
        kind=kind,
        transport_mode=record.transport_mode,
        status=record.customer_status,
        legacy_status=legacy,
        updated_at=record.updated_at,
    )
