"""
Bulk Shipment API Endpoints (Staff/Admin only).

Status changes on a bulk shipment fan out to every active line item in
the same transaction.
"""

from typing import List
from fastapi import APIRouter, Depends, status, Path
from sqlalchemy.ext.asyncio import AsyncSession

from freight_backend.app.db.session import get_db
from freight_backend.app.models.enums import UserRole
from freight_backend.app.schemas.bulk import (
    BulkShipmentCreate, BulkShipmentResponse, BulkItemCreate, BulkItemResponse,
    BulkStatusUpdate, BulkItemPaymentUpdate,
)
from freight_backend.app.core.guards import require_role, STAFF_ROLES
from freight_backend.app.schemas.shipment import StatusEventResponse
from freight_backend.app.services.bulk_sync import BulkSyncEngine
from freight_backend.app.services.status_events import list_bulk_events

router = APIRouter(prefix="/bulk-shipments", tags=["Bulk Shipments"])


async def _bulk_response(db: AsyncSession, bulk) -> BulkShipmentResponse:
    items = await BulkSyncEngine.active_items(db, bulk.id)
    return BulkShipmentResponse(
        id=bulk.id,
        tracking_number=bulk.tracking_number,
        notes=bulk.notes,
        transport_mode=bulk.transport_mode,
        status=bulk.status,
        flagged_for_admin_review=bulk.flagged_for_admin_review,
        created_by=bulk.created_by,
        created_at=bulk.created_at,
        updated_at=bulk.updated_at,
        deleted_at=bulk.deleted_at,
        items=[BulkItemResponse.model_validate(item) for item in items],
    )


@router.post("", response_model=BulkShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_bulk_shipment(
    payload: BulkShipmentCreate,
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    bulk = await BulkSyncEngine.create_bulk(
        db,
        created_by=current_user["user_id"],
        items=[item.model_dump() for item in payload.items],
        transport_mode=payload.transport_mode,
        notes=payload.notes,
    )
    return await _bulk_response(db, bulk)


@router.get("/{bulk_id}", response_model=BulkShipmentResponse)
async def get_bulk_shipment(
    bulk_id: int = Path(..., description="Bulk shipment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    bulk = await BulkSyncEngine.get_bulk(db, bulk_id)
    return await _bulk_response(db, bulk)


@router.get("/{bulk_id}/events", response_model=List[StatusEventResponse])
async def get_bulk_events(
    bulk_id: int = Path(..., description="Bulk shipment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Status history of the parent, oldest first."""
    await BulkSyncEngine.get_bulk(db, bulk_id)
    return await list_bulk_events(db, bulk_id)


@router.delete("/{bulk_id}", response_model=BulkShipmentResponse)
async def delete_bulk_shipment(
    bulk_id: int = Path(..., description="Bulk shipment ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete the bulk shipment and its active items (Admin only)."""
    bulk = await BulkSyncEngine.soft_delete_bulk(db, bulk_id, actor_id=current_user["user_id"])
    return await _bulk_response(db, bulk)


@router.post("/{bulk_id}/items", response_model=BulkItemResponse, status_code=status.HTTP_201_CREATED)
async def add_bulk_item(
    payload: BulkItemCreate,
    bulk_id: int = Path(..., description="Bulk shipment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await BulkSyncEngine.add_item(db, bulk_id, **payload.model_dump())


@router.delete("/{bulk_id}/items/{item_id}", response_model=BulkItemResponse)
async def remove_bulk_item(
    bulk_id: int = Path(..., description="Bulk shipment ID"),
    item_id: int = Path(..., description="Item ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete; the item no longer follows the parent's status."""
    return await BulkSyncEngine.remove_item(db, bulk_id, item_id)


@router.patch("/{bulk_id}/items/{item_id}/payment-collection", response_model=BulkItemResponse)
async def update_bulk_item_payment(
    payload: BulkItemPaymentUpdate,
    bulk_id: int = Path(..., description="Bulk shipment ID"),
    item_id: int = Path(..., description="Item ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await BulkSyncEngine.update_item_payment_collection(
        db, bulk_id, item_id, payload.payment_collection_status, actor_id=current_user["user_id"]
    )


@router.patch("/{bulk_id}/status", response_model=BulkShipmentResponse)
async def update_bulk_status(
    payload: BulkStatusUpdate,
    bulk_id: int = Path(..., description="Bulk shipment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    bulk = await BulkSyncEngine.update_bulk_status(
        db, bulk_id, payload.status, actor_id=current_user["user_id"], note=payload.note
    )
    return await _bulk_response(db, bulk)
