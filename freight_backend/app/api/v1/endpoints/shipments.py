"""
Shipment API Endpoints.

Intake, status updates, warehouse verification, payment collection and
soft delete for solo shipments.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from freight_backend.app.db.session import get_db
from freight_backend.app.models.enums import UserRole
from freight_backend.app.models.package_detail import PackageDetail
from freight_backend.app.schemas.shipment import (
    ShipmentCreate, ShipmentResponse, ShipmentStatusUpdate, PaymentCollectionUpdate,
    WarehouseVerificationRequest, WarehouseVerificationResponse, PackageResponse,
    StatusEventResponse,
)
from freight_backend.app.core.dependencies import get_current_user, get_rate_cache
from freight_backend.app.core.guards import require_role, verify_shipment_access, STAFF_ROLES
from freight_backend.app.services.cache import RateCache
from freight_backend.app.services.shipment_status_service import ShipmentStatusService
from freight_backend.app.services.status_events import list_shipment_events
from freight_backend.app.services.warehouse_verification import WarehouseVerificationService

router = APIRouter(prefix="/shipments", tags=["Shipments"])


@router.post("", response_model=ShipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_shipment(
    payload: ShipmentCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Intake a new shipment.

    Customers create shipments for themselves; staff must name the customer.
    The shipment starts at PREORDER_SUBMITTED.
    """
    if current_user.get("role") == UserRole.CUSTOMER.value:
        customer_id = current_user["user_id"]
    else:
        if payload.customer_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="customer_id is required when staff create a shipment"
            )
        customer_id = payload.customer_id

    return await ShipmentStatusService.create_shipment(
        db,
        customer_id=customer_id,
        actor_id=current_user["user_id"],
        transport_mode=payload.transport_mode,
        description=payload.description,
        declared_weight_kg=payload.declared_weight_kg,
    )


@router.get("/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    shipment = await ShipmentStatusService.get_shipment(db, shipment_id)
    verify_shipment_access(shipment.customer_id, current_user)
    return shipment


@router.delete("/{shipment_id}", response_model=ShipmentResponse)
async def delete_shipment(
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_role([UserRole.ADMIN])),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete (Admin only). The status history is kept."""
    return await ShipmentStatusService.soft_delete(db, shipment_id, actor_id=current_user["user_id"])


@router.get("/{shipment_id}/events", response_model=List[StatusEventResponse])
async def get_shipment_events(
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Status history, oldest first."""
    shipment = await ShipmentStatusService.get_shipment(db, shipment_id)
    verify_shipment_access(shipment.customer_id, current_user)
    return await list_shipment_events(db, shipment_id)


@router.patch("/{shipment_id}/status", response_model=ShipmentResponse)
async def update_shipment_status(
    payload: ShipmentStatusUpdate,
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    """
    Move a shipment to its next status (Staff/Admin only).

    Returns 409 when the status does not follow the current one, or when
    READY_FOR_PICKUP is requested before payment is collected.
    WAREHOUSE_VERIFIED_PRICED is reached through warehouse verification;
    requesting it here for an unpriced shipment returns 422.
    """
    return await ShipmentStatusService.update_status(
        db, shipment_id, payload.status, actor_id=current_user["user_id"], note=payload.note
    )


@router.post("/{shipment_id}/warehouse-verification", response_model=WarehouseVerificationResponse)
async def verify_shipment(
    payload: WarehouseVerificationRequest,
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db),
    rate_cache: RateCache = Depends(get_rate_cache)
):
    """Record measured packages, screen restricted goods and price the shipment."""
    shipment = await WarehouseVerificationService.verify(
        db,
        rate_cache,
        shipment_id=shipment_id,
        packages=payload.packages,
        verified_by=current_user["user_id"],
        explicit_mode=payload.transport_mode,
        manual_final_charge_usd=payload.manual_final_charge_usd,
        manual_reason=payload.manual_adjustment_reason,
    )

    result = await db.execute(
        select(PackageDetail)
        .where(PackageDetail.shipment_id == shipment.id)
        .order_by(PackageDetail.id)
    )
    packages = result.scalars().all()

    return WarehouseVerificationResponse(
        shipment=ShipmentResponse.model_validate(shipment),
        packages=[PackageResponse.model_validate(p) for p in packages],
    )


@router.patch("/{shipment_id}/payment-collection", response_model=ShipmentResponse)
async def update_payment_collection(
    payload: PaymentCollectionUpdate,
    shipment_id: int = Path(..., description="Shipment ID"),
    current_user: dict = Depends(require_role(STAFF_ROLES)),
    db: AsyncSession = Depends(get_db)
):
    return await ShipmentStatusService.update_payment_collection(
        db, shipment_id, payload.payment_collection_status, actor_id=current_user["user_id"]
    )
