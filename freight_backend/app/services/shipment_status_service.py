"""
Shipment lifecycle service.

Intake, manual status updates, payment collection and soft delete for
solo shipments.
Every status change goes through the transition validator and, for
READY_FOR_PICKUP, the payment gate. Broadcasts happen after commit.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from freight_backend.app.core.exceptions import ResourceNotFoundError, ShipmentValidationError
from freight_backend.app.db.session import commit_or_conflict
from freight_backend.app.domain.shipment_status.catalog import initial_status_for
from freight_backend.app.domain.shipment_status.payment_gate import assert_pickup_allowed
from freight_backend.app.domain.shipment_status.transitions import assert_transition
from freight_backend.app.models.shipment import Shipment
from freight_backend.app.models.shipment_enums import (
    PaymentCollectionStatus, ShipmentStatus, TransportMode
)
from freight_backend.app.services.audit import AuditAction, add_audit_entry
from freight_backend.app.services.notification_service import StatusBroadcaster
from freight_backend.app.services.status_events import record_status_event

logger = logging.getLogger(__name__)


def generate_tracking_number() -> str:
    """Format: FRT-YYYYMMDD-XXXXXXXX"""
    date_part = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"FRT-{date_part}-{secrets.token_hex(4).upper()}"


class ShipmentStatusService:

    @staticmethod
    async def get_shipment(db: AsyncSession, shipment_id: int, for_update: bool = False) -> Shipment:
        """
        Fetch a live (not soft-deleted) shipment.

        Raises:
            ResourceNotFoundError: no such shipment
        """
        query = select(Shipment).where(
            Shipment.id == shipment_id,
            Shipment.deleted_at.is_(None),
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        shipment = result.scalar_one_or_none()
        if not shipment:
            raise ResourceNotFoundError("Shipment", shipment_id)
        return shipment

    @staticmethod
    async def get_by_tracking_number(db: AsyncSession, tracking_number: str) -> Optional[Shipment]:
        result = await db.execute(
            select(Shipment).where(
                Shipment.tracking_number == tracking_number,
                Shipment.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def create_shipment(
        db: AsyncSession,
        customer_id: int,
        actor_id: Optional[int],
        transport_mode: Optional[TransportMode] = None,
        description: Optional[str] = None,
        declared_weight_kg: Optional[float] = None,
    ) -> Shipment:
        """Intake: a new shipment starts at the first status of its flow."""
        status = initial_status_for(transport_mode)

        shipment = Shipment(
            tracking_number=generate_tracking_number(),
            customer_id=customer_id,
            transport_mode=transport_mode,
            description=description,
            declared_weight_kg=declared_weight_kg,
            payment_collection_status=PaymentCollectionStatus.UNPAID,
        )
        shipment.apply_status(status)
        db.add(shipment)
        await db.flush()

        record_status_event(db, status, actor_id, shipment_id=shipment.id)
        await db.commit()
        await db.refresh(shipment)

        logger.info("Shipment %s created for customer %s", shipment.tracking_number, customer_id)
        return shipment

    @staticmethod
    def _assert_priced(shipment: Shipment, new_status: ShipmentStatus) -> None:
        # Only warehouse verification prices a shipment; a manual move may
        # return to this status only once a final charge exists.
        if new_status == ShipmentStatus.WAREHOUSE_VERIFIED_PRICED and shipment.final_charge_usd is None:
            raise ShipmentValidationError(
                "Use warehouse verification to move an unpriced shipment to WAREHOUSE_VERIFIED_PRICED",
                details={
                    "shipment_id": shipment.id,
                    "endpoint": f"/v1/shipments/{shipment.id}/warehouse-verification",
                },
            )

    @staticmethod
    async def update_status(
        db: AsyncSession,
        shipment_id: int,
        new_status: ShipmentStatus,
        actor_id: Optional[int],
        note: Optional[str] = None,
    ) -> Shipment:
        """
        Move a solo shipment to new_status.

        Raises:
            ResourceNotFoundError: shipment missing or soft-deleted
            StructuralTransitionError: new_status does not follow the current status
            ShipmentValidationError: WAREHOUSE_VERIFIED_PRICED requested for an unpriced shipment
            PaymentNotCompleteError: READY_FOR_PICKUP requested while unpaid
            ConcurrentUpdateError: another writer won the race
        """
        shipment = await ShipmentStatusService.get_shipment(db, shipment_id, for_update=True)
        previous = shipment.status

        try:
            assert_transition(shipment.transport_mode, previous, new_status)
            ShipmentStatusService._assert_priced(shipment, new_status)
            assert_pickup_allowed(shipment, new_status)
        except Exception:
            await db.rollback()
            raise

        shipment.apply_status(new_status)
        record_status_event(
            db, new_status, actor_id,
            previous_status=previous, shipment_id=shipment.id, note=note,
        )
        await commit_or_conflict(db, "Shipment", shipment_id)
        await db.refresh(shipment)

        logger.info(
            "Shipment %s moved %s -> %s by user %s",
            shipment.tracking_number,
            previous.value if previous else None,
            new_status.value,
            actor_id,
        )
        await StatusBroadcaster.shipment_changed(shipment, actor_id=actor_id)
        return shipment

    @staticmethod
    async def update_payment_collection(
        db: AsyncSession,
        shipment_id: int,
        payment_status: PaymentCollectionStatus,
        actor_id: Optional[int],
    ) -> Shipment:
        """Record a payment collection state change with an audit entry."""
        shipment = await ShipmentStatusService.get_shipment(db, shipment_id, for_update=True)
        previous = shipment.payment_collection_status

        shipment.payment_collection_status = payment_status
        add_audit_entry(
            db,
            AuditAction.PAYMENT_STATUS_CHANGED,
            actor_id=actor_id,
            entity_type="shipment",
            entity_id=shipment.id,
            metadata={
                "from": previous.value if previous else None,
                "to": payment_status.value,
            },
        )
        await commit_or_conflict(db, "Shipment", shipment_id)
        await db.refresh(shipment)

        logger.info(
            "Shipment %s payment collection %s -> %s",
            shipment.tracking_number,
            previous.value if previous else None,
            payment_status.value,
        )
        return shipment

    @staticmethod
    async def soft_delete(db: AsyncSession, shipment_id: int, actor_id: Optional[int]) -> Shipment:
        """
        Hide a shipment from reads, tracking and backfill. Status history
        is kept.

        Raises:
            ResourceNotFoundError: shipment missing or already deleted
        """
        shipment = await ShipmentStatusService.get_shipment(db, shipment_id, for_update=True)

        shipment.deleted_at = datetime.now(timezone.utc)
        add_audit_entry(
            db,
            AuditAction.SHIPMENT_DELETED,
            actor_id=actor_id,
            entity_type="shipment",
            entity_id=shipment.id,
            metadata={
                "tracking_number": shipment.tracking_number,
                "status": shipment.status.value if shipment.status else None,
            },
        )
        await commit_or_conflict(db, "Shipment", shipment_id)
        await db.refresh(shipment)

        logger.info("Shipment %s soft-deleted by user %s", shipment.tracking_number, actor_id)
        return shipment
