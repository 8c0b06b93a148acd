"""
Bulk shipment service and status fan-out.

BulkSyncEngine is the only writer of bulk item statuses: a parent status
change and the matching change on every active item commit together or
not at all.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from freight_backend.app.core.exceptions import ConcurrentUpdateError, ResourceNotFoundError
from freight_backend.app.db.session import commit_or_conflict
from freight_backend.app.domain.shipment_status.catalog import initial_status_for
from freight_backend.app.domain.shipment_status.payment_gate import assert_bulk_pickup_allowed
from freight_backend.app.domain.shipment_status.transitions import assert_transition
from freight_backend.app.models.bulk_shipment import BulkShipment
from freight_backend.app.models.bulk_shipment_item import BulkShipmentItem
from freight_backend.app.models.shipment_enums import (
    PaymentCollectionStatus, ShipmentStatus, TransportMode
)
from freight_backend.app.services.audit import AuditAction, add_audit_entry
from freight_backend.app.services.notification_service import StatusBroadcaster
from freight_backend.app.services.shipment_status_service import generate_tracking_number
from freight_backend.app.services.status_events import record_status_event

logger = logging.getLogger(__name__)


class BulkSyncEngine:

    @staticmethod
    async def get_bulk(db: AsyncSession, bulk_id: int, for_update: bool = False) -> BulkShipment:
        query = select(BulkShipment).where(
            BulkShipment.id == bulk_id,
            BulkShipment.deleted_at.is_(None),
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        bulk = result.scalar_one_or_none()
        if not bulk:
            raise ResourceNotFoundError("Bulk shipment", bulk_id)
        return bulk

    @staticmethod
    async def active_items(db: AsyncSession, bulk_id: int, for_update: bool = False) -> List[BulkShipmentItem]:
        query = (
            select(BulkShipmentItem)
            .where(
                BulkShipmentItem.bulk_shipment_id == bulk_id,
                BulkShipmentItem.deleted_at.is_(None),
            )
            .order_by(BulkShipmentItem.id)
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_item(db: AsyncSession, bulk_id: int, item_id: int, for_update: bool = False) -> BulkShipmentItem:
        query = select(BulkShipmentItem).where(
            BulkShipmentItem.id == item_id,
            BulkShipmentItem.bulk_shipment_id == bulk_id,
            BulkShipmentItem.deleted_at.is_(None),
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)

        result = await db.execute(query)
        item = result.scalar_one_or_none()
        if not item:
            raise ResourceNotFoundError("Bulk shipment item", item_id)
        return item

    @staticmethod
    def _new_item(bulk: BulkShipment, customer_id: int, description=None, weight_kg=None, volume_cbm=None) -> BulkShipmentItem:
        # Items always start in their parent's status and mode
        item = BulkShipmentItem(
            bulk_shipment_id=bulk.id,
            customer_id=customer_id,
            tracking_number=generate_tracking_number(),
            transport_mode=bulk.transport_mode,
            description=description,
            total_weight_kg=weight_kg,
            total_volume_cbm=volume_cbm,
            payment_collection_status=PaymentCollectionStatus.UNPAID,
        )
        item.apply_status(bulk.status)
        return item

    @staticmethod
    async def create_bulk(
        db: AsyncSession,
        created_by: int,
        items: Sequence[dict],
        transport_mode: Optional[TransportMode] = None,
        notes: Optional[str] = None,
    ) -> BulkShipment:
        """
        Create a bulk parent and its initial line items in one transaction.

        Each entry of items carries customer_id and optional description,
        weight_kg and volume_cbm.
        """
        status = initial_status_for(transport_mode)
        bulk = BulkShipment(
            tracking_number=generate_tracking_number(),
            transport_mode=transport_mode,
            status=status,
            notes=notes,
            created_by=created_by,
        )
        db.add(bulk)
        await db.flush()

        for entry in items:
            db.add(BulkSyncEngine._new_item(bulk, **entry))

        record_status_event(db, status, created_by, bulk_shipment_id=bulk.id)
        await db.commit()
        await db.refresh(bulk)

        logger.info("Bulk shipment %s created with %d items", bulk.tracking_number, len(items))
        return bulk

    @staticmethod
    async def add_item(
        db: AsyncSession,
        bulk_id: int,
        customer_id: int,
        description: Optional[str] = None,
        weight_kg: Optional[float] = None,
        volume_cbm: Optional[float] = None,
    ) -> BulkShipmentItem:
        bulk = await BulkSyncEngine.get_bulk(db, bulk_id, for_update=True)

        item = BulkSyncEngine._new_item(bulk, customer_id, description, weight_kg, volume_cbm)
        db.add(item)
        await db.commit()
        await db.refresh(item)

        logger.info("Item %s added to bulk shipment %s", item.tracking_number, bulk.tracking_number)
        return item

    @staticmethod
    async def remove_item(db: AsyncSession, bulk_id: int, item_id: int) -> BulkShipmentItem:
        """Soft delete: the item keeps its last status and leaves the fan-out set."""
        item = await BulkSyncEngine.get_item(db, bulk_id, item_id, for_update=True)

        item.deleted_at = datetime.now(timezone.utc)
        await db.commit()
        await db.refresh(item)

        logger.info("Item %s removed from bulk shipment %s", item.tracking_number, bulk_id)
        return item

    @staticmethod
    async def soft_delete_bulk(db: AsyncSession, bulk_id: int, actor_id: Optional[int]) -> BulkShipment:
        """
        Hide a bulk shipment and its active items. Items removed earlier keep
        their own deletion time; status history is kept.
        """
        bulk = await BulkSyncEngine.get_bulk(db, bulk_id, for_update=True)
        items = await BulkSyncEngine.active_items(db, bulk_id, for_update=True)

        deleted_at = datetime.now(timezone.utc)
        bulk.deleted_at = deleted_at
        for item in items:
            item.deleted_at = deleted_at

        add_audit_entry(
            db,
            AuditAction.BULK_SHIPMENT_DELETED,
            actor_id=actor_id,
            entity_type="bulk_shipment",
            entity_id=bulk.id,
            metadata={
                "tracking_number": bulk.tracking_number,
                "items_deleted": len(items),
            },
        )
        await commit_or_conflict(db, "Bulk shipment", bulk_id)
        await db.refresh(bulk)

        logger.info(
            "Bulk shipment %s soft-deleted with %d items by user %s",
            bulk.tracking_number, len(items), actor_id,
        )
        return bulk

    @staticmethod
    async def update_item_payment_collection(
        db: AsyncSession,
        bulk_id: int,
        item_id: int,
        payment_status: PaymentCollectionStatus,
        actor_id: Optional[int],
    ) -> BulkShipmentItem:
        item = await BulkSyncEngine.get_item(db, bulk_id, item_id, for_update=True)
        previous = item.payment_collection_status

        item.payment_collection_status = payment_status
        add_audit_entry(
            db,
            AuditAction.PAYMENT_STATUS_CHANGED,
            actor_id=actor_id,
            entity_type="bulk_shipment_item",
            entity_id=item.id,
            metadata={
                "from": previous.value if previous else None,
                "to": payment_status.value,
            },
        )
        await db.commit()
        await db.refresh(item)
        return item

    @staticmethod
    def apply_item_status(item: BulkShipmentItem, new_status: ShipmentStatus) -> None:
        item.apply_status(new_status)

    @staticmethod
    async def update_bulk_status(
        db: AsyncSession,
        bulk_id: int,
        new_status: ShipmentStatus,
        actor_id: Optional[int],
        note: Optional[str] = None,
    ) -> BulkShipment:
        """
        Move a bulk parent and every active item to new_status atomically.

        Raises:
            ResourceNotFoundError: bulk shipment missing or soft-deleted
            StructuralTransitionError: new_status does not follow the parent's status
            PaymentNotCompleteError: READY_FOR_PICKUP with any active item unpaid
            ConcurrentUpdateError: another writer won the race
        """
        bulk = await BulkSyncEngine.get_bulk(db, bulk_id, for_update=True)
        items = await BulkSyncEngine.active_items(db, bulk_id, for_update=True)
        previous = bulk.status

        try:
            assert_transition(bulk.transport_mode, previous, new_status)
            assert_bulk_pickup_allowed(items, new_status)

            bulk.status = new_status
            await db.flush()

            for item in items:
                BulkSyncEngine.apply_item_status(item, new_status)

            record_status_event(
                db, new_status, actor_id,
                previous_status=previous, bulk_shipment_id=bulk.id, note=note,
            )
            await db.flush()
        except StaleDataError:
            await db.rollback()
            raise ConcurrentUpdateError("Bulk shipment", bulk_id)
        except Exception:
            await db.rollback()
            raise

        await commit_or_conflict(db, "Bulk shipment", bulk_id)
        await db.refresh(bulk)
        for item in items:
            await db.refresh(item)

        logger.info(
            "Bulk shipment %s moved %s -> %s; %d items synced",
            bulk.tracking_number,
            previous.value if previous else None,
            new_status.value,
            len(items),
        )
        await StatusBroadcaster.bulk_changed(bulk, items, actor_id=actor_id)
        return bulk
