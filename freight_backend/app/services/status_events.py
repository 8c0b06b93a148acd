"""
Status event recording.

One append-only StatusEvent per transition, staged in the caller's
transaction so it commits or rolls back with the status change.
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from freight_backend.app.models.status_event import StatusEvent
from freight_backend.app.models.shipment_enums import ShipmentStatus


def record_status_event(
    db: AsyncSession,
    status: ShipmentStatus,
    actor_id: Optional[int],
    previous_status: Optional[ShipmentStatus] = None,
    shipment_id: Optional[int] = None,
    bulk_shipment_id: Optional[int] = None,
    note: Optional[str] = None,
) -> StatusEvent:
    if (shipment_id is None) == (bulk_shipment_id is None):
        raise ValueError("A status event belongs to exactly one shipment or bulk shipment")

    event = StatusEvent(
        shipment_id=shipment_id,
        bulk_shipment_id=bulk_shipment_id,
        status=status,
        previous_status=previous_status,
        actor_id=actor_id,
        note=note,
    )
    db.add(event)
    return event


async def list_shipment_events(db: AsyncSession, shipment_id: int) -> list[StatusEvent]:
    result = await db.execute(
        select(StatusEvent)
        .where(StatusEvent.shipment_id == shipment_id)
        .order_by(StatusEvent.created_at, StatusEvent.id)
    )
    return result.scalars().all()


async def list_bulk_events(db: AsyncSession, bulk_shipment_id: int) -> list[StatusEvent]:
    result = await db.execute(
        select(StatusEvent)
        .where(StatusEvent.bulk_shipment_id == bulk_shipment_id)
        .order_by(StatusEvent.created_at, StatusEvent.id)
    )
    return result.scalars().all()
