"""
Status broadcast.

Publishes status-change messages to a Redis pub/sub channel after the
database commit. Websocket, email and SMS workers subscribe elsewhere.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

import freight_backend.app.core.redis_client as redis_client_module
from freight_backend.app.core.config import settings
from freight_backend.app.domain.shipment_status.mapping import status_to_legacy
from freight_backend.app.models.shipment_enums import ShipmentStatus

logger = logging.getLogger(__name__)


def build_status_message(
    kind: str,
    record_id: int,
    tracking_number: str,
    status: ShipmentStatus,
    customer_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "kind": kind,
        "id": record_id,
        "tracking_number": tracking_number,
        "status": status.value,
        "legacy_status": status_to_legacy(status).value,
        "customer_id": customer_id,
        "actor_id": actor_id,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
    }


class StatusBroadcaster:

    @staticmethod
    async def publish(message: Dict[str, Any], channel: Optional[str] = None) -> bool:
        """
        Fire-and-forget publish. Failures are logged and reported as False;
        the request that triggered the change has already committed.
        """
        channel = channel or settings.status_channel
        try:
            await asyncio.wait_for(
                redis_client_module.redis_client.publish(channel, json.dumps(message)),
                timeout=settings.broadcast_timeout_seconds,
            )
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Status broadcast timed out after %ss for %s %s",
                settings.broadcast_timeout_seconds, message.get("kind"), message.get("tracking_number"),
            )
            return False
        except Exception as exc:
            logger.warning(
                "Status broadcast failed for %s %s: %s",
                message.get("kind"), message.get("tracking_number"), exc,
            )
            return False

    @staticmethod
    async def shipment_changed(shipment, actor_id: Optional[int] = None) -> bool:
        return await StatusBroadcaster.publish(
            build_status_message(
                "shipment", shipment.id, shipment.tracking_number, shipment.status,
                customer_id=shipment.customer_id, actor_id=actor_id,
            )
        )

    @staticmethod
    async def bulk_changed(bulk, items: Iterable, actor_id: Optional[int] = None) -> int:
        """
        One message for the parent plus one per item, published concurrently
        so the whole batch is bounded by a single publish timeout. Returns how
        many were delivered.
        """
        messages = [
            build_status_message("bulk_shipment", bulk.id, bulk.tracking_number, bulk.status, actor_id=actor_id)
        ]
        for item in items:
            messages.append(
                build_status_message(
                    "bulk_shipment_item", item.id, item.tracking_number, item.status,
                    customer_id=item.customer_id, actor_id=actor_id,
                )
            )

        results = await asyncio.gather(*(StatusBroadcaster.publish(message) for message in messages))
        return sum(1 for delivered in results if delivered)
