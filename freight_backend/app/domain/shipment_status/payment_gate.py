"""
Payment Gate.

A shipment may not be announced as ready for pickup until the money owed
for it has been collected in full.
"""

from typing import Iterable, Optional

from freight_backend.app.core.exceptions import PaymentNotCompleteError
from freight_backend.app.models.shipment_enums import PaymentCollectionStatus, ShipmentStatus


def assert_pickup_allowed(shipment, target: ShipmentStatus) -> None:
    """
    Raises:
        PaymentNotCompleteError: target is READY_FOR_PICKUP and the shipment is not paid
    """
    if target != ShipmentStatus.READY_FOR_PICKUP:
        return

    payment_status: Optional[PaymentCollectionStatus] = shipment.payment_collection_status
    if payment_status != PaymentCollectionStatus.PAID_IN_FULL:
        raise PaymentNotCompleteError(
            payment_status=payment_status.value if payment_status else PaymentCollectionStatus.UNPAID.value
        )


def assert_bulk_pickup_allowed(items: Iterable, target: ShipmentStatus) -> None:
    """Every active bulk item must be paid before the parent becomes ready for pickup."""
    if target != ShipmentStatus.READY_FOR_PICKUP:
        return

    unpaid = [
        item.tracking_number
        for item in items
        if item.payment_collection_status != PaymentCollectionStatus.PAID_IN_FULL
    ]
    if unpaid:
        raise PaymentNotCompleteError(
            payment_status=PaymentCollectionStatus.UNPAID.value,
            unpaid_tracking_numbers=unpaid,
        )
