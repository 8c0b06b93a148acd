"""
Status Catalog.

Ordered status sequences for each transport mode plus the exception set.

Air: common prefix → airport → flight → Lagos customs → office → pickup
Sea: common prefix → port → vessel → Lagos customs → office → pickup
"""

from typing import Optional, Tuple

from freight_backend.app.models.shipment_enums import ShipmentStatus, TransportMode


COMMON_FLOW: Tuple[ShipmentStatus, ...] = (
    ShipmentStatus.PREORDER_SUBMITTED,
    ShipmentStatus.AWAITING_WAREHOUSE_RECEIPT,
    ShipmentStatus.WAREHOUSE_RECEIVED,
    ShipmentStatus.WAREHOUSE_VERIFIED_PRICED,
)

DESTINATION_FLOW: Tuple[ShipmentStatus, ...] = (
    ShipmentStatus.CUSTOMS_CLEARED_LAGOS,
    ShipmentStatus.IN_TRANSIT_TO_LAGOS_OFFICE,
    ShipmentStatus.READY_FOR_PICKUP,
    ShipmentStatus.PICKED_UP_COMPLETED,
)

AIR_FLOW: Tuple[ShipmentStatus, ...] = COMMON_FLOW + (
    ShipmentStatus.DISPATCHED_TO_ORIGIN_AIRPORT,
    ShipmentStatus.AT_ORIGIN_AIRPORT,
    ShipmentStatus.BOARDED_ON_FLIGHT,
    ShipmentStatus.FLIGHT_DEPARTED,
    ShipmentStatus.FLIGHT_LANDED_LAGOS,
) + DESTINATION_FLOW

SEA_FLOW: Tuple[ShipmentStatus, ...] = COMMON_FLOW + (
    ShipmentStatus.DISPATCHED_TO_ORIGIN_PORT,
    ShipmentStatus.AT_ORIGIN_PORT,
    ShipmentStatus.LOADED_ON_VESSEL,
    ShipmentStatus.VESSEL_DEPARTED,
    ShipmentStatus.VESSEL_ARRIVED_LAGOS_PORT,
) + DESTINATION_FLOW

EXCEPTION_STATUSES = frozenset({
    ShipmentStatus.ON_HOLD,
    ShipmentStatus.CANCELLED,
    ShipmentStatus.RESTRICTED_ITEM_REJECTED,
    ShipmentStatus.RESTRICTED_ITEM_OVERRIDE_APPROVED,
})


def flow_for(mode: Optional[TransportMode]) -> Tuple[ShipmentStatus, ...]:
    """
    Ordered statuses for a transport mode.

    A shipment with no mode yet can only move through the statuses that
    come before the mode-specific leg.
    """
    if mode == TransportMode.AIR:
        return AIR_FLOW
    if mode == TransportMode.SEA:
        return SEA_FLOW
    return COMMON_FLOW


def initial_status_for(mode: Optional[TransportMode]) -> ShipmentStatus:
    return flow_for(mode)[0]


def is_exception(status: Optional[ShipmentStatus]) -> bool:
    return status in EXCEPTION_STATUSES
